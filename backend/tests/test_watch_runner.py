"""
Tests for the watch folder runner.

These tests verify:
1. Stable candidates are repackaged and reported
2. Non-candidates are ignored and failures do not stop the loop
3. Already-processed archives are not repackaged
4. stop() and close_receiver() end the loop promptly
5. Invalid configuration fails before anything is spawned

A fake event source replaces the filesystem notifier; tests push changed
paths onto the runner's queue through it.
"""

import shutil
import time
from pathlib import Path
from typing import List

import pytest

from ipabuilder.packaging import package
from ipabuilder.watchfolders import (
    FileStabilityChecker,
    WatchConfig,
    WatchConfigError,
    WatcherStartError,
    WatchFolderRunner,
    WatchMessage,
    WatchMessageKind,
    WatchdogEventSource,
)

from conftest import bundle_files, write_zip


class FakeEventSource:
    """Records start/stop; tests push paths through self.events."""

    instances: List["FakeEventSource"] = []

    def __init__(self, watch_dir: Path, events):
        self.watch_dir = watch_dir
        self.events = events
        self.started = False
        self.stopped = False
        FakeEventSource.instances.append(self)

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def push(self, *paths: Path) -> None:
        for path in paths:
            self.events.put(path)


class FailingEventSource(FakeEventSource):
    def start(self) -> None:
        raise WatcherStartError("inotify limit reached")


class BrokenBackendEventSource(FakeEventSource):
    def start(self) -> None:
        raise RuntimeError("backend exploded")


def wait_for(predicate, timeout: float = 10.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class MessageLog:
    """Accumulates drained messages across polls."""

    def __init__(self, runner: WatchFolderRunner):
        self.runner = runner
        self.messages: List[WatchMessage] = []

    def poll(self) -> List[WatchMessage]:
        self.messages.extend(self.runner.drain())
        return self.messages

    def kinds(self) -> List[WatchMessageKind]:
        return [m.kind for m in self.poll()]

    def wait_for_count(self, kind: WatchMessageKind, count: int = 1) -> bool:
        return wait_for(lambda: self.kinds().count(kind) >= count)


@pytest.fixture(autouse=True)
def reset_instances():
    FakeEventSource.instances = []
    yield
    FakeEventSource.instances = []


@pytest.fixture
def watch_dir(tmp_path: Path) -> Path:
    path = tmp_path / "watch"
    path.mkdir()
    return path


@pytest.fixture
def config(watch_dir: Path, output_dir: Path) -> WatchConfig:
    return WatchConfig(
        watch_dir=str(watch_dir),
        output_dir=str(output_dir),
        app_name="Runner",
        output_name="Runner.ipa",
    )


def fast_checker() -> FileStabilityChecker:
    return FileStabilityChecker(check_interval=0.02, timeout=2.0)


def start_runner(config: WatchConfig, **kwargs) -> WatchFolderRunner:
    kwargs.setdefault("event_source_factory", FakeEventSource)
    kwargs.setdefault("stability_checker", fast_checker())
    kwargs.setdefault("poll_interval", 0.05)
    runner = WatchFolderRunner.start(config, **kwargs)
    assert wait_for(lambda: FakeEventSource.instances and FakeEventSource.instances[-1].started)
    return runner


def source() -> FakeEventSource:
    return FakeEventSource.instances[-1]


class TestWatchRunnerGeneration:
    """Tests for the detect → stabilize → package path."""

    def test_candidate_is_packaged(self, config: WatchConfig, watch_dir: Path, output_dir: Path):
        runner = start_runner(config)
        log = MessageLog(runner)
        try:
            archive = write_zip(watch_dir / "Runner.app.zip", bundle_files())
            source().push(archive)

            assert log.wait_for_count(WatchMessageKind.GENERATED)
        finally:
            assert runner.stop(timeout=5.0)

        log.poll()
        kinds = log.kinds()
        assert kinds[0] == WatchMessageKind.STARTED
        assert kinds[-1] == WatchMessageKind.STOPPED
        assert kinds.index(WatchMessageKind.CANDIDATE_DETECTED) < kinds.index(WatchMessageKind.GENERATED)

        generated = next(m for m in log.messages if m.kind == WatchMessageKind.GENERATED)
        assert generated.archive_path == str(output_dir / "Runner.ipa")
        assert generated.app_name == "Runner"
        assert generated.size_bytes == (output_dir / "Runner.ipa").stat().st_size
        assert generated.message == f"Generated: {output_dir / 'Runner.ipa'}"
        assert (output_dir / "Runner.ipa").exists()
        assert source().stopped

    def test_non_candidates_ignored(self, config: WatchConfig, watch_dir: Path):
        runner = start_runner(config)
        log = MessageLog(runner)
        try:
            notes = write_zip(watch_dir / "notes.zip", bundle_files())
            archive = write_zip(watch_dir / "Runner.app.zip", bundle_files())
            source().push(notes, watch_dir / "missing.zip", archive)

            assert log.wait_for_count(WatchMessageKind.GENERATED)
        finally:
            runner.stop(timeout=5.0)

        detected = [m.path for m in log.poll() if m.kind == WatchMessageKind.CANDIDATE_DETECTED]
        assert detected == [str(archive)]

    def test_failure_does_not_stop_loop(self, config: WatchConfig, watch_dir: Path, output_dir: Path):
        runner = start_runner(config)
        log = MessageLog(runner)
        try:
            bad = write_zip(watch_dir / "Runner.app-broken.zip", {"readme.txt": b"no bundle"})
            source().push(bad)
            assert log.wait_for_count(WatchMessageKind.GENERATION_FAILED)
            assert runner.is_running

            good = write_zip(watch_dir / "Runner.app.zip", bundle_files())
            source().push(good)
            assert log.wait_for_count(WatchMessageKind.GENERATED)
        finally:
            runner.stop(timeout=5.0)

        failed = next(m for m in log.messages if m.kind == WatchMessageKind.GENERATION_FAILED)
        assert failed.message.startswith(f"Generation error for {bad}:")
        assert failed.app_name == "Runner"
        assert failed.duration_ms is not None

    def test_unexpected_exception_reported(self, config: WatchConfig, watch_dir: Path):
        def explode(request):
            raise RuntimeError("disk on fire")

        runner = start_runner(config, package_fn=explode)
        log = MessageLog(runner)
        try:
            source().push(write_zip(watch_dir / "Runner.app.zip", bundle_files()))
            assert log.wait_for_count(WatchMessageKind.GENERATION_FAILED)
            assert runner.is_running
        finally:
            runner.stop(timeout=5.0)

        failed = next(m for m in log.messages if m.kind == WatchMessageKind.GENERATION_FAILED)
        assert "disk on fire" in failed.message

    def test_processed_archive_not_repackaged(self, config: WatchConfig, watch_dir: Path):
        calls = []

        def counting_package(request):
            calls.append(request.source_path)
            return package(request)

        runner = start_runner(config, package_fn=counting_package)
        log = MessageLog(runner)
        try:
            archive = write_zip(watch_dir / "Runner.app.zip", bundle_files())
            source().push(archive)
            assert log.wait_for_count(WatchMessageKind.GENERATED)

            # Same file, same size and mtime
            source().push(archive)
            assert log.wait_for_count(WatchMessageKind.SKIPPED)

            # Replaced file is picked up again
            write_zip(watch_dir / "Runner.app.zip", {**bundle_files(), "Runner.app/extra": b"1"})
            source().push(archive)
            assert log.wait_for_count(WatchMessageKind.GENERATED, count=2)
        finally:
            runner.stop(timeout=5.0)

        assert calls == [str(archive), str(archive)]
        skipped = next(m for m in log.messages if m.kind == WatchMessageKind.SKIPPED)
        assert skipped.message == f"Skipped (already packaged): {archive}"
        assert skipped.path == str(archive)

    def test_unstable_file_skipped(self, config: WatchConfig, watch_dir: Path):
        archive = watch_dir / "Runner.app.zip"
        archive.write_bytes(b"partial")

        def grow(seconds: float) -> None:
            with open(archive, "ab") as f:
                f.write(b"x")
            time.sleep(seconds)

        checker = FileStabilityChecker(check_interval=0.01, timeout=0.05, sleep=grow)
        runner = start_runner(config, stability_checker=checker)
        log = MessageLog(runner)
        try:
            source().push(archive)
            assert log.wait_for_count(WatchMessageKind.SKIPPED)
            assert runner.is_running
        finally:
            runner.stop(timeout=5.0)

        skipped = next(m for m in log.messages if m.kind == WatchMessageKind.SKIPPED)
        assert skipped.message.startswith(f"Skipped (not ready): {archive} (timeout")
        assert WatchMessageKind.GENERATED not in log.kinds()


class TestWatchRunnerLifecycle:
    """Tests for start, stop and receiver closure."""

    def test_stop_is_prompt(self, config: WatchConfig):
        runner = start_runner(config, poll_interval=0.25)

        started = time.monotonic()
        assert runner.stop(timeout=5.0)

        assert time.monotonic() - started < 1.0
        assert not runner.is_running
        assert runner.drain()[-1].message == "AutoCheck stopped."

    def test_started_message(self, config: WatchConfig, watch_dir: Path):
        runner = start_runner(config)
        runner.stop(timeout=5.0)

        first = runner.drain()[0]
        assert first.kind == WatchMessageKind.STARTED
        assert first.message == f"AutoCheck started. Watching: {watch_dir}"

    def test_close_receiver_ends_loop(self, config: WatchConfig):
        runner = start_runner(config)

        runner.close_receiver()

        assert wait_for(lambda: not runner.is_running, timeout=5.0)
        assert source().stopped

    def test_watcher_start_error_reported(self, config: WatchConfig):
        runner = WatchFolderRunner.start(config, event_source_factory=FailingEventSource)

        assert wait_for(lambda: not runner.is_running, timeout=5.0)
        messages = runner.drain()
        assert [m.kind for m in messages] == [WatchMessageKind.STARTED, WatchMessageKind.WATCHER_ERROR]
        assert "inotify limit reached" in messages[-1].message

    def test_unexpected_start_failure_reported(self, config: WatchConfig):
        runner = WatchFolderRunner.start(config, event_source_factory=BrokenBackendEventSource)

        assert wait_for(lambda: not runner.is_running, timeout=5.0)
        messages = runner.drain()
        assert [m.kind for m in messages] == [WatchMessageKind.STARTED, WatchMessageKind.WATCHER_ERROR]
        assert "backend exploded" in messages[-1].message

    def test_config_exposed(self, config: WatchConfig):
        runner = start_runner(config)
        try:
            assert runner.config == config
        finally:
            runner.stop(timeout=5.0)


class TestWatchConfigValidation:
    """Configuration errors are raised by start() and spawn nothing."""

    def test_missing_watch_dir(self, config: WatchConfig, tmp_path: Path):
        bad = config.model_copy(update={"watch_dir": str(tmp_path / "nope")})
        with pytest.raises(WatchConfigError, match="Watch directory is invalid"):
            WatchFolderRunner.start(bad, event_source_factory=FakeEventSource)
        assert FakeEventSource.instances == []

    def test_missing_output_dir(self, config: WatchConfig, tmp_path: Path):
        bad = config.model_copy(update={"output_dir": str(tmp_path / "nope")})
        with pytest.raises(WatchConfigError, match="Output directory is invalid"):
            WatchFolderRunner.start(bad, event_source_factory=FakeEventSource)

    def test_blank_app_name(self, config: WatchConfig):
        bad = config.model_copy(update={"app_name": "   "})
        with pytest.raises(WatchConfigError, match="App name cannot be empty"):
            WatchFolderRunner.start(bad, event_source_factory=FakeEventSource)

    def test_bad_output_name(self, config: WatchConfig):
        bad = config.model_copy(update={"output_name": "Runner.zip"})
        with pytest.raises(WatchConfigError):
            WatchFolderRunner.start(bad, event_source_factory=FakeEventSource)


@pytest.mark.slow
class TestWatchdogEventSource:
    """Real filesystem notifications."""

    def test_created_file_is_queued(self, watch_dir: Path, tmp_path: Path):
        import queue

        events: "queue.Queue[Path]" = queue.Queue()
        source = WatchdogEventSource(watch_dir, events)
        source.start()
        try:
            assert source.is_alive()
            staged = write_zip(tmp_path / "staged.zip", bundle_files())
            shutil.copy(staged, watch_dir / "Runner.app.zip")

            path = events.get(timeout=5.0)
            assert path.name == "Runner.app.zip"
        finally:
            source.stop()

        assert not source.is_alive()
