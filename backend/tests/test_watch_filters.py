"""
Tests for watch candidate filtering, the status channel and the
watchdog event forwarding.
"""

import queue
from pathlib import Path

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileDeletedEvent, FileMovedEvent

from ipabuilder.watchfolders import StatusChannel, WatchMessage, WatchMessageKind, is_candidate_archive
from ipabuilder.watchfolders.events import _ForwardingHandler
from ipabuilder.watchfolders.filters import unique_paths


class TestIsCandidateArchive:
    """Tests for the Runner.app*.zip filter."""

    @pytest.mark.parametrize("name", [
        "Runner.app.zip",
        "Runner.app-debug.zip",
        "RUNNER.APP.ZIP",
        "runner.app (1).zip",
    ])
    def test_matching_names(self, tmp_path: Path, name: str):
        path = tmp_path / name
        path.write_bytes(b"zip")
        assert is_candidate_archive(path)

    @pytest.mark.parametrize("name", [
        "notes.zip",
        "MyRunner.app.zip",
        "Runner.app.zip.part",
        "Runner.app.ipa",
    ])
    def test_non_matching_names(self, tmp_path: Path, name: str):
        path = tmp_path / name
        path.write_bytes(b"zip")
        assert not is_candidate_archive(path)

    def test_directory_is_not_candidate(self, tmp_path: Path):
        path = tmp_path / "Runner.app.zip"
        path.mkdir()
        assert not is_candidate_archive(path)

    def test_missing_file_is_not_candidate(self, tmp_path: Path):
        assert not is_candidate_archive(tmp_path / "Runner.app.zip")


class TestUniquePaths:
    def test_keeps_first_seen_order(self):
        a, b = Path("/w/a.zip"), Path("/w/b.zip")
        assert unique_paths([b, a, b, a]) == [b, a]


class TestStatusChannel:
    """Tests for the one-way status channel."""

    def make_message(self, text: str) -> WatchMessage:
        return WatchMessage(kind=WatchMessageKind.STARTED, message=text)

    def test_try_recv_empty(self):
        assert StatusChannel().try_recv() is None

    def test_fifo_order(self):
        channel = StatusChannel()
        for text in ("one", "two", "three"):
            assert channel.send(self.make_message(text))

        assert channel.try_recv().message == "one"
        assert [m.message for m in channel.drain()] == ["two", "three"]
        assert channel.drain() == []

    def test_send_after_close_fails(self):
        channel = StatusChannel()
        channel.send(self.make_message("before"))
        channel.close()

        assert channel.closed
        assert not channel.send(self.make_message("after"))
        # Messages sent before closing stay readable
        assert [m.message for m in channel.drain()] == ["before"]

    def test_message_str_is_text(self):
        assert str(self.make_message("AutoCheck stopped.")) == "AutoCheck stopped."


class TestForwardingHandler:
    """Tests for watchdog event forwarding."""

    @pytest.fixture
    def events(self) -> "queue.Queue[Path]":
        return queue.Queue()

    def drain(self, events: "queue.Queue[Path]"):
        paths = []
        while not events.empty():
            paths.append(events.get_nowait())
        return paths

    def test_file_created_forwarded(self, events):
        _ForwardingHandler(events).on_any_event(FileCreatedEvent("/w/Runner.app.zip"))
        assert self.drain(events) == [Path("/w/Runner.app.zip")]

    def test_move_forwards_both_paths(self, events):
        _ForwardingHandler(events).on_any_event(
            FileMovedEvent("/w/Runner.app.zip.part", "/w/Runner.app.zip")
        )
        assert self.drain(events) == [Path("/w/Runner.app.zip.part"), Path("/w/Runner.app.zip")]

    def test_directory_events_ignored(self, events):
        _ForwardingHandler(events).on_any_event(DirCreatedEvent("/w/Runner.app"))
        assert self.drain(events) == []

    def test_deletions_ignored(self, events):
        _ForwardingHandler(events).on_any_event(FileDeletedEvent("/w/Runner.app.zip"))
        assert self.drain(events) == []
