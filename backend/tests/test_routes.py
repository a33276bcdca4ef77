"""
Tests for the HTTP control surface.

Each test builds a fresh app over a temporary data directory.
"""

import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from ipabuilder.main import create_app
from ipabuilder.metrics import MetricEventType

from conftest import bundle_files, write_zip


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def client(data_dir: Path):
    with TestClient(create_app(data_dir=data_dir)) as test_client:
        yield test_client


def package_body(source: Path, output_dir: Path, output_name: str = "Runner.ipa") -> dict:
    return {
        "source_path": str(source),
        "output_dir": str(output_dir),
        "app_name": "Runner",
        "output_name": output_name,
    }


class TestHealth:
    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "watching": False}

    def test_launch_recorded(self, client: TestClient):
        metrics = client.app.state.metrics
        assert [e.event_type for e in metrics.entries] == [MetricEventType.APP_LAUNCHED]

    def test_starts_over_unreadable_data_files(self, data_dir: Path):
        data_dir.mkdir()
        (data_dir / "app_state.json").write_bytes(b"\xff\xfe{not utf8")
        (data_dir / "metrics.jsonl").write_bytes(b'{"event_type": "app_launched"}\n\xff\xfe garbage\n')

        with TestClient(create_app(data_dir=data_dir)) as client:
            assert client.get("/health").status_code == 200
            assert client.get("/apps").json()["apps"] == []
            launches = [e.event_type for e in client.app.state.metrics.entries]
            assert launches == [MetricEventType.APP_LAUNCHED] * 2


class TestPackageEndpoint:
    """Tests for POST /package error mapping."""

    def test_success(self, client: TestClient, app_zip: Path, output_dir: Path):
        response = client.post("/package", json=package_body(app_zip, output_dir))

        assert response.status_code == 200
        body = response.json()
        assert body["archive_path"] == str(output_dir / "Runner.ipa")
        assert body["bundle_name"] == "Runner.app"

    def test_missing_input(self, client: TestClient, tmp_path: Path, output_dir: Path):
        response = client.post("/package", json=package_body(tmp_path / "nope.zip", output_dir))
        assert response.status_code == 404

    def test_bad_output_name(self, client: TestClient, app_zip: Path, output_dir: Path):
        response = client.post("/package", json=package_body(app_zip, output_dir, "Runner.zip"))
        assert response.status_code == 400

    def test_no_bundle(self, client: TestClient, no_bundle_zip: Path, output_dir: Path):
        response = client.post("/package", json=package_body(no_bundle_zip, output_dir))
        assert response.status_code == 422
        assert "structure of the zip file" in response.json()["detail"]

    def test_corrupt_zip(self, client: TestClient, tmp_path: Path, output_dir: Path):
        source = tmp_path / "broken.zip"
        source.write_bytes(b"garbage")
        response = client.post("/package", json=package_body(source, output_dir))
        assert response.status_code == 422

    def test_unknown_field_rejected(self, client: TestClient, app_zip: Path, output_dir: Path):
        body = package_body(app_zip, output_dir)
        body["sign"] = True
        response = client.post("/package", json=body)
        assert response.status_code == 422


class TestAppsEndpoints:
    """Tests for /apps."""

    def add(self, client: TestClient, source: Path, name: str = "Runner") -> dict:
        response = client.post("/apps", json={
            "app_name": name,
            "input_zip_path": str(source),
            "output_ipa_name": f"{name}.ipa",
        })
        assert response.status_code == 201
        return response.json()

    def test_crud(self, client: TestClient, app_zip: Path):
        app = self.add(client, app_zip)

        assert client.get(f"/apps/{app['id']}").json()["app_name"] == "Runner"

        renamed = client.post(f"/apps/{app['id']}/rename", json={"new_name": "Runner Pro"})
        assert renamed.json()["app_name"] == "Runner Pro"

        edited = client.put(f"/apps/{app['id']}", json={
            "app_name": "Runner Pro",
            "input_zip_path": str(app_zip),
            "output_ipa_name": "Pro.ipa",
        })
        assert edited.json()["output_ipa_name"] == "Pro.ipa"

        assert client.delete(f"/apps/{app['id']}").status_code == 200
        assert client.get(f"/apps/{app['id']}").status_code == 404

    def test_add_validation_error(self, client: TestClient):
        response = client.post("/apps", json={
            "app_name": " ",
            "input_zip_path": "/a.zip",
            "output_ipa_name": "A.ipa",
        })
        assert response.status_code == 400

    def test_list_and_search(self, client: TestClient, app_zip: Path):
        self.add(client, app_zip, "Runner")
        self.add(client, app_zip, "Other")

        assert len(client.get("/apps").json()["apps"]) == 2
        found = client.get("/apps", params={"q": "oth"}).json()["apps"]
        assert [a["app_name"] for a in found] == ["Other"]

    def test_output_directory(self, client: TestClient, output_dir: Path, tmp_path: Path):
        bad = client.put("/apps/output-directory", json={"path": str(tmp_path / "nope")})
        assert bad.status_code == 400

        ok = client.put("/apps/output-directory", json={"path": str(output_dir)})
        assert ok.status_code == 200
        assert client.get("/apps").json()["output_directory"] == str(output_dir)

    def test_generate(self, client: TestClient, app_zip: Path, output_dir: Path):
        app = self.add(client, app_zip)

        assert client.post(f"/apps/{app['id']}/generate").status_code == 409

        client.put("/apps/output-directory", json={"path": str(output_dir)})
        response = client.post(f"/apps/{app['id']}/generate")

        assert response.status_code == 200
        assert (output_dir / "Runner.ipa").exists()
        summary = client.get("/metrics/summary").json()
        assert summary["generations_all_time"] == 1

    def test_generate_unknown_app(self, client: TestClient):
        assert client.post("/apps/missing/generate").status_code == 404

    def test_state_persists_across_restart(self, data_dir: Path, app_zip: Path):
        with TestClient(create_app(data_dir=data_dir)) as first:
            app = self.add(first, app_zip)

        with TestClient(create_app(data_dir=data_dir)) as second:
            assert second.get(f"/apps/{app['id']}").status_code == 200
            launches = [
                e for e in second.app.state.metrics.entries
                if e.event_type == MetricEventType.APP_LAUNCHED
            ]
            assert len(launches) == 2


class TestWatchEndpoints:
    """Tests for /watch."""

    def watch_body(self, watch_dir: Path, output_dir: Path) -> dict:
        return {
            "watch_dir": str(watch_dir),
            "output_dir": str(output_dir),
            "app_name": "Runner",
            "output_name": "Runner.ipa",
        }

    def test_status_when_idle(self, client: TestClient):
        assert client.get("/watch/status").json() == {"running": False, "config": None}
        assert client.get("/watch/messages").json() == {"messages": []}
        assert client.post("/watch/stop").status_code == 409

    def test_invalid_config(self, client: TestClient, tmp_path: Path, output_dir: Path):
        response = client.post("/watch/start", json=self.watch_body(tmp_path / "nope", output_dir))
        assert response.status_code == 400
        assert "Watch directory is invalid" in response.json()["detail"]

    @pytest.mark.slow
    def test_watch_generates_and_records(self, client: TestClient, tmp_path: Path, output_dir: Path):
        watch_dir = tmp_path / "watch"
        watch_dir.mkdir()

        started = client.post("/watch/start", json=self.watch_body(watch_dir, output_dir))
        assert started.status_code == 200
        assert client.post("/watch/start", json=self.watch_body(watch_dir, output_dir)).status_code == 409
        assert client.get("/health").json()["watching"] is True

        # Write elsewhere, then move in so the watcher sees a complete file
        staged = write_zip(tmp_path / "staged.zip", bundle_files())
        staged.rename(watch_dir / "Runner.app.zip")

        kinds = []
        deadline = time.monotonic() + 20.0
        while "generated" not in kinds and time.monotonic() < deadline:
            kinds.extend(m["kind"] for m in client.get("/watch/messages").json()["messages"])
            time.sleep(0.1)

        stopped = client.post("/watch/stop")
        assert stopped.status_code == 200
        kinds.extend(m["kind"] for m in stopped.json()["messages"])

        assert kinds[0] == "started"
        assert "generated" in kinds
        assert kinds[-1] == "stopped"
        assert (output_dir / "Runner.ipa").exists()
        assert client.get("/metrics/summary").json()["generations_today"] == 1
        assert client.get("/watch/status").json()["running"] is False
