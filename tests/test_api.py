import logging

from starlette.datastructures import UploadFile

from gstlogview.main import LOG_FORMAT
from gstlogview.services import log_ingestor


def _upload(client, data, name="run.log"):
    resp = client.post("/api/upload", files={"file": (name, data, "text/plain")})
    assert resp.status_code == 200
    sid = resp.json()["session_id"]
    log_ingestor.wait(sid, timeout=5)
    return sid


class TestHealth:
    def test_healthz(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json()["ok"] is True

    def test_root(self, client):
        assert "docs" in client.get("/").json()["message"]

    def test_log_format(self):
        record = logging.LogRecord("gstlogview.x", logging.INFO, __file__, 1, "parsed %d", (4,), None)
        line = logging.Formatter(LOG_FORMAT).format(record)
        assert line.endswith("[INFO] gstlogview.x - parsed 4")


class TestUpload:
    def test_returns_pending_session(self, client, sample_log):
        resp = client.post("/api/upload", files={"file": ("run.log", sample_log, "text/plain")})
        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "pending"
        assert len(data["session_id"]) == 36

    def test_session_status_reports_drops(self, client, sample_log):
        sid = _upload(client, sample_log)
        data = client.get(f"/api/sessions/{sid}").json()
        assert data["state"] == "ready"
        assert data["entries"] == 4
        assert data["stats"]["lines"] == 6
        assert data["stats"]["dropped"] == 2
        assert data["warning"] is None

    def test_empty_artifact_warns(self, client):
        sid = _upload(client, b"")
        data = client.get(f"/api/sessions/{sid}").json()
        assert data["state"] == "ready"
        assert data["entries"] == 0
        assert data["warning"]

    def test_missing_file_field(self, client):
        resp = client.post("/api/upload", data={"note": "no file"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "empty_upload"

    def test_too_large(self, client):
        resp = client.post("/api/upload", files={"file": ("big.log", b"x" * (1024 * 1024 + 1), "text/plain")})
        assert resp.status_code == 413
        assert resp.json()["error"] == "payload_too_large"

    def test_too_large_is_refused_before_reading(self, client, monkeypatch):
        async def unexpected_read(self, size=-1):
            raise AssertionError("oversized upload was read")

        monkeypatch.setattr(UploadFile, "read", unexpected_read)
        resp = client.post("/api/upload", files={"file": ("big.log", b"x" * (1024 * 1024 + 1), "text/plain")})
        assert resp.status_code == 413
        assert resp.json()["error"] == "payload_too_large"

    def test_unknown_session_status(self, client):
        resp = client.get("/api/sessions/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["error"] == "session_not_found"


class TestLogsQuery:
    def test_unfiltered_page(self, client, sample_log):
        sid = _upload(client, sample_log)
        data = client.get("/api/logs", params={"session_id": sid}).json()
        assert data["total"] == 4
        assert data["page"] == 1
        assert data["total_pages"] == 1
        first = data["entries"][0]
        assert first == {
            "timestamp": "0:00:00.123456789",
            "timestamp_ns": 123456789,
            "pid": 1234,
            "thread": "0x55d5c3a1b6e0",
            "level": "DEBUG",
            "category": "videodecoder",
            "file": "gstvideodecoder.c",
            "line": 1200,
            "function": "gst_video_decoder_finish_frame",
            "object": "dec0",
            "message": "some message",
        }
        assert data["entries"][2]["object"] is None

    def test_level_and_pid(self, client, sample_log):
        sid = _upload(client, sample_log)
        data = client.get("/api/logs", params={"session_id": sid, "level": "DEBUG", "pid": 1234}).json()
        assert data["total"] == 1
        assert data["entries"][0]["function"] == "gst_video_decoder_finish_frame"

    def test_repeated_categories(self, client, sample_log):
        sid = _upload(client, sample_log)
        params = [("session_id", sid), ("categories", "GST_PADS"), ("categories", "GST_STATES")]
        data = client.get("/api/logs", params=params).json()
        assert [e["category"] for e in data["entries"]] == ["GST_PADS", "GST_STATES"]

    def test_timestamp_bounds(self, client, sample_log):
        sid = _upload(client, sample_log)
        data = client.get("/api/logs", params={"session_id": sid, "min_timestamp": 400, "max_timestamp": 900}).json()
        assert data["total"] == 2
        data = client.get(
            "/api/logs",
            params={"session_id": sid, "min_timestamp": 123456, "max_timestamp": 123457, "use_microseconds": "true"},
        ).json()
        assert data["total"] == 1

    def test_pagination(self, client, sample_log):
        sid = _upload(client, sample_log)
        data = client.get("/api/logs", params={"session_id": sid, "per_page": 3, "page": 2}).json()
        assert data["total"] == 4
        assert data["total_pages"] == 2
        assert len(data["entries"]) == 1
        beyond = client.get("/api/logs", params={"session_id": sid, "per_page": 3, "page": 9}).json()
        assert beyond["entries"] == []
        assert beyond["total_pages"] == 2

    def test_invalid_regex_degrades_with_warning(self, client, sample_log):
        sid = _upload(client, sample_log)
        resp = client.get("/api/logs", params={"session_id": sid, "message_regex": "(oops"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 4
        assert data["warnings"] and "message_regex" in data["warnings"][0]

    def test_wrongly_typed_value_rejected(self, client, sample_log):
        sid = _upload(client, sample_log)
        resp = client.get("/api/logs", params={"session_id": sid, "pid": "abc"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "invalid_query"
        assert "pid" in body["detail"]

    def test_unknown_session(self, client):
        resp = client.get("/api/logs", params={"session_id": "nope"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "session_not_found", "detail": "Session not found: nope"}

    def test_missing_session_id(self, client):
        resp = client.get("/api/logs")
        assert resp.status_code == 400
        assert "session_id" in resp.json()["detail"]


class TestTimelineQuery:
    def test_buckets(self, client, sample_log):
        sid = _upload(client, sample_log)
        data = client.get("/api/timeline", params={"session_id": sid, "interval": "500ms"}).json()
        assert data["unit"] == "ms"
        assert data["min_timestamp"] == 123
        assert data["max_timestamp"] == 1500
        assert data["buckets"] == [
            {"timestamp": 123, "count": 2},
            {"timestamp": 623, "count": 1},
            {"timestamp": 1123, "count": 1},
        ]

    def test_filtered(self, client, sample_log):
        sid = _upload(client, sample_log)
        data = client.get("/api/timeline", params={"session_id": sid, "category": "x", "categories": "videodecoder"}).json()
        assert sum(b["count"] for b in data["buckets"]) == 2

    def test_default_interval(self, client, sample_log):
        sid = _upload(client, sample_log)
        data = client.get("/api/timeline", params={"session_id": sid}).json()
        assert data["interval"] == 1000
        assert data["buckets"] == [{"timestamp": 123, "count": 3}, {"timestamp": 1123, "count": 1}]

    def test_microsecond_interval_reports_microseconds(self, client, sample_log):
        sid = _upload(client, sample_log)
        data = client.get("/api/timeline", params={"session_id": sid, "interval": "1000000us"}).json()
        assert data["unit"] == "us"
        assert data["interval"] == 1_000_000
        assert data["min_timestamp"] == 123456
        assert data["buckets"] == [{"timestamp": 123456, "count": 3}, {"timestamp": 1123456, "count": 1}]

    def test_invalid_interval_rejected_first(self, client):
        resp = client.get("/api/timeline", params={"session_id": "nope", "interval": "fast"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_interval"


class TestFilterOptions:
    def test_options(self, client, sample_log):
        sid = _upload(client, sample_log)
        data = client.get("/api/filter-options", params={"session_id": sid}).json()
        assert set(data["categories"]) == {"videodecoder", "GST_PADS", "GST_STATES"}
        assert set(data["levels"]) == {"DEBUG", "ERROR", "INFO", "WARNING"}
        assert set(data["pids"]) == {1234, 1235}
        assert set(data["objects"]) == {"dec0", "queue0:src"}

    def test_unknown_session(self, client):
        assert client.get("/api/filter-options", params={"session_id": "nope"}).status_code == 404
