import json
from datetime import datetime, timezone

from telemetry import append_routing_telemetry, read_routing_telemetry_summary


def test_summary_counts_recent_events(tmp_path, monkeypatch):
    monkeypatch.setenv("ROUTING_TELEMETRY_ENABLED", "1")
    path = tmp_path / "routing.log"
    append_routing_telemetry("route_mention", {"message_id": 1}, path=path)
    append_routing_telemetry("reply_ok", {"bot_id": 2}, path=path)
    append_routing_telemetry("reply_failed", {"bot_id": 3}, path=path)

    summary = read_routing_telemetry_summary(path=path)

    assert summary["status"] == "ok"
    assert summary["counts"] == {"route_mention": 1, "reply_ok": 1, "reply_failed": 1}
    assert summary["routed_messages"] == 1
    assert summary["reply_failure_rate_percent"] == 50.0
    assert summary["read_error"] is None


def test_disabled_telemetry_writes_nothing(tmp_path, monkeypatch):
    monkeypatch.setenv("ROUTING_TELEMETRY_ENABLED", "0")
    path = tmp_path / "routing.log"
    append_routing_telemetry("route_none", {}, path=path)
    assert not path.exists()


def test_bad_lines_are_counted_not_raised(tmp_path):
    path = tmp_path / "routing.log"
    good = {"ts": datetime.now(timezone.utc).isoformat(), "event": "route_none", "payload": {}}
    path.write_text("not json\n[1, 2]\n" + json.dumps(good) + "\n", encoding="utf-8")

    summary = read_routing_telemetry_summary(path=path)

    assert summary["parse_errors"] == 2
    assert summary["counts"] == {"route_none": 1}


def test_unreadable_log_degrades_to_empty_summary(tmp_path):
    path = tmp_path / "routing.log"
    path.mkdir()

    summary = read_routing_telemetry_summary(path=path)

    assert summary["status"] == "unreadable"
    assert summary["file_exists"] is True
    assert summary["read_error"]
    assert summary["counts"] == {}
    assert summary["routed_messages"] == 0


def test_unreadable_log_over_http(client, services):
    services.controller.telemetry_path.mkdir(parents=True)

    res = client.get("/api/routing/telemetry")

    assert res.status_code == 200
    assert res.json()["status"] == "unreadable"
