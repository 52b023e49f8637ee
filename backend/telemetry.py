"""Routing telemetry: JSON-lines event log and summary reader."""

import json
from collections import deque
from datetime import datetime, timezone, timedelta
from pathlib import Path
from typing import Optional

from loguru import logger

from config import env_bool, env_str
from text_utils import normalize_whitespace

_BACKEND_DIR = Path(__file__).resolve().parent

ROUTING_TELEMETRY_PATH = _BACKEND_DIR / (
    env_str("ROUTING_TELEMETRY_LOG", "routing_telemetry.log") or "routing_telemetry.log"
)


def telemetry_enabled() -> bool:
    return env_bool("ROUTING_TELEMETRY_ENABLED", True)


def append_routing_telemetry(event: str, payload: Optional[dict] = None, path: Optional[Path] = None) -> None:
    if not telemetry_enabled():
        return
    target = path or ROUTING_TELEMETRY_PATH
    try:
        data = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": normalize_whitespace(event or "event"),
            "payload": payload or {},
        }
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "a", encoding="utf-8") as f:
            f.write(json.dumps(data, ensure_ascii=False) + "\n")
    except OSError as exc:
        # Telemetry must never block the routing path.
        logger.warning(f"Routing telemetry write failed: {exc}")


def _parse_iso_utc(ts_raw: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(str(ts_raw).replace("Z", "+00:00"))
    except ValueError:
        return None


def read_routing_telemetry_summary(hours: int = 24, limit: int = 6, path: Optional[Path] = None) -> dict:
    target = path or ROUTING_TELEMETRY_PATH
    h = max(1, min(168, int(hours or 24)))
    n = max(1, min(25, int(limit or 6)))
    now_utc = datetime.now(timezone.utc)
    cutoff = now_utc - timedelta(hours=h)

    counts: dict[str, int] = {}
    recent: deque = deque(maxlen=n)
    parse_errors = 0
    read_error: Optional[str] = None
    file_exists = target.exists()

    if file_exists:
        try:
            with open(target, "r", encoding="utf-8") as f:
                lines = f.readlines()
        except OSError as exc:
            logger.warning(f"Routing telemetry read failed: {exc}")
            read_error = str(exc)[:200]
            lines = []
        for line in lines:
            raw = (line or "").strip()
            if not raw:
                continue
            try:
                item = json.loads(raw)
            except ValueError:
                parse_errors += 1
                continue
            if not isinstance(item, dict):
                parse_errors += 1
                continue
            ts = _parse_iso_utc(str(item.get("ts") or ""))
            if not ts or ts < cutoff:
                continue
            event = normalize_whitespace(str(item.get("event") or "event")) or "event"
            counts[event] = counts.get(event, 0) + 1
            recent.append(
                {
                    "ts": ts.isoformat(),
                    "event": event,
                    "payload": item.get("payload") or {},
                }
            )

    routed = sum(counts.get(k, 0) for k in ("route_direct", "route_mention", "route_orchestrator", "route_none"))
    replies = counts.get("reply_ok", 0)
    failures = counts.get("reply_failed", 0)
    failure_rate = round((failures / (replies + failures)) * 100.0, 2) if (replies + failures) > 0 else 0.0

    return {
        "status": "ok" if read_error is None else "unreadable",
        "now_utc": now_utc.isoformat(),
        "window_hours": h,
        "telemetry_enabled": telemetry_enabled(),
        "file_exists": file_exists,
        "file_path": str(target.name),
        "counts": counts,
        "routed_messages": routed,
        "reply_failure_rate_percent": failure_rate,
        "recent": list(recent),
        "parse_errors": parse_errors,
        "read_error": read_error,
    }
