"""Low-level text helpers used across the routing engine.

No dependency on schemas, models, or any other project module.
"""

import json
import re
from typing import Optional


def normalize_whitespace(text: str) -> str:
    return " ".join((text or "").split()).strip()


def truncate(text: str, limit: int, marker: str = "...") -> str:
    raw = text or ""
    if len(raw) <= limit:
        return raw
    return raw[:limit] + marker


def strip_code_fence(text: str) -> str:
    raw = (text or "").strip()
    match = re.match(r"^```[a-zA-Z0-9_-]*\s*(.*?)\s*```$", raw, flags=re.DOTALL)
    return match.group(1) if match else raw


def extract_json_object(text: str) -> Optional[dict]:
    raw = strip_code_fence(text)
    if not raw:
        return None
    try:
        obj = json.loads(raw)
        return obj if isinstance(obj, dict) else None
    except Exception:
        pass

    start = raw.find("{")
    end = raw.rfind("}")
    if start >= 0 and end > start:
        chunk = raw[start : end + 1]
        try:
            obj = json.loads(chunk)
            return obj if isinstance(obj, dict) else None
        except Exception:
            return None
    return None


def email_slug(name: str) -> str:
    return re.sub(r"\s+", "_", (name or "").strip().lower())
