from __future__ import annotations

import json


_LIST_KEYS = (
    "features",
    "events",
    "vulnerabilities",
    "states",
    "incidents",
    "current_events",
    "items",
    "data",
)


def parse_json_document(data: bytes) -> list[dict]:
    doc = json.loads(data)
    if isinstance(doc, dict):
        return [doc]
    raise ValueError("expected a JSON object")


def parse_json_records(data: bytes, key: str | None = None) -> list:
    doc = json.loads(data)
    if isinstance(doc, list):
        return doc
    if not isinstance(doc, dict):
        raise ValueError("expected a JSON object or array")
    if key is not None:
        value = doc.get(key)
        return value if isinstance(value, list) else []
    for candidate in _LIST_KEYS:
        value = doc.get(candidate)
        if isinstance(value, list):
            return value
    return []
