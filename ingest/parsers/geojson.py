from __future__ import annotations

import json


def parse_geojson(data: bytes) -> list[dict]:
    doc = json.loads(data)
    if not isinstance(doc, dict):
        raise ValueError("expected a GeoJSON object")
    if doc.get("type") == "Feature":
        return [doc]
    features = doc.get("features")
    if not isinstance(features, list):
        return []
    return [f for f in features if isinstance(f, dict)]
