from __future__ import annotations


def _ring_vertices(ring: list) -> list[tuple[float, float]]:
    return [(float(p[0]), float(p[1])) for p in ring if len(p) >= 2]


def _mean(vertices: list[tuple[float, float]]) -> tuple[float, float] | None:
    if not vertices:
        return None
    lon = sum(v[0] for v in vertices) / len(vertices)
    lat = sum(v[1] for v in vertices) / len(vertices)
    return (lat, lon)


def polygon_centroid(coordinates: list) -> tuple[float, float] | None:
    """Vertex mean of the outer ring, returned as (lat, lon).

    Not area weighted, and the closing vertex of the ring counts twice.
    Good enough for placing a marker, not for anything geometric.
    """
    if not coordinates:
        return None
    return _mean(_ring_vertices(coordinates[0]))


def multipolygon_centroid(coordinates: list) -> tuple[float, float] | None:
    vertices: list[tuple[float, float]] = []
    for polygon in coordinates or []:
        if polygon:
            vertices.extend(_ring_vertices(polygon[0]))
    return _mean(vertices)


def geometry_centroid(geometry: dict | None) -> tuple[float, float] | None:
    if not isinstance(geometry, dict):
        return None
    gtype = geometry.get("type")
    coords = geometry.get("coordinates")
    try:
        if gtype == "Point":
            return (float(coords[1]), float(coords[0]))
        if gtype == "Polygon":
            return polygon_centroid(coords)
        if gtype == "MultiPolygon":
            return multipolygon_centroid(coords)
        if gtype == "LineString":
            return (float(coords[0][1]), float(coords[0][0]))
    except (IndexError, TypeError, ValueError):
        return None
    return None
