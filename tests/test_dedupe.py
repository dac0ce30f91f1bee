from datetime import UTC, datetime

from cluster.dedupe import dedupe_incidents, haversine_km, is_near_duplicate, token_jaccard
from normalize.incident import Incident, make_incident


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def _incident(id: str, title: str, lat: float | None, lon: float | None) -> Incident:
    return make_incident(
        id=id,
        title=title,
        description="",
        type="weather",
        severity="medium",
        lat=lat,
        lon=lon,
        location_name=None,
        timestamp=NOW,
        source="test",
    )


def test_haversine_known_distance() -> None:
    # One degree of latitude is ~111 km.
    assert 110.5 < haversine_km(0.0, 0.0, 1.0, 0.0) < 111.5
    assert haversine_km(35.0, 139.0, 35.0, 139.0) == 0.0


def test_token_jaccard() -> None:
    assert token_jaccard({"a", "b"}, {"a", "b"}) == 1.0
    assert token_jaccard({"a", "b"}, {"c"}) == 0.0
    assert token_jaccard(set(), set()) == 0.0


def test_near_duplicates_collapse_regardless_of_order() -> None:
    a = _incident("a", "Magnitude 5.8 earthquake strikes near coast", 35.0, 139.0)
    b = _incident("b", "magnitude 5.8 earthquake strikes near coast", 35.01, 139.01)
    assert [i.id for i in dedupe_incidents([a, b])] == ["a"]
    assert [i.id for i in dedupe_incidents([b, a])] == ["b"]


def test_identical_titles_far_apart_are_kept() -> None:
    # 0.09 degrees of latitude is ~10 km.
    a = _incident("a", "Flood warning issued", 10.0, 20.0)
    b = _incident("b", "Flood warning issued", 10.09, 20.0)
    assert not is_near_duplicate(a, b)
    assert len(dedupe_incidents([a, b])) == 2


def test_same_point_disjoint_titles_are_kept() -> None:
    a = _incident("a", "Flood warning issued", 10.0, 20.0)
    b = _incident("b", "Port closed after collision", 10.0, 20.0)
    assert len(dedupe_incidents([a, b])) == 2


def test_similarity_must_exceed_threshold() -> None:
    # 7 shared of 10 distinct tokens: exactly 0.7, not above it.
    a = _incident("a", "one two three four five six seven eight", 1.0, 1.0)
    b = _incident("b", "one two three four five six seven nine ten", 1.0, 1.0)
    assert token_jaccard(set(a.title.split()), set(b.title.split())) == 0.7
    assert not is_near_duplicate(a, b)


def test_unplaced_incidents_never_merge() -> None:
    a = _incident("a", "New AI model released", None, None)
    b = _incident("b", "New AI model released", None, None)
    assert len(dedupe_incidents([a, b])) == 2


def test_no_transitive_merging() -> None:
    # b duplicates a, c duplicates b but not a: only b is dropped.
    a = _incident("a", "w1 w2 w3 w4 w5 w6 w7 w8 w9 w10", 0.0, 0.0)
    b = _incident("b", "w1 w2 w3 w4 w5 w6 w7 w8 w9 w11", 0.0, 0.0)
    c = _incident("c", "w1 w2 w3 w4 w5 w6 w7 w8 w11 w12", 0.0, 0.0)
    assert is_near_duplicate(b, a)
    assert is_near_duplicate(c, b)
    assert not is_near_duplicate(c, a)
    assert [i.id for i in dedupe_incidents([a, b, c])] == ["a", "c"]
