from normalize.aircraft import classify_aircraft


def test_emergency_squawk_beats_everything() -> None:
    match = classify_aircraft("a835af", "RCH871", "7700")
    assert match is not None
    assert (match.category, match.type, match.severity) == ("Emergency", "emergency", "critical")


def test_radio_failure_and_hijack_codes() -> None:
    assert classify_aircraft("abc123", "DAL1", "7600").severity == "high"
    assert classify_aircraft("abc123", "DAL1", "7500").severity == "critical"


def test_known_identity_beats_military_callsign() -> None:
    match = classify_aircraft("A835AF", "RCH871", "1200")
    assert match is not None
    assert match.category == "Celebrity"
    assert match.severity == "low"


def test_military_vip_and_suspected_patterns() -> None:
    assert classify_aircraft("ae1234", "RCH871 ", None).category == "Military"
    assert classify_aircraft("ae1234", "rch871", None).category == "Military"
    assert classify_aircraft("710123", "SAUDIA05", None).category == "VIP"
    assert classify_aircraft("ae9999", "GOV12", None).category == "Suspected Military"


def test_unmatched_aircraft_are_ignored() -> None:
    assert classify_aircraft("a0b1c2", "DAL1523", "3341") is None
    # Three-digit SAUDIA flights are scheduled airline service.
    assert classify_aircraft("710123", "SAUDIA012", None) is None
    assert classify_aircraft("a0b1c2", None, None) is None
