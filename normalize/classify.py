from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass


def _words(pattern: str) -> re.Pattern[str]:
    return re.compile(rf"\b(?:{pattern})\b")


@dataclass(frozen=True)
class SeverityRule:
    severity: str
    requires: tuple[re.Pattern[str], ...]
    unless: re.Pattern[str] | None = None

    def matches(self, text: str) -> bool:
        if self.unless is not None and self.unless.search(text):
            return False
        return all(p.search(text) for p in self.requires)


@dataclass(frozen=True)
class CategoryRule:
    name: str
    type: str
    # Any alternative matches when every pattern in it matches.
    alternatives: tuple[tuple[re.Pattern[str], ...], ...]
    severity_rules: tuple[SeverityRule, ...]
    default_severity: str

    def matches(self, text: str) -> bool:
        return any(all(p.search(text) for p in alt) for alt in self.alternatives)

    def grade(self, text: str) -> str:
        for rule in self.severity_rules:
            if rule.matches(text):
                return rule.severity
        return self.default_severity


def _sev(
    severity: str, *patterns: str, unless: str | None = None
) -> SeverityRule:
    return SeverityRule(
        severity=severity,
        requires=tuple(_words(p) for p in patterns),
        unless=_words(unless) if unless else None,
    )


def _rule(
    name: str,
    type: str,
    alternatives: Sequence[Sequence[str]],
    default_severity: str,
    *severity_rules: SeverityRule,
) -> CategoryRule:
    return CategoryRule(
        name=name,
        type=type,
        alternatives=tuple(tuple(_words(p) for p in alt) for alt in alternatives),
        severity_rules=severity_rules,
        default_severity=default_severity,
    )


_CASUALTIES = "killed|dead|casualties"

# Order is precedence: the first category whose pattern matches wins.
CATEGORY_RULES: tuple[CategoryRule, ...] = (
    _rule(
        "combat",
        "military",
        [
            [
                "airstrike|air strike|combat|troops deployed|military operation"
                "|armed forces|battalion|regiment|warship|fighter jet|tank|artillery"
                "|drone strike|military base|ceasefire|bombardment|frontline|front line"
            ]
        ],
        "medium",
        _sev("critical", "massacre|mass casualties|invasion|nuclear|chemical weapon"),
        _sev(
            "high",
            "killed|casualties|dead|wounded|bombing|airstrike|missile strike",
        ),
    ),
    # "war" alone shows up in too many unrelated headlines.
    _rule(
        "war_zone",
        "military",
        [["war", "zone|front|combat|offensive|defense|casualties"]],
        "high",
        _sev("critical", "nuclear|chemical|genocide|massacre"),
    ),
    _rule(
        "terrorism",
        "emergency",
        [
            [
                "terrorist attack|terrorism|mass shooting|active shooter|hostage"
                "|bomb plot|bombing"
            ]
        ],
        "high",
        _sev("critical", _CASUALTIES),
        _sev("medium", "prevented|foiled|arrested|disrupted"),
    ),
    _rule(
        "violent_incident",
        "emergency",
        [
            ["mass shooting|school shooting|workplace shooting"],
            [
                "killed|dead",
                "shooting|stabbing|attack",
                r"\d+\s+(?:people|victims|killed|dead)",
            ],
        ],
        "high",
    ),
    _rule(
        "civil_unrest",
        "protest",
        [["protest|riot|demonstration|rally|civil unrest|uprising"]],
        "low",
        _sev("high", "state of emergency|martial law|military crackdown"),
        _sev("high", _CASUALTIES, "protest|riot"),
        _sev("high", "violent|clash|clashes|riot|tear gas|water cannon"),
    ),
    _rule(
        "natural_hazard",
        "weather",
        [
            [
                "wildfire|flood|storm|hurricane|tornado|earthquake|tsunami|disaster"
                "|cyclone|typhoon|volcanic eruption|landslide"
            ]
        ],
        "medium",
        _sev("critical", "catastrophic|mass casualties|hundreds killed|thousands killed"),
        _sev("high", "killed|dead|casualties|destroyed|devastated"),
        _sev("low", "warning|advisory|watch"),
    ),
    _rule(
        "financial_shock",
        "financial",
        [
            [
                "market crash|economic collapse|bank collapse|currency crisis"
                "|debt default|financial crisis"
            ]
        ],
        "high",
    ),
    _rule(
        "financial_pressure",
        "financial",
        [["recession|inflation|sanctions|trade war|tariff"]],
        "medium",
    ),
    _rule(
        "politics",
        "political",
        [["election|summit|treaty|diplomatic|sanctions|coup|impeachment"]],
        "low",
        _sev("high", "coup|overthrow|assassination|impeachment"),
    ),
    _rule(
        "interdiction",
        "other",
        [
            [
                "fleeing|evading|pursuit|smuggling|coast guard|border patrol|intercepted",
                "vessel|ship|tanker|boat|cargo|aircraft",
            ]
        ],
        "medium",
    ),
)

FALLBACK = ("other", "low")


def classify_text(title: str, description: str = "") -> tuple[str, str]:
    text = f"{title} {description}".lower()
    for rule in CATEGORY_RULES:
        if rule.matches(text):
            return rule.type, rule.grade(text)
    return FALLBACK


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(kw in text for kw in keywords)


def keyword_severity(
    text: str,
    ladder: Sequence[tuple[str, Sequence[str]]],
    default: str,
) -> str:
    for severity, keywords in ladder:
        if contains_any(text, keywords):
            return severity
    return default


def keyword_pattern(
    keywords: Iterable[str], *, whole_words: bool = False
) -> re.Pattern[str]:
    """Alternation over literal keywords anchored at a word start.

    With ``whole_words`` the end is anchored too, for short tokens like "ai".
    """
    body = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"\b(?:{body})\b" if whole_words else rf"\b(?:{body})")


def grade_text(text: str, rules: Sequence[SeverityRule], default: str) -> str:
    for rule in rules:
        if rule.matches(text):
            return rule.severity
    return default


_PROTEST_INCLUDE = tuple(
    re.compile(p)
    for p in (
        r"\bprotest(?:s|ers|ing)?\b",
        r"\banti-government\b|\bpro-democracy\b",
        r"\bcivil unrest\b",
        r"\briot(?:s|ing|ers)?\b",
        r"\buprising\b|\brevolt\b|\brebellion\b",
        r"\btear gas\b|\bwater cannon\b|\briot police\b",
        r"\b(?:general|labor|workers?) strike\b",
        r"\bsit-in\b|\bwalkout\b",
        r"\b(?:blockade|barricade|roadblock)s?\b.*\b(?:protest|demonstr)",
        r"\b(?:violent|peaceful) (?:clash|demonstration|rally|march)",
        r"\bdemonstrators?\b",
        r"\bopposition rally\b",
        r"\barrested protesters\b|\bdetained activists\b",
        r"\bpolice crackdown\b",
        r"\b(?:curfew|martial law)\b.*\b(?:protest|unrest)",
    )
)

# Matched against the title only; commentary and off-topic uses of "protest".
_PROTEST_EXCLUDE = tuple(
    re.compile(p)
    for p in (
        r"\b(?:understanding|analysis|opinion|editorial|interview|podcast|video|photo|gallery)\b",
        r"\b(?:history of|background|explainer|what are|why|how to|guide to)\b",
        r"\b(?:cardiac|health|weather|climate|record|hottest|sunniest|temperature)\b",
        r"\b(?:threatens|warns|says|comments|statement|addresses|react)\w*\b.*\bprotest",
    )
)

_MASS_SCALE = "dozens|hundreds|many|mass|multiple"
_UNREST_SCALE = "thousands|nationwide|widespread|escalating|intensifying"

PROTEST_SEVERITY_RULES: tuple[SeverityRule, ...] = (
    _sev("critical", "killed|dead|deaths", _MASS_SCALE),
    _sev("critical", "revolution|coup attempt|government overthrown|regime change"),
    _sev("high", "killed|dead|death|deaths|deadly|casualties|fatalities"),
    _sev(
        "high",
        "violent|violence|riots?|rioting|clash|clashes|tear gas|water cannon|rubber bullets",
    ),
    _sev(
        "high",
        "state of emergency|martial law|curfew|crackdown|suppression|military deployed",
    ),
    _sev("high", _UNREST_SCALE, "protests?|unrest|demonstrations?"),
    _sev(
        "low",
        "peaceful|march|rally",
        unless="violent|clash|clashes|riots?|arrests?|arrested|injured|killed",
    ),
)


def is_protest_report(title: str, description: str = "") -> bool:
    lowered_title = title.lower()
    if any(p.search(lowered_title) for p in _PROTEST_EXCLUDE):
        return False
    text = f"{title} {description}".lower()
    return any(p.search(text) for p in _PROTEST_INCLUDE)


def protest_severity(title: str, description: str = "") -> str:
    return grade_text(f"{title} {description}".lower(), PROTEST_SEVERITY_RULES, "medium")
