from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import NamedTuple


class GeoMatch(NamedTuple):
    lat: float
    lon: float
    name: str


@dataclass(frozen=True)
class GeoEntry:
    key: str
    lat: float
    lon: float
    keywords: tuple[str, ...]
    label: str | None = None

    @property
    def display_name(self) -> str:
        return self.label or self.key[:1].upper() + self.key[1:]

    def pattern(self) -> re.Pattern[str]:
        alts = "|".join(re.escape(kw) for kw in self.keywords)
        return re.compile(rf"\b(?:{alts})\b")

    def match(self) -> GeoMatch:
        return GeoMatch(self.lat, self.lon, self.display_name)


def _e(key: str, lat: float, lon: float, *keywords: str, label: str | None = None) -> GeoEntry:
    return GeoEntry(key=key, lat=lat, lon=lon, keywords=keywords, label=label)


# Ordered: the first entry with a matching keyword wins.
LOCATIONS: tuple[GeoEntry, ...] = (
    _e("ukraine", 50.4501, 30.5234, "ukraine", "kyiv", "kiev", "kharkiv", "odesa", "lviv", "donetsk", "mariupol"),
    _e("russia", 55.7558, 37.6173, "russia", "moscow", "kremlin", "putin", "st petersburg"),
    _e("israel", 31.7683, 35.2137, "israel", "jerusalem", "tel aviv", "gaza", "haifa", "netanyahu"),
    _e("palestine", 31.9522, 35.2332, "palestine", "gaza", "west bank", "ramallah", "palestinian"),
    _e("syria", 33.5138, 36.2765, "syria", "damascus", "aleppo", "syrian"),
    _e("iran", 35.6892, 51.3890, "iran", "tehran", "iranian"),
    _e("iraq", 33.3128, 44.3615, "iraq", "baghdad", "mosul", "iraqi"),
    _e("afghanistan", 34.5553, 69.2075, "afghanistan", "kabul", "taliban", "afghan"),
    _e("china", 39.9042, 116.4074, "china", "beijing", "shanghai", "chinese", "xi jinping"),
    _e("taiwan", 25.0330, 121.5654, "taiwan", "taipei", "taiwanese"),
    _e("north korea", 39.0392, 125.7625, "north korea", "pyongyang", "kim jong"),
    _e("south korea", 37.5665, 126.9780, "south korea", "seoul", "korean"),
    _e("japan", 35.6762, 139.6503, "japan", "tokyo", "japanese"),
    _e("india", 28.6139, 77.2090, "india", "delhi", "mumbai", "indian", "modi"),
    _e("pakistan", 33.6844, 73.0479, "pakistan", "islamabad", "karachi", "pakistani"),
    _e("yemen", 15.5527, 48.5164, "yemen", "sanaa", "houthi", "yemeni"),
    _e("lebanon", 33.8886, 35.4955, "lebanon", "beirut", "hezbollah", "lebanese"),
    _e("turkey", 39.9334, 32.8597, "turkey", "ankara", "istanbul", "turkish", "erdogan"),
    _e("egypt", 30.0444, 31.2357, "egypt", "cairo", "egyptian"),
    _e("libya", 32.8872, 13.1913, "libya", "tripoli", "libyan"),
    _e("sudan", 15.5007, 32.5599, "sudan", "khartoum", "sudanese"),
    _e("ethiopia", 9.1450, 40.4897, "ethiopia", "addis ababa", "ethiopian"),
    _e("somalia", 2.0469, 45.3182, "somalia", "mogadishu", "somali"),
    _e("congo", -4.3217, 15.3125, "congo", "kinshasa", "drc", "congolese"),
    _e("nigeria", 9.0765, 7.3986, "nigeria", "abuja", "lagos", "nigerian"),
    _e("south africa", -25.7479, 28.2293, "south africa", "pretoria", "cape town", "johannesburg"),
    _e("venezuela", 10.4806, -66.9036, "venezuela", "caracas", "maduro", "venezuelan"),
    _e("colombia", 4.7110, -74.0721, "colombia", "bogota", "colombian"),
    _e("brazil", -15.8267, -47.9218, "brazil", "brasilia", "rio", "sao paulo", "brazilian"),
    _e("argentina", -34.6037, -58.3816, "argentina", "buenos aires", "argentinian"),
    _e("mexico", 19.4326, -99.1332, "mexico", "mexico city", "mexican", "cartel"),
    _e("haiti", 18.5944, -72.3074, "haiti", "port-au-prince", "haitian"),
    _e("myanmar", 16.8661, 96.1951, "myanmar", "yangon", "burma", "rohingya"),
    _e("philippines", 14.5995, 120.9842, "philippines", "manila", "filipino"),
    _e("indonesia", -6.2088, 106.8456, "indonesia", "jakarta", "indonesian"),
    _e("thailand", 13.7563, 100.5018, "thailand", "bangkok", "thai"),
    _e("vietnam", 21.0285, 105.8542, "vietnam", "hanoi", "vietnamese"),
    _e("australia", -35.2809, 149.1300, "australia", "canberra", "sydney", "australian"),
    _e("new zealand", -41.2865, 174.7762, "new zealand", "wellington", "auckland"),
    _e("uk", 51.5074, -0.1278, "uk", "britain", "london", "england", "scotland", "wales", "british", label="UK"),
    _e("france", 48.8566, 2.3522, "france", "paris", "french"),
    _e("germany", 52.5200, 13.4050, "germany", "berlin", "german"),
    _e("italy", 41.9028, 12.4964, "italy", "rome", "italian"),
    _e("spain", 40.4168, -3.7038, "spain", "madrid", "barcelona", "spanish"),
    _e("poland", 52.2297, 21.0122, "poland", "warsaw", "polish"),
    _e("usa", 38.9072, -77.0369, "usa", "america", "washington", "american", "united states", label="USA"),
)

VENDORS: tuple[GeoEntry, ...] = (
    GeoEntry("microsoft", 47.6062, -122.3321, ("microsoft", "windows", "azure", "office", "exchange", "sharepoint"), "Redmond, USA"),
    GeoEntry("apple", 37.3346, -122.0090, ("apple", "macos", "ios", "iphone", "ipad", "safari"), "Cupertino, USA"),
    GeoEntry("google", 37.4220, -122.0841, ("google", "chrome", "android", "pixel"), "Mountain View, USA"),
    GeoEntry("oracle", 37.5297, -121.9750, ("oracle", "java", "mysql", "solaris"), "Redwood City, USA"),
    GeoEntry("cisco", 37.4088, -121.9388, ("cisco", "webex", "ios xe"), "San Jose, USA"),
    GeoEntry("adobe", 37.3317, -121.8900, ("adobe", "acrobat", "photoshop", "flash"), "San Jose, USA"),
    GeoEntry("vmware", 37.4027, -121.9761, ("vmware", "esxi", "vcenter"), "Palo Alto, USA"),
    GeoEntry("ibm", 41.1089, -73.7203, ("ibm", "websphere", "db2"), "Armonk, USA"),
    GeoEntry("redhat", 35.7796, -78.6382, ("redhat", "rhel", "openshift", "fedora"), "Raleigh, USA"),
    GeoEntry("linux", 45.5152, -122.6784, ("linux", "kernel", "ubuntu", "debian"), "Portland, USA"),
    GeoEntry("sap", 49.2933, 8.6417, ("sap", "netweaver"), "Walldorf, Germany"),
    GeoEntry("siemens", 48.1351, 11.5820, ("siemens", "simatic"), "Munich, Germany"),
    GeoEntry("samsung", 37.5665, 126.9780, ("samsung", "galaxy"), "Seoul, South Korea"),
    GeoEntry("huawei", 22.5431, 114.0579, ("huawei",), "Shenzhen, China"),
    GeoEntry("fortinet", 37.3861, -121.9233, ("fortinet", "fortigate"), "Sunnyvale, USA"),
    GeoEntry("palo alto", 37.4419, -122.1430, ("palo alto networks", "pan-os"), "Santa Clara, USA"),
    GeoEntry("juniper", 37.3980, -121.9221, ("juniper", "junos"), "Sunnyvale, USA"),
    GeoEntry("dell", 30.4018, -97.7252, ("dell", "emc"), "Round Rock, USA"),
    GeoEntry("hp", 37.4054, -121.9690, ("hp", "hewlett packard"), "Palo Alto, USA"),
    GeoEntry("wordpress", 37.7749, -122.4194, ("wordpress", "wp"), "San Francisco, USA"),
    GeoEntry("drupal", 45.5152, -122.6784, ("drupal",), "Portland, USA"),
    GeoEntry("apache", 38.5816, -121.4944, ("apache", "tomcat", "struts"), "Forest Hill, USA"),
    GeoEntry("nginx", 37.7749, -122.4194, ("nginx",), "San Francisco, USA"),
    GeoEntry("mozilla", 37.3861, -122.0839, ("mozilla", "firefox", "thunderbird"), "Mountain View, USA"),
)

SILICON_VALLEY = GeoMatch(37.3861, -122.0839, "Silicon Valley, USA")

_LOCATION_PATTERNS = [(entry, entry.pattern()) for entry in LOCATIONS]
_VENDOR_PATTERNS = [(entry, entry.pattern()) for entry in VENDORS]
_LOCATIONS_BY_KEY = {entry.key: entry for entry in LOCATIONS}


def _first_match(
    text: str, table: list[tuple[GeoEntry, re.Pattern[str]]]
) -> GeoMatch | None:
    for entry, pattern in table:
        if pattern.search(text):
            return entry.match()
    return None


def geocode_text(title: str, description: str = "") -> GeoMatch | None:
    return _first_match(f"{title} {description}".lower(), _LOCATION_PATTERNS)


def lookup_location(name: str) -> GeoMatch | None:
    key = " ".join(name.lower().split())
    entry = _LOCATIONS_BY_KEY.get(key)
    if entry is not None:
        return GeoMatch(entry.lat, entry.lon, name.strip())
    match = _first_match(key, _LOCATION_PATTERNS)
    if match is None:
        return None
    return GeoMatch(match.lat, match.lon, name.strip())


def geocode_vendor(description: str, vendors: Iterable[str] = ()) -> GeoMatch:
    for vendor in vendors:
        match = _first_match(vendor.lower().replace("_", " "), _VENDOR_PATTERNS)
        if match is not None:
            return match
    return _first_match(description.lower(), _VENDOR_PATTERNS) or SILICON_VALLEY
