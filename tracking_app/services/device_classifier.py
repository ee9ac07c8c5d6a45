"""
User-agent classification.

Rules are ordered (predicate, result) pairs evaluated first-match-wins.
Edge and Opera user agents also carry the Chrome and Safari markers, so
the order of ``BROWSER_RULES`` is what tells them apart.
"""

from typing import Callable, Optional, Sequence, Tuple

from pydantic import BaseModel

Rule = Tuple[Callable[[str], bool], str]


def _contains(*markers: str) -> Callable[[str], bool]:
    return lambda ua: any(marker in ua for marker in markers)


def _contains_without(marker: str, excluded: str) -> Callable[[str], bool]:
    return lambda ua: marker in ua and excluded not in ua


DEVICE_RULES: Sequence[Rule] = (
    (_contains("mobile", "android", "iphone"), "Mobile"),
    (_contains("tablet", "ipad"), "Tablet"),
)
DEFAULT_DEVICE = "Desktop"

BROWSER_RULES: Sequence[Rule] = (
    (_contains_without("chrome", "edg"), "Chrome"),
    (_contains("firefox"), "Firefox"),
    (_contains_without("safari", "chrome"), "Safari"),
    (_contains("edg"), "Edge"),
    (_contains("opera", "opr"), "Opera"),
)
DEFAULT_BROWSER = "Unknown"


class DeviceInfo(BaseModel):
    device: str
    browser: str
    user_agent: str = ""


def first_match(rules: Sequence[Rule], value: str, default: str) -> str:
    for predicate, result in rules:
        if predicate(value):
            return result
    return default


class DeviceClassifier:
    """Classifier over ordered rule tables (defaults to DEVICE_RULES / BROWSER_RULES)"""
    
    def __init__(
        self,
        device_rules: Sequence[Rule] = DEVICE_RULES,
        browser_rules: Sequence[Rule] = BROWSER_RULES
    ):
        self.device_rules = device_rules
        self.browser_rules = browser_rules
    
    def classify(self, user_agent: Optional[str]) -> DeviceInfo:
        user_agent = user_agent or ""
        ua = user_agent.lower()
        return DeviceInfo(
            device=first_match(self.device_rules, ua, DEFAULT_DEVICE),
            browser=first_match(self.browser_rules, ua, DEFAULT_BROWSER),
            user_agent=user_agent,
        )


_default_classifier = DeviceClassifier()


def classify(user_agent: Optional[str]) -> DeviceInfo:
    """Classify a user-agent string into a device class and browser name"""
    return _default_classifier.classify(user_agent)
