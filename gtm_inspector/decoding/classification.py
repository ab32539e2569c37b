"""Lookup tables classifying GTM function identifiers.

Rules are ordered most specific first; the first matching rule wins.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class FunctionRule:
    """Maps a function identifier to a label.

    ``exact`` rules compare the whole identifier, the others match a substring.
    """
    needle: str
    label: str
    exact: bool = False

    def matches(self, function: str) -> bool:
        if self.exact:
            return function == self.needle
        return self.needle in function


TAG_TYPE_RULES: List[FunctionRule] = [
    FunctionRule("gaawe", "GA4 Event"),
    FunctionRule("gaawc", "GA4 Config"),
    FunctionRule("__googtag", "Google Tag", exact=True),
    FunctionRule("__ua", "Universal Analytics", exact=True),
    FunctionRule("__gclidw", "Google Ads Conversion Linker", exact=True),
    FunctionRule("awct", "Google Ads Conversion Tracking"),
    FunctionRule("awud", "Google Ads User-Provided Data"),
    FunctionRule("__sp", "Google Ads Remarketing", exact=True),
    FunctionRule("flc", "Floodlight Counter"),
    FunctionRule("fls", "Floodlight Sales"),
    FunctionRule("__bzi", "LinkedIn Insight", exact=True),
    FunctionRule("__baut", "Microsoft Advertising UET", exact=True),
    FunctionRule("__hjtc", "Hotjar Tracking Code", exact=True),
    FunctionRule("__html", "Custom HTML", exact=True),
    FunctionRule("__img", "Custom Image", exact=True),
    FunctionRule("__cvt_", "Custom Template"),
]

TAG_VENDOR_RULES: List[FunctionRule] = [
    FunctionRule("gaa", "Google Analytics"),
    FunctionRule("googtag", "Google Analytics"),
    FunctionRule("__ua", "Google Analytics", exact=True),
    FunctionRule("awct", "Google Ads"),
    FunctionRule("awud", "Google Ads"),
    FunctionRule("gclidw", "Google Ads"),
    FunctionRule("__sp", "Google Ads", exact=True),
    FunctionRule("flc", "Floodlight"),
    FunctionRule("fls", "Floodlight"),
    FunctionRule("__bzi", "LinkedIn", exact=True),
    FunctionRule("__baut", "Microsoft Advertising", exact=True),
    FunctionRule("__hjtc", "Hotjar", exact=True),
]

# Third-party call signatures looked for inside injected HTML payloads.
HTML_VENDOR_SIGNATURES: List[Tuple[str, str]] = [
    ("fbq(", "Meta (Facebook)"),
    ("ttq.", "TikTok"),
    ("linkedin", "LinkedIn"),
    ("pintrk", "Pinterest"),
    ("uetq", "Microsoft Advertising"),
    ("snaptr(", "Snap"),
    ("twq(", "X (Twitter)"),
    ("hotjar", "Hotjar"),
]

HTML_INJECTION_FUNCTIONS = ("__html", "__img")

VARIABLE_TYPES: Dict[str, str] = {
    "__v": "Data Layer Variable",
    "__u": "URL",
    "__c": "Constant",
    "__k": "First-Party Cookie",
    "__jsm": "Custom JavaScript",
    "__j": "JavaScript Variable",
    "__r": "Random Number",
    "__e": "Custom Event",
    "__cid": "Container ID",
    "__ctv": "Container Version",
    "__dbg": "Debug Mode",
    "__smm": "Lookup Table",
    "__remm": "Regex Table",
    "__aev": "Auto-Event Variable",
    "__f": "HTTP Referrer",
    "__d": "DOM Element",
    "__vis": "Element Visibility",
    "__gas": "Google Analytics Settings",
    "__gtes": "Google Tag: Event Settings",
    "__awec": "User-Provided Data",
}

DATA_LAYER_FUNCTION = "__v"
CONSTANT_FUNCTION = "__c"
URL_FUNCTION = "__u"

# gtm.* lifecycle events and the trigger type they imply.
EVENT_TRIGGER_TYPES: Dict[str, str] = {
    "gtm.js": "Page View",
    "gtm.init_consent": "Consent Initialization",
    "gtm.init": "Initialization",
    "gtm.dom": "DOM Ready",
    "gtm.load": "Window Loaded",
    "gtm.click": "Click - All Elements",
    "gtm.linkClick": "Click - Just Links",
    "gtm.formSubmit": "Form Submission",
    "gtm.historyChange": "History Change",
    "gtm.historyChange-v2": "History Change",
    "gtm.timer": "Timer",
    "gtm.scrollDepth": "Scroll Depth",
    "gtm.elementVisibility": "Element Visibility",
    "gtm.video": "YouTube Video",
    "gtm.triggerGroup": "Trigger Group",
}

OPERATOR_LABELS: Dict[str, str] = {
    "_eq": "==",
    "equals": "==",
    "eq": "==",
    "_cn": "contains",
    "cn": "contains",
    "contains": "contains",
    "_sw": "starts with",
    "sw": "starts with",
    "_ew": "ends with",
    "ew": "ends with",
    "_re": "matches",
    "re": "matches",
    "regex": "matches",
    "_css": "matches CSS selector",
    "_lt": "<",
    "_le": "<=",
    "_gt": ">",
    "_ge": ">=",
}

EQUALITY_OPERATORS = frozenset({"_eq", "equals", "eq"})
CONTAINS_OPERATORS = frozenset({"_cn", "cn", "contains"})


def function_of(record: Any) -> str:
    """Function identifier of a raw record, or empty string."""
    if isinstance(record, dict):
        function = record.get("function")
        if isinstance(function, str):
            return function
    return ""


def classify_tag_type(tag: Dict[str, Any]) -> str:
    """Classify a raw tag into a human-readable kind."""
    function = function_of(tag)

    for rule in TAG_TYPE_RULES:
        if rule.matches(function):
            return rule.label

    measurement = tag.get("vtp_measurementId") or tag.get("vtp_trackingId") or ""
    if isinstance(measurement, str) and measurement.startswith("G-"):
        return "GA4 Config"

    return function or "Unknown"


def classify_tag_vendor(tag: Dict[str, Any]) -> str:
    """Classify the vendor owning a raw tag."""
    function = function_of(tag)

    for rule in TAG_VENDOR_RULES:
        if rule.matches(function):
            return rule.label

    if function in HTML_INJECTION_FUNCTIONS:
        payload = _html_payload(tag)
        for signature, vendor in HTML_VENDOR_SIGNATURES:
            if signature in payload:
                return vendor
        return "Custom"

    return "Other/Unknown"


def _html_payload(tag: Dict[str, Any]) -> str:
    payload = tag.get("vtp_html")
    if function_of(tag) == "__img":
        payload = tag.get("vtp_url", payload)
    if isinstance(payload, list):
        # templated payloads are stored as ["template", chunk, ...]
        return "".join(part for part in payload if isinstance(part, str))
    return payload if isinstance(payload, str) else ""


def classify_variable_type(macro: Dict[str, Any]) -> str:
    """Classify a raw macro into a variable kind."""
    function = function_of(macro)
    return VARIABLE_TYPES.get(function, function or "Unknown")


def operator_label(operator: Optional[str]) -> str:
    """Readable label for a predicate operator."""
    if not operator:
        return "?"
    return OPERATOR_LABELS.get(operator, operator)
