"""Compiled regex patterns for third-party vendor identifiers."""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Pattern


@dataclass(frozen=True)
class VendorSignature:
    """Metadata attached to a vendor id pattern.

    ``group`` selects the capture group holding the identifier (0 for the
    whole match).
    """
    vendor: str
    id_type: str
    group: int = 0


class PatternLibrary:
    """Manages compiled regex patterns with their vendor signatures."""

    def __init__(self):
        self._patterns: Dict[str, Pattern[str]] = {}
        self._pattern_configs: Dict[str, Dict[str, Any]] = {}

    def add_pattern(self, name: str, pattern: str, signature: VendorSignature,
                    flags: int = 0, description: str = "") -> bool:
        """Add a compiled regex pattern to the library.

        Args:
            name: Unique name for the pattern
            pattern: Regex pattern string
            signature: Vendor and id type reported for matches
            flags: Regex flags
            description: Human-readable description

        Returns:
            True if pattern was successfully compiled and added
        """
        try:
            compiled = re.compile(pattern, flags)
        except re.error:
            return False

        if signature.group > compiled.groups:
            return False

        self._patterns[name] = compiled
        self._pattern_configs[name] = {
            "pattern": pattern,
            "flags": flags,
            "description": description,
            "signature": signature
        }
        return True

    def get_pattern(self, name: str) -> Optional[Pattern[str]]:
        """Get a compiled pattern by name."""
        return self._patterns.get(name)

    def get_signature(self, name: str) -> Optional[VendorSignature]:
        """Get the vendor signature of a pattern."""
        config = self._pattern_configs.get(name)
        return config["signature"] if config else None

    def iter_matches(self, name: str, text: str) -> Iterator[str]:
        """Yield every identifier matched by a named pattern, in source order."""
        pattern = self.get_pattern(name)
        signature = self.get_signature(name)
        if pattern is None or signature is None:
            return
        for match in pattern.finditer(text):
            value = match.group(signature.group)
            if value:
                yield value

    def names(self) -> List[str]:
        """Pattern names in registration order."""
        return list(self._patterns)


# Global pattern library instance
patterns = PatternLibrary()


def init_default_patterns(library: PatternLibrary = patterns) -> PatternLibrary:
    """Register the default vendor id patterns."""

    library.add_pattern(
        "ga4_measurement_id",
        r"(?<![A-Za-z0-9_-])G-[A-Z0-9]{7,12}(?![A-Za-z0-9])",
        VendorSignature("Google Analytics", "GA4 Measurement ID"),
        description="GA4 Measurement ID"
    )

    library.add_pattern(
        "ua_property_id",
        r"(?<![A-Za-z0-9_-])UA-\d{4,10}-\d{1,4}(?!\d)",
        VendorSignature("Google Analytics", "UA Property ID"),
        description="Universal Analytics property ID"
    )

    library.add_pattern(
        "google_ads_conversion_id",
        r"(?<![A-Za-z0-9_-])AW-\d{6,12}(?!\d)",
        VendorSignature("Google Ads", "Conversion ID"),
        description="Google Ads conversion ID"
    )

    library.add_pattern(
        "floodlight_advertiser_id",
        r"(?<![A-Za-z0-9_-])DC-\d{6,12}(?!\d)",
        VendorSignature("Floodlight", "Advertiser ID"),
        description="Campaign Manager Floodlight advertiser ID"
    )

    library.add_pattern(
        "meta_pixel_id",
        r"fbq\(\s*\\?['\"]init\\?['\"]\s*,\s*\\?['\"](\d{15,16})\\?['\"]",
        VendorSignature("Meta (Facebook)", "Pixel ID", group=1),
        description="Meta pixel init call"
    )

    library.add_pattern(
        "tiktok_pixel_id",
        r"ttq\.load\(\s*\\?['\"]([A-Z0-9]{20,})\\?['\"]",
        VendorSignature("TikTok", "Pixel ID", group=1),
        description="TikTok pixel load call"
    )

    library.add_pattern(
        "linkedin_partner_id",
        r"_linkedin_partner_id\s*=\s*\\?['\"](\d+)\\?['\"]",
        VendorSignature("LinkedIn", "Partner ID", group=1),
        description="LinkedIn Insight partner ID"
    )

    library.add_pattern(
        "pinterest_tag_id",
        r"pintrk\(\s*\\?['\"]load\\?['\"]\s*,\s*\\?['\"](\d+)\\?['\"]",
        VendorSignature("Pinterest", "Tag ID", group=1),
        description="Pinterest tag load call"
    )

    library.add_pattern(
        "microsoft_uet_tag_id",
        r"\bti\s*:\s*\\?['\"](\d{5,12})\\?['\"]",
        VendorSignature("Microsoft Advertising", "UET Tag ID", group=1),
        description="Microsoft Advertising UET tag id"
    )

    library.add_pattern(
        "hotjar_site_id",
        r"\bhjid\s*:\s*\\?['\"]?(\d{5,10})",
        VendorSignature("Hotjar", "Site ID", group=1),
        description="Hotjar site id"
    )

    return library


init_default_patterns()
