"""Vendor identifier detection for GTM container source."""

from .patterns import PatternLibrary, VendorSignature, init_default_patterns, patterns
from .scanner import scan_vendors

__all__ = [
    "PatternLibrary",
    "VendorSignature",
    "init_default_patterns",
    "patterns",
    "scan_vendors",
]
