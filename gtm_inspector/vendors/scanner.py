"""Regex sweep for third-party vendor identifiers in raw container source.

The scan runs on the raw text independently of the structural decode, so vendor
ids are still reported when the container format is not recognized.
"""

import json
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..models.container import TagRecord, VendorHit
from .patterns import PatternLibrary, patterns


logger = logging.getLogger(__name__)


def _tag_reference_counts(tags: Sequence[TagRecord], ids: Set[str]) -> Dict[str, int]:
    """Number of tags whose raw source mentions each id."""
    counts: Dict[str, int] = {}
    for tag in tags:
        try:
            raw = json.dumps(tag.raw_source, ensure_ascii=False)
        except (TypeError, ValueError):
            raw = str(tag.raw_source)
        for id_value in ids:
            if id_value in raw:
                counts[id_value] = counts.get(id_value, 0) + 1
    return counts


def scan_vendors(source_text: str, tags: Optional[Sequence[TagRecord]] = None,
                 library: Optional[PatternLibrary] = None) -> List[VendorHit]:
    """Find vendor identifiers in container source.

    Args:
        source_text: Raw container JavaScript
        tags: Decoded tags; when given, ``extra`` notes how many reference the id
        library: Pattern library to use (defaults to the global one)

    Returns:
        One VendorHit per distinct (vendor, id type, id value), in pattern
        order and then source order
    """
    library = library or patterns
    seen: Set[Tuple[str, str, str]] = set()
    found: List[Tuple[str, str, str]] = []

    for name in library.names():
        signature = library.get_signature(name)
        for id_value in library.iter_matches(name, source_text):
            key = (signature.vendor, signature.id_type, id_value)
            if key not in seen:
                seen.add(key)
                found.append(key)

    counts: Dict[str, int] = {}
    if tags:
        counts = _tag_reference_counts(tags, {id_value for _, _, id_value in found})

    hits = []
    for vendor, id_type, id_value in found:
        extra = ""
        if id_value in counts:
            extra = f"referenced by {counts[id_value]} tag(s)"
        hits.append(VendorHit(vendor=vendor, id_type=id_type, id_value=id_value, extra=extra))

    logger.info(f"Detected {len(hits)} vendor identifier(s)")
    return hits
