"""Locate the embedded container configuration inside served GTM JavaScript.

The published container is an externally controlled, versioned artifact with no
documented format. Locating its configuration object is done with an ordered
cascade of strategies, most specific and cheapest first, each of which is
skipped on any internal failure. The last strategy is an exhaustive, capped
scan over brace-delimited spans.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.container import RawContainerDocument
from .evaluator import evaluate_object_literal
from .extractor import DEFAULT_MAX_SCAN, extract_balanced_object, iter_brace_positions


logger = logging.getLogger(__name__)

CONTAINER_KEYS = ("tags", "macros", "predicates", "rules")


class LocatorLimits(BaseModel):
    """Caps bounding the cost of the locator."""

    max_scan_chars: int = Field(
        default=DEFAULT_MAX_SCAN, ge=1,
        description="Maximum characters scanned for one balanced object"
    )
    max_brace_positions: int = Field(
        default=1000, ge=1,
        description="Most recent brace positions considered by the exhaustive scan"
    )
    min_candidate_length: int = Field(
        default=5000, ge=0,
        description="Minimum extracted length for exhaustive-scan candidates"
    )
    max_candidates: int = Field(
        default=20, ge=1,
        description="Maximum exhaustive-scan candidates parsed"
    )
    tail_margin: int = Field(
        default=100, ge=0,
        description="Trailing characters ignored when collecting brace positions"
    )


def looks_like_container(data: Any) -> bool:
    """Whether a decoded value has the shape of container configuration."""
    return isinstance(data, dict) and any(key in data for key in CONTAINER_KEYS)


def unwrap_resource(data: Any) -> Any:
    """Return the ``resource`` member when present, else the value itself."""
    if isinstance(data, dict) and isinstance(data.get("resource"), dict):
        return data["resource"]
    return data


@dataclass
class LocatorStrategy:
    """One named step of the locator cascade."""
    name: str
    run: Callable[[str, str], Optional[Dict[str, Any]]]


class ContainerLocator:
    """Finds and decodes the container configuration in raw GTM JavaScript."""

    def __init__(self, limits: Optional[LocatorLimits] = None):
        self.limits = limits or LocatorLimits()
        self.strategies: List[LocatorStrategy] = [
            LocatorStrategy("var_data_assignment", self._from_var_data),
            LocatorStrategy("direct_container_assignment", self._from_direct_assignment),
            LocatorStrategy("push_call", self._from_push_calls),
            LocatorStrategy("indexed_container_assignment", self._from_indexed_assignment),
            LocatorStrategy("legacy_resource", self._from_legacy_resource),
            LocatorStrategy("exhaustive_scan", self._from_exhaustive_scan),
        ]

    def locate(self, source_text: str, container_id: str) -> RawContainerDocument:
        """Run the strategy cascade and return the first decoded document.

        Args:
            source_text: Raw container JavaScript
            container_id: Public container id used by id-specific strategies

        Returns:
            Raw container document; empty with ``strategy=None`` when every
            strategy failed
        """
        logger.debug(f"Locating container data in {len(source_text)} characters of JS")

        for strategy in self.strategies:
            try:
                data = strategy.run(source_text, container_id)
            except Exception as e:
                logger.debug(f"Strategy {strategy.name} failed: {e}")
                continue

            if data is None:
                logger.debug(f"Strategy {strategy.name} found nothing")
                continue

            logger.info(f"Container data located via {strategy.name} (keys: {', '.join(sorted(data))})")
            return RawContainerDocument.from_mapping(data, strategy=strategy.name)

        logger.warning(
            f"Could not find container data for {container_id} using any strategy; "
            f"first 500 chars: {source_text[:500]!r}"
        )
        return RawContainerDocument()

    # ============= Strategies =============

    def _extract(self, text: str, start: int) -> Optional[str]:
        return extract_balanced_object(text, start, self.limits.max_scan_chars)

    def _accept(self, data: Any) -> Optional[Dict[str, Any]]:
        data = unwrap_resource(data)
        return data if looks_like_container(data) else None

    def _from_var_data(self, text: str, container_id: str) -> Optional[Dict[str, Any]]:
        match = re.search(r"var\s+data\s*=\s*\{", text)
        if not match:
            return None

        extracted = self._extract(text, match.end() - 1)
        if extracted is None:
            return None

        logger.debug(f"Extracted var data object: {len(extracted)} chars")
        return self._accept(evaluate_object_literal(extracted))

    def _from_direct_assignment(self, text: str, container_id: str) -> Optional[Dict[str, Any]]:
        pattern = r'google_tag_manager\["' + re.escape(container_id) + r'"\]\s*=\s*\{'
        match = re.search(pattern, text)
        if not match:
            return None

        extracted = self._extract(text, match.end() - 1)
        if extracted is None:
            return None
        return self._accept(json.loads(extracted))

    def _from_push_calls(self, text: str, container_id: str) -> Optional[Dict[str, Any]]:
        for match in re.finditer(r"\.push\s*\(\s*\{", text):
            extracted = self._extract(text, match.end() - 1)
            if extracted is None:
                continue

            try:
                data = json.loads(extracted)
            except (ValueError, RecursionError):
                continue

            if isinstance(data, dict) and any(key in data for key in ("tags", "macros", "resource")):
                accepted = self._accept(data)
                if accepted is not None:
                    return accepted

        return None

    def _from_indexed_assignment(self, text: str, container_id: str) -> Optional[Dict[str, Any]]:
        pattern = (
            r"google_tag_manager\s*\[\s*[\"']" + re.escape(container_id) +
            r"[\"']\s*\]\s*=\s*\{"
        )
        match = re.search(pattern, text)
        if not match:
            return None

        extracted = self._extract(text, match.end() - 1)
        if extracted is None:
            return None
        return self._accept(json.loads(extracted))

    def _from_legacy_resource(self, text: str, container_id: str) -> Optional[Dict[str, Any]]:
        match = re.search(r'\{\s*"resource"\s*:\s*\{', text)
        if not match:
            return None

        extracted = self._extract(text, match.start())
        if extracted is None:
            return None

        data = json.loads(extracted)
        if not isinstance(data, dict) or not isinstance(data.get("resource"), dict):
            return None
        return self._accept(data)

    def _from_exhaustive_scan(self, text: str, container_id: str) -> Optional[Dict[str, Any]]:
        limits = self.limits
        starts = list(iter_brace_positions(
            text, limit=limits.max_brace_positions, tail_margin=limits.tail_margin
        ))
        logger.debug(f"Exhaustive scan over {len(starts)} object starts")

        candidates = []
        for start in starts:
            extracted = self._extract(text, start)
            if extracted is not None and len(extracted) > limits.min_candidate_length:
                candidates.append(extracted)

        logger.debug(f"Found {len(candidates)} large objects to check")
        candidates.sort(key=len, reverse=True)

        for extracted in candidates[:limits.max_candidates]:
            try:
                data = json.loads(extracted)
            except (ValueError, RecursionError):
                continue

            if isinstance(data, dict) and (
                isinstance(data.get("tags"), list) or isinstance(data.get("macros"), list)
            ):
                logger.debug(f"Found container data object ({len(extracted)} chars)")
                return data

        return None


def locate_container(source_text: str, container_id: str,
                     limits: Optional[LocatorLimits] = None) -> RawContainerDocument:
    """Locate and decode container configuration from raw GTM JavaScript."""
    return ContainerLocator(limits).locate(source_text, container_id)
