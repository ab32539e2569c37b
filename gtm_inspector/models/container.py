"""Pydantic models for decoded GTM container data.

This module defines the raw container document located inside the published
container JavaScript and the normalized records (tags, triggers, variables and
vendor identifiers) produced from it. Every record is created once per decode
pass and is immutable afterwards.
"""

import json
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field

from ..errors import DecodeIssue


TAG_COLUMNS = [
    "containerId", "id", "name", "type", "vendor", "priority", "triggers",
    "consent", "firingOption", "setupTags", "raw"
]

TRIGGER_COLUMNS = [
    "containerId", "id", "name", "type", "eventName", "conditionsSummary",
    "exceptions", "raw"
]

VARIABLE_COLUMNS = [
    "containerId", "id", "name", "type", "defaultValue", "dataLayerPath",
    "detailsSummary", "raw"
]

VENDOR_COLUMNS = ["containerId", "vendor", "type", "id", "extra"]


def _raw_json(raw: Any) -> str:
    """Serialize a raw source record for the ``raw`` column."""
    try:
        return json.dumps(raw, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return str(raw)


class FiringOption(str, Enum):
    """How often a tag may fire."""
    UNLIMITED = "Unlimited"
    ONCE_PER_EVENT = "Once per event"
    ONCE_PER_PAGE = "Once per page"


class RawContainerDocument(BaseModel):
    """Decoded but not yet normalized container configuration."""

    tags: List[Any] = Field(default_factory=list, description="Raw tag maps")
    predicates: List[Any] = Field(default_factory=list, description="Condition tuples")
    rules: List[Any] = Field(default_factory=list, description="Firing-logic tuples")
    macros: List[Any] = Field(default_factory=list, description="Raw variable maps")
    entities: Dict[str, Any] = Field(
        default_factory=dict,
        description="Sparse index -> metadata table, keyed by stringified index"
    )
    strategy: Optional[str] = Field(
        default=None,
        description="Locator strategy that produced this document (None if all failed)"
    )

    class Config:
        """Pydantic configuration."""
        frozen = True

    @classmethod
    def from_mapping(cls, data: Dict[str, Any], strategy: Optional[str] = None) -> "RawContainerDocument":
        """Build a document from a decoded container mapping.

        Fields with an unexpected shape are dropped rather than rejected, since
        the published format carries no contract.
        """
        def as_list(value: Any) -> List[Any]:
            return list(value) if isinstance(value, list) else []

        entities = data.get("entities")
        if isinstance(entities, dict):
            entity_map = {str(key): value for key, value in entities.items()}
        elif isinstance(entities, list):
            entity_map = {str(i): value for i, value in enumerate(entities) if value is not None}
        else:
            entity_map = {}

        return cls(
            tags=as_list(data.get("tags")),
            predicates=as_list(data.get("predicates")),
            rules=as_list(data.get("rules")),
            macros=as_list(data.get("macros")),
            entities=entity_map,
            strategy=strategy
        )

    @property
    def located(self) -> bool:
        """Whether any locator strategy produced this document."""
        return self.strategy is not None

    @property
    def is_empty(self) -> bool:
        """Whether the document has no tags, rules or macros."""
        return not (self.tags or self.rules or self.macros)


class TagRecord(BaseModel):
    """Normalized tag."""

    id: str = Field(description="Stable id (tag_id, function, or positional)")
    position: int = Field(description="Index in the source tags array")
    name: str = Field(default="", description="Best-effort human label")
    type: str = Field(default="Unknown", description="Classified tag kind")
    vendor: str = Field(default="Other/Unknown", description="Classified owning vendor")
    priority: int = Field(default=0, description="Higher fires earlier")
    firing_trigger_ids: List[str] = Field(default_factory=list)
    blocking_trigger_ids: List[str] = Field(default_factory=list)
    consent_requirements: Optional[FrozenSet[str]] = Field(
        default=None,
        description="Consent-category tokens, None when not declared"
    )
    firing_option: FiringOption = Field(default=FiringOption.UNLIMITED)
    setup_tag_ids: List[str] = Field(default_factory=list)
    teardown_tag_ids: List[str] = Field(default_factory=list)
    raw_source: Any = Field(default=None, description="Untouched raw record")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def consent_label(self) -> str:
        """Consent requirements rendered for display."""
        if not self.consent_requirements:
            return "None"
        return ", ".join(sorted(self.consent_requirements))

    def to_row(self, container_id: str) -> Dict[str, Any]:
        """Row for the tags table."""
        return {
            "containerId": container_id,
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "vendor": self.vendor,
            "priority": self.priority,
            "triggers": ", ".join(self.firing_trigger_ids),
            "consent": self.consent_label,
            "firingOption": self.firing_option.value,
            "setupTags": ", ".join(self.setup_tag_ids),
            "raw": _raw_json(self.raw_source)
        }


class TriggerRecord(BaseModel):
    """Trigger synthesized from one rule and the predicates it references."""

    id: str = Field(description="Synthetic id derived from rule position")
    position: int = Field(description="Index in the source rules array")
    name: str = Field(default="")
    type: str = Field(default="Custom Trigger")
    event_name: str = Field(default="", description="Literal event name when tested")
    conditions_summary: str = Field(default="All Pages")
    exceptions_summary: str = Field(default="None")
    tag_ids: List[str] = Field(default_factory=list, description="Tags this rule fires")
    raw_source: Any = Field(default=None)

    class Config:
        """Pydantic configuration."""
        frozen = True

    def to_row(self, container_id: str) -> Dict[str, Any]:
        """Row for the triggers table."""
        return {
            "containerId": container_id,
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "eventName": self.event_name,
            "conditionsSummary": self.conditions_summary,
            "exceptions": self.exceptions_summary,
            "raw": _raw_json(self.raw_source)
        }


class VariableRecord(BaseModel):
    """Normalized variable (GTM macro)."""

    id: str
    position: int
    name: str = Field(default="")
    type: str = Field(default="Unknown")
    default_value: str = Field(default="", description="Only set when default is enabled")
    data_layer_path: str = Field(default="", description="Only set for dataLayer variables")
    details_summary: str = Field(default="")
    raw_source: Any = Field(default=None)

    class Config:
        """Pydantic configuration."""
        frozen = True

    def to_row(self, container_id: str) -> Dict[str, Any]:
        """Row for the variables table."""
        return {
            "containerId": container_id,
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "defaultValue": self.default_value,
            "dataLayerPath": self.data_layer_path,
            "detailsSummary": self.details_summary,
            "raw": _raw_json(self.raw_source)
        }


class VendorHit(BaseModel):
    """A third-party identifier found in the container source."""

    vendor: str
    id_type: str
    id_value: str
    extra: str = Field(default="")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def key(self) -> tuple:
        """Deduplication key."""
        return (self.vendor, self.id_type, self.id_value)

    def to_row(self, container_id: str) -> Dict[str, Any]:
        """Row for the vendors table."""
        return {
            "containerId": container_id,
            "vendor": self.vendor,
            "type": self.id_type,
            "id": self.id_value,
            "extra": self.extra
        }


class ContainerModel(BaseModel):
    """Normalized result of one decode pass."""

    tags: List[TagRecord] = Field(default_factory=list)
    triggers: List[TriggerRecord] = Field(default_factory=list)
    variables: List[VariableRecord] = Field(default_factory=list)
    issues: List[DecodeIssue] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.tags or self.triggers or self.variables)
