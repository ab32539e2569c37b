"""Presentable overview of an inspected container.

The summary groups decoded records the way a stakeholder report needs them:
totals, tags by vendor and by type, variables by type with examples, trigger
types and every vendor identifier found.
"""

import json
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import yaml
from pydantic import BaseModel, Field

from ..models import ContainerModel, VendorHit


MAX_VARIABLE_EXAMPLES = 3


class GroupCount(BaseModel):
    """One row of a grouped section."""

    key: str
    count: int
    related: List[str] = Field(default_factory=list, description="Distinct related labels or examples")


class ContainerSummary(BaseModel):
    """Grouped overview of one container."""

    container_id: str
    generated_at: datetime = Field(default_factory=datetime.utcnow)

    total_tags: int = 0
    total_triggers: int = 0
    total_variables: int = 0
    total_vendor_ids: int = 0

    tags_by_vendor: List[GroupCount] = Field(default_factory=list)
    tags_by_type: List[GroupCount] = Field(default_factory=list)
    variables_by_type: List[GroupCount] = Field(default_factory=list)
    triggers_by_type: List[GroupCount] = Field(default_factory=list)
    vendor_ids: List[VendorHit] = Field(default_factory=list)
    tag_list: List[Dict[str, str]] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "container_id": self.container_id,
            "generated_at": self.generated_at.isoformat(),
            "totals": {
                "tags": self.total_tags,
                "triggers": self.total_triggers,
                "variables": self.total_variables,
                "vendor_ids": self.total_vendor_ids
            },
            "tags_by_vendor": {g.key: {"count": g.count, "types": g.related} for g in self.tags_by_vendor},
            "tags_by_type": {g.key: {"count": g.count, "vendors": g.related} for g in self.tags_by_type},
            "variables_by_type": {g.key: {"count": g.count, "examples": g.related} for g in self.variables_by_type},
            "triggers_by_type": {g.key: g.count for g in self.triggers_by_type},
            "vendor_ids": [
                {"vendor": v.vendor, "type": v.id_type, "id": v.id_value, "notes": v.extra}
                for v in self.vendor_ids
            ],
            "tags": self.tag_list
        }


def _group(items: Iterable[Any], key_attr: str) -> Dict[str, List[Any]]:
    groups: Dict[str, List[Any]] = defaultdict(list)
    for item in items:
        groups[getattr(item, key_attr) or "Unknown"].append(item)
    return groups


def _distinct(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def build_container_summary(
    container_id: str,
    model: ContainerModel,
    vendors: Optional[List[VendorHit]] = None
) -> ContainerSummary:
    """Group a decoded container into a ContainerSummary."""
    vendors = vendors or []

    by_vendor = _group(model.tags, "vendor")
    by_type = _group(model.tags, "type")
    variables_by_type = _group(model.variables, "type")
    triggers_by_type = _group(model.triggers, "type")

    return ContainerSummary(
        container_id=container_id,
        total_tags=len(model.tags),
        total_triggers=len(model.triggers),
        total_variables=len(model.variables),
        total_vendor_ids=len(vendors),
        tags_by_vendor=[
            GroupCount(key=vendor, count=len(tags), related=_distinct(t.type for t in tags))
            for vendor, tags in sorted(by_vendor.items())
        ],
        tags_by_type=[
            GroupCount(key=tag_type, count=len(tags), related=_distinct(t.vendor for t in tags))
            for tag_type, tags in sorted(by_type.items())
        ],
        variables_by_type=[
            GroupCount(
                key=var_type,
                count=len(variables),
                related=[v.name or v.id for v in variables[:MAX_VARIABLE_EXAMPLES] if v.name or v.id]
            )
            for var_type, variables in sorted(variables_by_type.items())
        ],
        triggers_by_type=[
            GroupCount(key=trigger_type, count=len(triggers))
            for trigger_type, triggers in sorted(triggers_by_type.items())
        ],
        vendor_ids=list(vendors),
        tag_list=[
            {
                "name": tag.name or tag.id,
                "type": tag.type,
                "vendor": tag.vendor,
                "triggers": ", ".join(tag.firing_trigger_ids),
                "teardown": ", ".join(tag.teardown_tag_ids)
            }
            for tag in model.tags
        ]
    )


class SummaryFormatter:
    """Formats a ContainerSummary as text, JSON or YAML."""

    def __init__(self, format_type: str = "text", verbose: bool = False):
        self.format_type = format_type.lower()
        self.verbose = verbose

    def format_summary(self, summary: ContainerSummary) -> str:
        if self.format_type == "json":
            return json.dumps(summary.to_dict(), indent=2, default=str)
        elif self.format_type == "yaml":
            return yaml.dump(summary.to_dict(), default_flow_style=False, sort_keys=False)
        else:
            return self._format_text(summary)

    def _format_text(self, summary: ContainerSummary) -> str:
        """Format summary as human-readable text."""
        lines = []

        lines.append("GTM CONTAINER SUMMARY")
        lines.append("=" * 50)
        lines.append(f"Container ID: {summary.container_id}")
        lines.append(f"Generated: {summary.generated_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        lines.append("")

        lines.append("EXECUTIVE SUMMARY")
        lines.append("-" * 20)
        lines.append(f"Total Tags: {summary.total_tags}")
        lines.append(f"Total Triggers: {summary.total_triggers}")
        lines.append(f"Total Variables: {summary.total_variables}")
        lines.append(f"Detected Vendors: {summary.total_vendor_ids}")
        lines.append("")

        lines.extend(self._section("TAGS BY VENDOR", summary.tags_by_vendor))
        lines.extend(self._section("TAGS BY TYPE", summary.tags_by_type))

        if summary.vendor_ids:
            lines.append("VENDOR IDS DETECTED")
            lines.append("-" * 20)
            for hit in summary.vendor_ids:
                note = f" ({hit.extra})" if hit.extra else ""
                lines.append(f"  {hit.vendor} {hit.id_type}: {hit.id_value}{note}")
            lines.append("")

        lines.extend(self._section("VARIABLES BY TYPE", summary.variables_by_type))
        lines.extend(self._section("TRIGGER TYPES", summary.triggers_by_type))

        if self.verbose and summary.tag_list:
            lines.append("COMPLETE TAG LIST")
            lines.append("-" * 20)
            for tag in summary.tag_list:
                line = f"  {tag['name']} | {tag['type']} | {tag['vendor']} | {tag['triggers']}"
                if tag["teardown"]:
                    line += f" | teardown: {tag['teardown']}"
                lines.append(line)
            lines.append("")

        return "\n".join(lines)

    @staticmethod
    def _section(title: str, groups: List[GroupCount]) -> List[str]:
        if not groups:
            return []
        lines = [title, "-" * 20]
        for group in groups:
            related = f" [{', '.join(group.related)}]" if group.related else ""
            lines.append(f"  {group.key}: {group.count}{related}")
        lines.append("")
        return lines
