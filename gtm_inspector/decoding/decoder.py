"""Container model decoder.

Turns a RawContainerDocument into normalized tag, trigger and variable records.
Triggers have no first-class representation in the published container; they
are synthesized by joining each rule with the predicates it references.
Every record is decoded in isolation: a malformed record becomes a placeholder
and an issue, never an aborted batch.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from ..errors import ResilientDecoder
from ..models.container import (
    ContainerModel,
    FiringOption,
    RawContainerDocument,
    TagRecord,
    TriggerRecord,
    VariableRecord
)
from .classification import (
    CONTAINS_OPERATORS,
    DATA_LAYER_FUNCTION,
    EQUALITY_OPERATORS,
    EVENT_TRIGGER_TYPES,
    classify_tag_type,
    classify_tag_vendor,
    classify_variable_type,
    function_of
)
from .names import (
    TAG_NAME_RESOLVERS,
    TRIGGER_NAME_RESOLVERS,
    VARIABLE_NAME_RESOLVERS,
    NameContext,
    resolve_name
)
from .rules import Condition, RuleShape, normalize_rule, resolve_conditions


logger = logging.getLogger(__name__)

MAX_SUMMARY_CONDITIONS = 3
MAX_EVENT_NAME_LENGTH = 100

_URL_LIKE = re.compile(
    r"^(?:[a-z][a-z0-9+.-]*:)?//|^www\.|^/|\.(?:com|net|org|io|html?|php|aspx?)(?:[/?#:]|$)",
    re.IGNORECASE
)


def _flag(value: Any) -> bool:
    return value is True or value == 1 or value == "true"


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def tag_identifier(tag: Any, position: int) -> str:
    """Stable id of a raw tag: numeric tag_id, else function, else position."""
    if isinstance(tag, dict):
        tag_id = tag.get("tag_id")
        if isinstance(tag_id, int) and not isinstance(tag_id, bool):
            return str(tag_id)
        function = function_of(tag)
        if function:
            return function
    return f"tag_{position}"


def extract_consent(tag: Dict[str, Any]) -> Optional[frozenset]:
    """Consent tokens from a ``["list", token, ...]`` field, else None."""
    consent = tag.get("consent")
    if not (isinstance(consent, list) and consent and consent[0] == "list"):
        return None

    tokens = consent[1:]
    if not tokens or not all(isinstance(token, str) for token in tokens):
        return None
    return frozenset(tokens)


def extract_firing_option(tag: Dict[str, Any]) -> FiringOption:
    """Once-per-event takes precedence over once-per-page."""
    if _flag(tag.get("once_per_event")):
        return FiringOption.ONCE_PER_EVENT
    if _flag(tag.get("once_per_load")) or _flag(tag.get("once_per_page")):
        return FiringOption.ONCE_PER_PAGE
    return FiringOption.UNLIMITED


def extract_tag_references(value: Any) -> List[str]:
    """Tag ids from ``["list", ["tag", <id>, ...], ...]``; malformed entries are skipped."""
    if not (isinstance(value, list) and value and value[0] == "list"):
        return []

    ids = []
    for entry in value[1:]:
        if not (isinstance(entry, list) and len(entry) >= 2 and entry[0] == "tag"):
            continue
        ref = entry[1]
        if isinstance(ref, bool) or not isinstance(ref, (int, str)) or ref == "":
            continue
        ids.append(str(ref))
    return ids


def is_plausible_event_name(operand: str) -> bool:
    """Reject URL-like or oversized operands that are not event names."""
    if not operand or len(operand) > MAX_EVENT_NAME_LENGTH:
        return False
    return not _URL_LIKE.search(operand)


def find_event_name(conditions: Sequence[Condition]) -> str:
    """Literal event name tested by a rule's positive conditions."""
    for condition in conditions:
        if condition.negated or not condition.tests_event:
            continue
        if condition.operator not in EQUALITY_OPERATORS | CONTAINS_OPERATORS:
            continue
        if is_plausible_event_name(condition.operand):
            return condition.operand
    return ""


def classify_trigger(conditions: Sequence[Condition], event_name: str) -> str:
    """Coarse trigger type from its positive conditions."""
    if event_name:
        label = EVENT_TRIGGER_TYPES.get(event_name)
        extra = [c for c in conditions if not (c.tests_event and c.operand == event_name)]
        if label is None:
            return "Custom Event"
        if extra:
            return "Page View (conditional)" if label == "Page View" else f"{label} (conditional)"
        return label

    if conditions:
        first = conditions[0]
        if first.operator in EQUALITY_OPERATORS and first.tests_event:
            return "Page View"
        if first.operator in CONTAINS_OPERATORS:
            return "Page View (conditional)"

    return "Custom Trigger"


def summarize_variable(macro: Dict[str, Any]) -> str:
    """Short human-readable description of a variable's configuration."""
    function = function_of(macro)
    name = macro.get("vtp_name")
    parts = []

    if function == DATA_LAYER_FUNCTION and name:
        version = macro.get("vtp_dataLayerVersion")
        parts.append(f"dataLayer: {name}" + (f" (v{version})" if version else ""))
    elif function == "__k" and name:
        parts.append(f"Cookie: {name}")
    elif function == "__j" and name:
        parts.append(f"Global: {name}")
    elif name:
        parts.append(f"Name: {name}")
    elif macro.get("vtp_component"):
        parts.append(f"URL component: {macro['vtp_component']}")
    elif macro.get("vtp_value") is not None:
        parts.append("Value: " + _stringify(macro["vtp_value"])[:50])
    elif function == "__jsm" and isinstance(macro.get("vtp_javascript"), (str, list)):
        parts.append(f"Custom script ({len(_stringify(macro['vtp_javascript']))} chars)")

    table = macro.get("vtp_map")
    if isinstance(table, list) and table and table[0] == "list":
        parts.append(f"{len(table) - 1} mapping(s)")

    if _flag(macro.get("vtp_setDefaultValue")):
        parts.append("default: " + _stringify(macro.get("vtp_defaultValue")))

    return "; ".join(parts)


class ContainerDecoder(ResilientDecoder):
    """Decodes raw container documents into normalized records."""

    def __init__(self, name: str = "ContainerDecoder"):
        self.name = name
        super().__init__()

    def decode(self, doc: RawContainerDocument) -> ContainerModel:
        """Decode tags, triggers and variables of one container document.

        Args:
            doc: Raw container document from the locator

        Returns:
            ContainerModel whose record counts equal the source array lengths
        """
        self.issue_collector = self._create_issue_collector()

        shapes = self._rule_shapes(doc.rules)
        tag_ids = [tag_identifier(tag, i) for i, tag in enumerate(doc.tags)]

        firing: Dict[int, List[str]] = {}
        blocking: Dict[int, List[str]] = {}
        for rule_position, shape in enumerate(shapes):
            trigger_id = f"trigger_{rule_position}"
            for tag_position in shape.fires:
                firing.setdefault(tag_position, []).append(trigger_id)
            for tag_position in shape.blocks:
                blocking.setdefault(tag_position, []).append(trigger_id)

        tags = [
            self._isolated_tag(tag, i, doc.entities, firing.get(i, []), blocking.get(i, []))
            for i, tag in enumerate(doc.tags)
        ]
        triggers = [
            self._isolated_trigger(rule, i, shapes[i], doc.predicates, doc.entities, tag_ids)
            for i, rule in enumerate(doc.rules)
        ]
        variables = [
            self._isolated_variable(macro, i)
            for i, macro in enumerate(doc.macros)
        ]

        logger.info(
            f"Decoded {len(tags)} tags, {len(triggers)} triggers, {len(variables)} variables"
        )

        return ContainerModel(
            tags=tags,
            triggers=triggers,
            variables=variables,
            issues=self.issue_collector.drain()
        )

    def _rule_shapes(self, rules: Sequence[Any]) -> List[RuleShape]:
        shapes = []
        for i, rule in enumerate(rules):
            shape = None
            with self.issue_context("normalize_rule", position=i):
                shape = normalize_rule(rule)
            shapes.append(shape or RuleShape())
        return shapes

    # ============= Tags =============

    def _isolated_tag(self, tag: Any, position: int, entities: Dict[str, Any],
                      firing: List[str], blocking: List[str]) -> TagRecord:
        record = None
        with self.issue_context("decode_tag", position=position):
            record = self.decode_tag(tag, position, entities, firing, blocking)

        if record is None:
            record = TagRecord(
                id=tag_identifier(tag, position),
                position=position,
                type="Unknown",
                firing_trigger_ids=firing,
                blocking_trigger_ids=blocking,
                raw_source=tag
            )
        return record

    def decode_tag(self, tag: Any, position: int, entities: Dict[str, Any],
                   firing: Sequence[str] = (), blocking: Sequence[str] = ()) -> TagRecord:
        """Decode a single raw tag map."""
        if not isinstance(tag, dict):
            raise TypeError(f"tag at position {position} is {type(tag).__name__}, not a map")

        ctx = NameContext(position=position, entities=entities)

        return TagRecord(
            id=tag_identifier(tag, position),
            position=position,
            name=resolve_name(tag, ctx, TAG_NAME_RESOLVERS),
            type=classify_tag_type(tag),
            vendor=classify_tag_vendor(tag),
            priority=_as_int(tag.get("priority")),
            firing_trigger_ids=list(firing),
            blocking_trigger_ids=list(blocking),
            consent_requirements=extract_consent(tag),
            firing_option=extract_firing_option(tag),
            setup_tag_ids=extract_tag_references(tag.get("setup_tags")),
            teardown_tag_ids=extract_tag_references(tag.get("teardown_tags")),
            raw_source=tag
        )

    # ============= Triggers =============

    def _isolated_trigger(self, rule: Any, position: int, shape: RuleShape,
                          predicates: Sequence[Any], entities: Dict[str, Any],
                          tag_ids: Sequence[str]) -> TriggerRecord:
        record = None
        with self.issue_context("decode_trigger", position=position):
            record = self.decode_trigger(rule, position, shape, predicates, entities, tag_ids)

        if record is None:
            record = TriggerRecord(
                id=f"trigger_{position}",
                position=position,
                name=f"Trigger #{position + 1}",
                raw_source=rule
            )
        return record

    def decode_trigger(self, rule: Any, position: int, shape: RuleShape,
                       predicates: Sequence[Any], entities: Dict[str, Any],
                       tag_ids: Sequence[str] = ()) -> TriggerRecord:
        """Synthesize a trigger from one rule and the predicates it references."""
        conditions = resolve_conditions(shape.conditions, predicates)
        exceptions = resolve_conditions(shape.exceptions, predicates)
        event_name = find_event_name(conditions)

        ctx = NameContext(
            position=position,
            entities=entities,
            predicates=predicates,
            positive_operands=[c.operand for c in conditions]
        )

        conditions_summary = " AND ".join(
            c.describe() for c in conditions[:MAX_SUMMARY_CONDITIONS]
        )
        exceptions_summary = " OR ".join(c.describe() for c in exceptions)

        return TriggerRecord(
            id=f"trigger_{position}",
            position=position,
            name=resolve_name(rule, ctx, TRIGGER_NAME_RESOLVERS, default=f"Trigger #{position + 1}"),
            type=classify_trigger(conditions, event_name),
            event_name=event_name,
            conditions_summary=conditions_summary or "All Pages",
            exceptions_summary=exceptions_summary or "None",
            tag_ids=[tag_ids[i] for i in shape.fires if 0 <= i < len(tag_ids)],
            raw_source=rule
        )

    # ============= Variables =============

    def _isolated_variable(self, macro: Any, position: int) -> VariableRecord:
        record = None
        with self.issue_context("decode_variable", position=position):
            record = self.decode_variable(macro, position)

        if record is None:
            function = function_of(macro)
            record = VariableRecord(
                id=function or f"var_{position}",
                position=position,
                name=f"Variable #{position + 1} ({function or 'unknown'})",
                raw_source=macro
            )
        return record

    def decode_variable(self, macro: Any, position: int) -> VariableRecord:
        """Decode a single raw macro map."""
        if not isinstance(macro, dict):
            raise TypeError(f"macro at position {position} is {type(macro).__name__}, not a map")

        function = function_of(macro)
        ctx = NameContext(position=position)

        default_value = ""
        if _flag(macro.get("vtp_setDefaultValue")):
            default_value = _stringify(macro.get("vtp_defaultValue"))

        data_layer_path = ""
        if function == DATA_LAYER_FUNCTION and isinstance(macro.get("vtp_name"), str):
            data_layer_path = macro["vtp_name"]

        return VariableRecord(
            id=function or f"var_{position}",
            position=position,
            name=resolve_name(
                macro, ctx, VARIABLE_NAME_RESOLVERS,
                default=f"Variable #{position + 1} ({function or 'unknown'})"
            ),
            type=classify_variable_type(macro),
            default_value=default_value,
            data_layer_path=data_layer_path,
            details_summary=summarize_variable(macro),
            raw_source=macro
        )


def decode_container(doc: RawContainerDocument) -> ContainerModel:
    """Decode a raw container document with a fresh decoder."""
    return ContainerDecoder().decode(doc)
