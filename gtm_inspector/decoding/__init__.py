"""Decoding of raw GTM container documents into normalized records."""

from ..models.container import ContainerModel
from .decoder import ContainerDecoder, decode_container
from .rules import Condition, RuleShape, normalize_predicate, normalize_rule

__all__ = [
    "ContainerDecoder",
    "ContainerModel",
    "decode_container",
    "Condition",
    "RuleShape",
    "normalize_predicate",
    "normalize_rule",
]
