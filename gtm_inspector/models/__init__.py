"""Data models for GTM container inspection."""

from .container import (
    TAG_COLUMNS,
    TRIGGER_COLUMNS,
    VARIABLE_COLUMNS,
    VENDOR_COLUMNS,
    ContainerModel,
    FiringOption,
    RawContainerDocument,
    TagRecord,
    TriggerRecord,
    VariableRecord,
    VendorHit
)
from .report import InspectionReport, InspectionStatus

__all__ = [
    "TAG_COLUMNS",
    "TRIGGER_COLUMNS",
    "VARIABLE_COLUMNS",
    "VENDOR_COLUMNS",
    "ContainerModel",
    "FiringOption",
    "RawContainerDocument",
    "TagRecord",
    "TriggerRecord",
    "VariableRecord",
    "VendorHit",
    "InspectionReport",
    "InspectionStatus",
]
