"""GTM Inspector: reverse-parse published Google Tag Manager containers."""

__version__ = "0.1.0"

from .models import InspectionReport, InspectionStatus
from .service import ContainerInspector, inspect

__all__ = [
    "__version__",
    "ContainerInspector",
    "InspectionReport",
    "InspectionStatus",
    "inspect",
]
