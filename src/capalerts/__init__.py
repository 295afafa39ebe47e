"""capalerts package exports."""

from importlib import metadata

from .builder import CapJsonBuilder, CapXmlBuilder
from .model import Alert
from .parser import CapXmlParser
from .reasons import (
    CapError,
    CapSyntaxError,
    CapValidationError,
    Level,
    NotCapError,
    Reason,
    Reasons,
    ReasonType,
)
from .validator import CapValidator

try:  # pragma: no cover
	__version__ = metadata.version("capalerts")
except metadata.PackageNotFoundError:  # pragma: no cover
	__version__ = "0.0.0"

__all__ = [
    "Alert",
    "CapError",
    "CapJsonBuilder",
    "CapSyntaxError",
    "CapValidationError",
    "CapValidator",
    "CapXmlBuilder",
    "CapXmlParser",
    "Level",
    "NotCapError",
    "Reason",
    "ReasonType",
    "Reasons",
    "__version__",
]
