"""Optional XML Schema validation for CAP documents."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Protocol

from lxml import etree

from .model import CAP10_XMLNS, CAP11_XMLNS, CAP12_XMLNS
from .reasons import Reasons, ReasonType
from .sources import CachedSource
from .xpath import line_numbers

LOGGER = logging.getLogger(__name__)

SCHEMA_STEMS = {
    CAP10_XMLNS: "cap10",
    CAP11_XMLNS: "cap11",
    CAP12_XMLNS: "cap12",
}


class SchemaValidator(Protocol):
    def validate(self, source: CachedSource, xmlns: str) -> Reasons:
        ...


class XsdSchemaValidator:
    """Validate documents against the CAP XSD files found in ``schema_dir``.

    Expects ``cap10.xsd``, ``cap11.xsd`` and ``cap12.xsd``; strict mode
    loads ``capNN_extended.xsd`` instead. Schemas load on first use.
    """

    def __init__(self, schema_dir: Path, strict: bool = False) -> None:
        self.schema_dir = Path(schema_dir)
        self.strict = strict
        self._schemas: dict[str, etree.XMLSchema] = {}
        self._lock = threading.Lock()

    def schema_path(self, xmlns: str) -> Path:
        stem = SCHEMA_STEMS[xmlns]
        suffix = "_extended" if self.strict else ""
        return self.schema_dir / f"{stem}{suffix}.xsd"

    def schema_for(self, xmlns: str) -> etree.XMLSchema:
        with self._lock:
            schema = self._schemas.get(xmlns)
            if schema is None:
                path = self.schema_path(xmlns)
                LOGGER.debug("Loading CAP schema %s", path)
                schema = etree.XMLSchema(etree.parse(str(path)))
                self._schemas[xmlns] = schema
            return schema

    def validate(self, source: CachedSource, xmlns: str) -> Reasons:
        schema = self.schema_for(xmlns)
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        document = etree.parse(source.open(), parser)
        reasons = Reasons()
        if schema.validate(document):
            return reasons
        positions = _positions_by_line(line_numbers(source.data))
        for error in schema.error_log:
            xpath = positions.get(error.line, "/")
            reasons.add(xpath, ReasonType.OTHER, f"line {error.line}: {error.message}")
        return reasons


def _positions_by_line(lines: dict[str, int]) -> dict[int, str]:
    """Deepest element position starting on each line."""
    positions: dict[int, str] = {}
    for xpath, line in lines.items():
        current = positions.get(line)
        if current is None or xpath.count("/") >= current.count("/"):
            positions[line] = xpath
    return positions
