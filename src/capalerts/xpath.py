"""Positional XPath tracking for diagnostics."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from io import BytesIO

from lxml import etree


class XPath:
    """Stack of open elements rendered as a fully-predicated XPath.

    Sibling indexes are counted per parent occurrence and survive pops, so
    the second ``<info>`` under the first ``<alert>`` renders as
    ``/alert[1]/info[2]`` even after the first one was closed.
    """

    def __init__(self) -> None:
        self._elements: list[tuple[str, int]] = []
        self._counts: dict[str, int] = {}

    def push(self, element: str) -> str:
        key = f"{self._render()}/{element}"
        index = self._counts.get(key, 0) + 1
        self._counts[key] = index
        self._elements.append((element, index))
        return str(self)

    def pop(self) -> str:
        element, _ = self._elements.pop()
        return element

    @contextmanager
    def element(self, name: str) -> Iterator[str]:
        try:
            yield self.push(name)
        finally:
            self.pop()

    def _render(self) -> str:
        return "".join(f"/{name}[{index}]" for name, index in self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __str__(self) -> str:
        return self._render() or "/"

    def __repr__(self) -> str:
        return f"XPath({str(self)!r})"


def line_numbers(document: bytes) -> dict[str, int]:
    """Map the XPath of every element in ``document`` to its source line."""
    xpath = XPath()
    lines: dict[str, int] = {}
    events = etree.iterparse(
        BytesIO(document),
        events=("start", "end"),
        resolve_entities=False,
        no_network=True,
    )
    for event, element in events:
        if event == "start":
            lines[xpath.push(etree.QName(element).localname)] = element.sourceline
        else:
            xpath.pop()
    return lines
