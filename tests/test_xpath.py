from hypothesis import given
from hypothesis import strategies as st

from capalerts.xpath import XPath, line_numbers


def test_push_renders_predicated_path() -> None:
    xpath = XPath()
    xpath.push("alert")
    xpath.push("info")
    assert str(xpath) == "/alert[1]/info[1]"


def test_sibling_indexes_survive_pop() -> None:
    xpath = XPath()
    xpath.push("alert")
    xpath.push("info")
    xpath.pop()
    assert xpath.push("info") == "/alert[1]/info[2]"
    xpath.push("area")
    assert str(xpath) == "/alert[1]/info[2]/area[1]"


def test_counts_are_scoped_to_parent_occurrence() -> None:
    xpath = XPath()
    xpath.push("alert")
    with xpath.element("info"):
        with xpath.element("area") as first:
            assert first == "/alert[1]/info[1]/area[1]"
    with xpath.element("info"):
        with xpath.element("area") as second:
            assert second == "/alert[1]/info[2]/area[1]"


def test_empty_path_renders_root() -> None:
    xpath = XPath()
    assert str(xpath) == "/"
    xpath.push("alert")
    assert xpath.pop() == "alert"
    assert len(xpath) == 0


@given(st.lists(st.tuples(st.booleans(), st.sampled_from(["a", "b", "c"])), max_size=40))
def test_every_push_yields_a_new_path(operations: list[tuple[bool, str]]) -> None:
    xpath = XPath()
    seen: set[str] = set()
    for push, name in operations:
        if push or not len(xpath):
            path = xpath.push(name)
            assert path not in seen
            seen.add(path)
        else:
            xpath.pop()


def test_line_numbers_map_positions_to_lines() -> None:
    document = b"<alert>\n  <info>\n    <event>x</event>\n  </info>\n  <info/>\n</alert>"
    lines = line_numbers(document)
    assert lines["/alert[1]"] == 1
    assert lines["/alert[1]/info[1]/event[1]"] == 3
    assert lines["/alert[1]/info[2]"] == 5
