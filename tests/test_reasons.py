import pytest
from hypothesis import given
from hypothesis import strategies as st

from capalerts.reasons import (
    CapValidationError,
    Level,
    Reason,
    Reasons,
    ReasonType,
)


def test_levels_are_ordered() -> None:
    assert Level.INFO < Level.RECOMMENDATION < Level.WARNING < Level.ERROR
    assert Level.WARNING.higher_levels() == [Level.ERROR]
    assert Level.ERROR.higher_levels() == []


def test_reason_renders_message_with_params() -> None:
    reason = Reason("/alert[1]/references[1]", ReasonType.CIRCULAR_REFERENCE, "a,b,c")
    assert reason.level is Level.ERROR
    assert reason.source == "CAP"
    assert reason.message == 'Invalid <references>: "a,b,c". Alert cannot reference itself.'


def test_reason_equality_and_prefix() -> None:
    reason = Reason("/info[1]", ReasonType.OTHER, "boom")
    assert reason == Reason("/info[1]", ReasonType.OTHER, "boom")
    assert reason != Reason("/info[2]", ReasonType.OTHER, "boom")
    prefixed = reason.prefix_with_xpath("/feed[1]")
    assert prefixed.xpath == "/feed[1]/info[1]"
    assert prefixed.params == ("boom",)
    assert len({reason, Reason("/info[1]", ReasonType.OTHER, "boom")}) == 1


def test_reasons_group_by_level_in_insertion_order() -> None:
    reasons = Reasons()
    reasons.add("/a", ReasonType.TEXT_CONTAINS_HTML_TAGS, "note")
    reasons.add("/b", ReasonType.OTHER, "first")
    reasons.add("/c", ReasonType.OTHER, "second")
    assert [reason.xpath for reason in reasons.get_with_level(Level.ERROR)] == ["/b", "/c"]
    assert [reason.xpath for reason in reasons] == ["/a", "/b", "/c"]
    assert reasons.contains_with_level(Level.WARNING)
    assert not reasons.contains_with_level(Level.RECOMMENDATION)
    assert reasons.contains_with_level_or_higher(Level.RECOMMENDATION)
    assert len(reasons) == 3


def test_raise_for_level() -> None:
    reasons = Reasons([Reason("/a", ReasonType.POSTDATED_REFERENCE, "x,y,z")])
    reasons.raise_for_level(Level.ERROR)
    with pytest.raises(CapValidationError) as excinfo:
        reasons.raise_for_level(Level.WARNING)
    assert len(excinfo.value.reasons) == 1
    assert "x,y,z" in str(excinfo.value)


def test_prefix_with_xpath_returns_new_collection() -> None:
    reasons = Reasons([Reason("/a[1]", ReasonType.OTHER, "x")])
    prefixed = reasons.prefix_with_xpath("/root[1]")
    assert [reason.xpath for reason in prefixed] == ["/root[1]/a[1]"]
    assert [reason.xpath for reason in reasons] == ["/a[1]"]


_REASON_TYPES = st.sampled_from(list(ReasonType))


@given(st.lists(_REASON_TYPES, max_size=20), st.sampled_from(list(Level)))
def test_level_or_higher_is_union_of_levels(types: list[ReasonType], level: Level) -> None:
    reasons = Reasons(Reason(f"/r[{index}]", reason_type, "p") for index, reason_type in enumerate(types))
    expected = reasons.get_with_level(level)
    for higher in level.higher_levels():
        expected.extend(reasons.get_with_level(higher))
    found = reasons.get_with_level_or_higher(level)
    assert found == expected
    for higher in level.higher_levels():
        assert set(reasons.get_with_level_or_higher(higher)) <= set(found)
