import pytest

from flashvocab import srs
from flashvocab.srs import LAST_LEVEL, MS_PER_DAY, SRS_INTERVALS_DAYS, Grade

from tests.fakes import make_sentence, make_word


NOW = 1_700_000_000_000


def _expected_level(level: int, grade: Grade) -> int:
    return {
        Grade.fail: 0,
        Grade.hard: level,
        Grade.good: min(level + 1, LAST_LEVEL),
        Grade.easy: min(level + 2, LAST_LEVEL),
    }[grade]


def test_interval_table_constants():
    assert SRS_INTERVALS_DAYS == (1, 3, 7, 14, 30, 90, 180)
    assert MS_PER_DAY == 86_400_000
    assert LAST_LEVEL == 6


@pytest.mark.parametrize("level", range(len(SRS_INTERVALS_DAYS)))
@pytest.mark.parametrize("grade", list(Grade))
def test_rate_sets_level_and_next_review(level, grade):
    item = make_word(level=level, next_review=0)
    rated = srs.rate(item, grade, NOW)
    new_level = _expected_level(level, grade)
    assert rated.srs_level == new_level
    assert rated.next_review == NOW + SRS_INTERVALS_DAYS[new_level] * MS_PER_DAY


def test_rate_leaves_other_fields_and_input_untouched():
    item = make_word("apple", level=2, next_review=5)
    rated = srs.rate(item, "good", NOW)
    assert rated.model_dump(exclude={"srs_level", "next_review"}) == item.model_dump(
        exclude={"srs_level", "next_review"}
    )
    assert item.srs_level == 2
    assert item.next_review == 5


def test_rate_treats_missing_level_as_new():
    rated = srs.rate(make_sentence(level=None, next_review=None), Grade.good, NOW)
    assert rated.srs_level == 1
    assert rated.next_review == NOW + 3 * MS_PER_DAY


def test_rate_clamps_out_of_range_stored_level():
    rated = srs.rate(make_word(level=42), Grade.easy, NOW)
    assert rated.srs_level == LAST_LEVEL
    assert rated.next_review == NOW + 180 * MS_PER_DAY


def test_apple_scenario_progression():
    """新規保存 → good → easy で level 0 → 1 → 3 と進む。"""
    item = make_word("apple", level=0, next_review=NOW)
    first = srs.rate(item, Grade.good, NOW)
    assert first.srs_level == 1
    assert first.next_review == NOW + 3 * MS_PER_DAY

    later = first.next_review
    second = srs.rate(first, Grade.easy, later)
    assert second.srs_level == 3
    assert second.next_review == later + 14 * MS_PER_DAY


def test_rate_rejects_unknown_grade():
    with pytest.raises(ValueError):
        srs.rate(make_word(level=0), "perfect", NOW)


def test_due_filter_boundaries():
    never = make_word("never", next_review=None)
    past = make_word("past", next_review=NOW - 1)
    exact = make_word("exact", next_review=NOW)
    future = make_word("future", next_review=NOW + 1)
    due = srs.due_items([never, past, exact, future], NOW)
    assert [w.word for w in due] == ["never", "past", "exact"]
    assert srs.is_due(future, NOW + 1)
