from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.db.models import Q

from jobs.filters import build_filter, clause_to_q
from jobs.search import (
    DateRange,
    Exact,
    JoinSubstring,
    Substring,
    SubstringEitherOf,
    parse_day,
    parse_query,
    tokenize,
)

NOW = datetime(2024, 5, 10, 15, 30, tzinfo=dt_timezone.utc)
TWO_DAYS_AGO = datetime(2024, 5, 8, tzinfo=dt_timezone.utc)
NEXT_DAY = TWO_DAYS_AGO + timedelta(days=1)


def search(text):
    return parse_query(text, now=NOW)


class TestTokenize:
    def test_field_value_pairs(self):
        assert tokenize("id:1  state:failed") == [("id", "1"), ("state", "failed")]

    def test_bare_words_and_empty_values_are_skipped(self):
        assert tokenize("movie id: :x source:foo") == [("source", "foo")]

    def test_value_keeps_later_colons(self):
        assert tokenize("source:c:/videos") == [("source", "c:/videos")]

    def test_empty_query(self):
        assert tokenize("") == []
        assert tokenize(None) == []


class TestParseQuery:
    def test_id(self):
        assert search("id:1") == [Exact("id", 1)]

    def test_non_numeric_id_is_dropped(self):
        assert search("id:abc") == []

    @pytest.mark.parametrize("value", ["²", "١٢", "1" * 25, str(2**63)])
    def test_id_outside_the_key_range_is_dropped(self, value):
        assert search(f"id:{value}") == []

    def test_largest_id(self):
        assert search(f"id:{2**63 - 1}") == [Exact("id", 2**63 - 1)]

    def test_state(self):
        assert search("state:failed") == [Exact("state", "failed")]

    def test_state_is_case_insensitive(self):
        assert search("state:Failed") == [Exact("state", "failed")]

    def test_huge_date_offset_is_dropped(self):
        assert search("submitted:1000000_days_ago") == []

    @pytest.mark.parametrize("field", ["source", "input"])
    def test_source(self, field):
        assert search(f"{field}:foo") == [Substring("source_file", "foo")]

    @pytest.mark.parametrize("field", ["dest", "output"])
    def test_destination(self, field):
        assert search(f"{field}:foo") == [Substring("destination_file", "foo")]

    def test_file(self):
        assert search("file:foo") == [SubstringEitherOf(("source_file", "destination_file"), "foo")]

    def test_preset(self):
        assert search("preset:foo") == [JoinSubstring("preset", "name", "foo")]

    def test_host(self):
        assert search("host:foo") == [JoinSubstring("host", "name", "foo")]

    @pytest.mark.parametrize("field, column", [
        ("submitted", "created_at"),
        ("created", "created_at"),
        ("completed", "completed_at"),
        ("started", "transcoding_started_at"),
    ])
    def test_dates(self, field, column):
        assert search(f"{field}:2_days_ago") == [DateRange(column, TWO_DAYS_AGO, NEXT_DAY)]

    def test_invalid_date_is_dropped(self):
        assert search("submitted:foo_bar_baz") == []
        assert search("started:foo_bar_baz") == []

    def test_unknown_fields_are_ignored(self):
        assert search("colour:blue id:3") == [Exact("id", 3)]

    def test_field_names_are_case_insensitive(self):
        assert search("ID:7") == [Exact("id", 7)]

    def test_clauses_follow_token_order(self):
        assert search("state:failed source:foo") == [
            Exact("state", "failed"),
            Substring("source_file", "foo"),
        ]

    def test_token_order_does_not_change_the_clause_set(self):
        assert set(search("state:failed source:foo")) == set(search("source:foo state:failed"))

    def test_all_together(self):
        clauses = search(
            "id:1 state:failed source:foo dest:foo file:foo preset:foo host:foo "
            "created:2_days_ago completed:2_days_ago started:2_days_ago"
        )
        assert clauses == [
            Exact("id", 1),
            Exact("state", "failed"),
            Substring("source_file", "foo"),
            Substring("destination_file", "foo"),
            SubstringEitherOf(("source_file", "destination_file"), "foo"),
            JoinSubstring("preset", "name", "foo"),
            JoinSubstring("host", "name", "foo"),
            DateRange("created_at", TWO_DAYS_AGO, NEXT_DAY),
            DateRange("completed_at", TWO_DAYS_AGO, NEXT_DAY),
            DateRange("transcoding_started_at", TWO_DAYS_AGO, NEXT_DAY),
        ]


class TestParseDay:
    def test_days_ago(self):
        assert parse_day("2_days_ago", NOW) == (TWO_DAYS_AGO, NEXT_DAY)

    def test_singular_unit(self):
        start, _ = parse_day("1_week_ago", NOW)
        assert start == datetime(2024, 5, 3, tzinfo=dt_timezone.utc)

    def test_hours_ago_can_cross_midnight(self):
        start, end = parse_day("16_hours_ago", NOW)
        assert start == datetime(2024, 5, 9, tzinfo=dt_timezone.utc)
        assert end - start == timedelta(days=1)

    def test_today_and_yesterday(self):
        assert parse_day("today", NOW)[0] == datetime(2024, 5, 10, tzinfo=dt_timezone.utc)
        assert parse_day("yesterday", NOW)[0] == datetime(2024, 5, 9, tzinfo=dt_timezone.utc)

    def test_iso_date(self):
        assert parse_day("2024-01-31", NOW) == (
            datetime(2024, 1, 31, tzinfo=dt_timezone.utc),
            datetime(2024, 2, 1, tzinfo=dt_timezone.utc),
        )

    @pytest.mark.parametrize("value", [
        "foo_bar_baz", "2_fortnights_ago", "days_ago", "2024-02-31", "",
        "1000000_days_ago", "99999999999999999999_weeks_ago", "9999-12-31",
    ])
    def test_unreadable(self, value):
        assert parse_day(value, NOW) is None


class TestFilters:
    def test_exact(self):
        assert clause_to_q(Exact("id", 1)) == Q(id=1)

    def test_substring(self):
        assert clause_to_q(Substring("source_file", "foo")) == Q(source_file__icontains="foo")

    def test_either_of(self):
        q = clause_to_q(SubstringEitherOf(("source_file", "destination_file"), "foo"))
        assert q == Q(source_file__icontains="foo") | Q(destination_file__icontains="foo")

    def test_join(self):
        assert clause_to_q(JoinSubstring("host", "name", "foo")) == Q(host__name__icontains="foo")

    def test_date_range_is_half_open(self):
        q = clause_to_q(DateRange("created_at", TWO_DAYS_AGO, NEXT_DAY))
        assert q == Q(created_at__gte=TWO_DAYS_AGO, created_at__lt=NEXT_DAY)

    def test_single_clause_filter(self):
        assert build_filter(search("id:1")) == Q(id=1)

    def test_no_clauses_match_everything(self):
        assert build_filter([]) == Q()

    def test_unknown_clause(self):
        with pytest.raises(TypeError):
            clause_to_q(object())
