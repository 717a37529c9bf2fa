# =============================================================================
# tests/test_pagination.py - Page Request and Envelope Tests
# =============================================================================

import pytest
from pydantic import ValidationError

from lib.pagination import Page, PageRequest, build_page, build_pagination, paginate_query
from lib.utils import like_pattern, money_out, to_money


class TestPageRequest:

    def test_defaults(self):
        request = PageRequest()

        assert request.page == 1
        assert request.limit == 20
        assert request.offset == 0
        assert request.range_end == 19

    def test_second_page_range_is_inclusive(self):
        request = PageRequest(page=2, limit=20)

        assert request.offset == 20
        assert request.range_end == 39

    @pytest.mark.parametrize("data", [{"page": 0}, {"limit": 0}, {"limit": 101}])
    def test_out_of_bounds_rejected(self, data):
        with pytest.raises(ValidationError):
            PageRequest(**data)


class TestEnvelope:

    def test_pages_round_up(self):
        pagination = build_pagination(41, PageRequest(limit=20))

        assert pagination.pages == 3
        assert pagination.records == 41

    def test_empty_result_has_zero_pages(self):
        assert build_pagination(0, PageRequest()).pages == 0

    def test_build_page_validates_as_page(self):
        page = build_page([{"x": 1}], 1, PageRequest())

        parsed = Page[dict].model_validate(page)

        assert parsed.pagination.current == 1
        assert parsed.data == [{"x": 1}]

    def test_paginate_query_applies_window(self, fake_db):
        fake_db.tables["items"] = [{"id": str(i), "n": i} for i in range(25)]
        query = fake_db.table("items").select("*", count="exact").order("n")

        rows, total = paginate_query(query, PageRequest(page=2, limit=10))

        assert total == 25
        assert [row["n"] for row in rows] == list(range(10, 20))


class TestHelpers:

    def test_like_pattern_strips_filter_syntax(self):
        assert like_pattern("a,b(c)") == "%a b c%"
        assert like_pattern("  ada ") == "%ada%"

    def test_money_rounds_half_up(self):
        assert to_money(0.125) == to_money("0.13")
        assert money_out(to_money("19.999")) == 20.0
