"""Tests for pagination utilities.

Clamping of page requests, page metadata and the Pagination header.
"""

import json

import pytest

from app.core.pagination import (
    PaginationParams,
    clamp_page_request,
    paginate,
    pagination_header,
    pagination_params,
    slice_page,
)


class TestPaginationParams:
    """Tests for PaginationParams dataclass."""

    def test_offset_page_one(self):
        """Page 1 should have offset 0."""
        params = PaginationParams(page_number=1, page_size=20)
        assert params.offset == 0

    def test_offset_calculation(self):
        """Offset should be (page - 1) * page_size."""
        params = PaginationParams(page_number=5, page_size=10)
        assert params.offset == 40

    def test_limit_equals_page_size(self):
        params = PaginationParams(page_number=1, page_size=15)
        assert params.limit == 15


class TestClampPageRequest:
    """Out-of-range requests are clamped, never rejected."""

    def test_page_below_one_becomes_one(self):
        params = clamp_page_request(0, 10, default_page_size=10, max_page_size=50)
        assert params.page_number == 1

    def test_negative_page_becomes_one(self):
        params = clamp_page_request(-3, 10, default_page_size=10, max_page_size=50)
        assert params.page_number == 1

    def test_missing_size_uses_default(self):
        params = clamp_page_request(2, None, default_page_size=10, max_page_size=50)
        assert params.page_size == 10

    def test_zero_size_uses_default(self):
        params = clamp_page_request(1, 0, default_page_size=10, max_page_size=50)
        assert params.page_size == 10

    def test_size_above_cap_becomes_cap(self):
        params = clamp_page_request(1, 500, default_page_size=10, max_page_size=50)
        assert params.page_size == 50

    def test_no_cap_keeps_large_size(self):
        params = clamp_page_request(1, 500, default_page_size=10, max_page_size=None)
        assert params.page_size == 500


class TestPaginate:
    """Tests for paginate()."""

    def test_middle_page(self):
        meta = paginate(25, 2, 10)
        assert meta.current_page == 2
        assert meta.total_pages == 3
        assert meta.has_previous is True
        assert meta.has_next is True
        assert meta.window == (10, 20)

    def test_last_partial_page(self):
        meta = paginate(25, 3, 10)
        assert meta.window == (20, 25)
        assert meta.has_next is False

    def test_empty_collection(self):
        meta = paginate(0, 1, 10)
        assert meta.total_pages == 0
        assert meta.has_previous is False
        assert meta.has_next is False
        assert meta.window == (0, 0)

    def test_empty_collection_past_page_one_has_no_previous(self):
        meta = paginate(0, 3, 10)
        assert meta.total_pages == 0
        assert meta.has_previous is False
        assert meta.has_next is False

    def test_page_past_end_gives_empty_window(self):
        """Requested page beyond the last page keeps its number, no items."""
        meta = paginate(5, 4, 10)
        assert meta.current_page == 4
        assert meta.window == (5, 5)
        assert meta.has_previous is True
        assert meta.has_next is False

    def test_exact_multiple(self):
        meta = paginate(20, 2, 10)
        assert meta.total_pages == 2
        assert meta.has_next is False

    def test_size_capped_at_fifty_by_default(self):
        meta = paginate(200, 1, 1000)
        assert meta.page_size == 50
        assert meta.total_pages == 4

    def test_negative_total_raises(self):
        with pytest.raises(ValueError, match="total_count"):
            paginate(-1, 1, 10)

    def test_window_size_never_exceeds_page_size(self):
        for total in (0, 1, 9, 10, 11, 99):
            for page in (1, 2, 3, 20):
                meta = paginate(total, page, 10)
                start, stop = meta.window
                assert 0 <= stop - start <= meta.page_size


class TestSlicePage:
    def test_slices_by_window(self):
        items = list(range(1, 26))
        meta = paginate(len(items), 3, 10)
        assert slice_page(items, meta) == [21, 22, 23, 24, 25]


class TestPaginationHeader:
    def test_header_is_camel_case_json(self):
        meta = paginate(25, 2, 10)
        header = json.loads(pagination_header(meta, "/prev", "/next"))
        assert header == {
            "totalCount": 25,
            "pageSize": 10,
            "currentPage": 2,
            "totalPages": 3,
            "previousPageLink": "/prev",
            "nextPageLink": "/next",
        }

    def test_missing_links_are_null(self):
        meta = paginate(3, 1, 10)
        header = json.loads(pagination_header(meta, None, None))
        assert header["previousPageLink"] is None
        assert header["nextPageLink"] is None


class TestPaginationParamsDependency:
    """pagination_params clamps against the configured default and cap."""

    def test_clamps_size(self):
        params = pagination_params(page_number=0, page_size=10_000)
        assert params.page_number == 1
        assert params.page_size == 50

    def test_defaults(self):
        params = pagination_params(page_number=None, page_size=None)
        assert params.page_number == 1
        assert params.page_size == 10
