"""Tests for the tab lifecycle and table paging helpers"""

import asyncio

import pytest

from github_org_analyser.presentation import DEFAULT_ROWS_PER_PAGE, ROWS_PER_PAGE_OPTIONS, ReportTab, paginate_rows
from github_org_analyser.reports import HomeReportBuilder
from github_org_analyser.reports.models import BuildOutcome, BuildState, ReportResult


class GatedBuilder:
    """Builder stand-in whose builds finish only when released"""

    report_type = "cleanup"

    def __init__(self):
        self.calls = []
        self.gates = {}

    async def build(self, org, skip_cache=False):
        self.calls.append((org, skip_cache))
        gate = self.gates.setdefault(org, asyncio.Event())
        await gate.wait()
        return BuildOutcome(
            report_type=self.report_type,
            org=org,
            state=BuildState.DONE,
            result=ReportResult(self.report_type, org, "2026-06-15T12:00:00Z"),
        )


ROWS = [
    {"name": "b", "daysInactive": 30, "oldestPR": {"daysOpen": 5}},
    {"name": "a", "daysInactive": None, "oldestPR": {"daysOpen": 50}},
    {"name": "c", "daysInactive": 90, "oldestPR": {"daysOpen": 1}},
]


class TestPaginateRows:
    """Test sorting and paging of section rows"""

    def test_first_page(self):
        page = paginate_rows([{"i": i} for i in range(12)], page=0, rows_per_page=5)
        assert [row["i"] for row in page.rows] == [0, 1, 2, 3, 4]
        assert page.total_rows == 12
        assert page.total_pages == 3

    def test_last_partial_page(self):
        page = paginate_rows([{"i": i} for i in range(12)], page=2, rows_per_page=5)
        assert [row["i"] for row in page.rows] == [10, 11]

    def test_page_past_end_is_empty(self):
        assert paginate_rows([{"i": 1}], page=4, rows_per_page=10).rows == []

    def test_empty_rows(self):
        page = paginate_rows([], sort_by="name")
        assert page.rows == []
        assert page.total_pages == 1

    def test_sort_ascending_missing_last(self):
        page = paginate_rows(ROWS, sort_by="daysInactive")
        assert [row["name"] for row in page.rows] == ["b", "c", "a"]

    def test_sort_descending_missing_last(self):
        page = paginate_rows(ROWS, sort_by="daysInactive", descending=True)
        assert [row["name"] for row in page.rows] == ["c", "b", "a"]

    def test_sort_by_nested_column(self):
        page = paginate_rows(ROWS, sort_by="oldestPR.daysOpen", descending=True)
        assert [row["name"] for row in page.rows] == ["a", "b", "c"]

    def test_rows_returned_unflattened(self):
        page = paginate_rows(ROWS, sort_by="name")
        assert page.rows[0] == ROWS[1]

    def test_unknown_column_keeps_order(self):
        page = paginate_rows(ROWS, sort_by="nope")
        assert [row["name"] for row in page.rows] == ["b", "a", "c"]

    def test_mixed_types_keep_order(self):
        rows = [{"number": 3}, {"number": "x"}, {"number": 1}]
        page = paginate_rows(rows, sort_by="number")
        assert page.rows == rows

    def test_default_page_size_is_an_option(self):
        assert DEFAULT_ROWS_PER_PAGE in ROWS_PER_PAGE_OPTIONS
        assert paginate_rows([{"i": i} for i in range(30)]).rows_per_page == DEFAULT_ROWS_PER_PAGE

    @pytest.mark.parametrize(("page", "rows_per_page"), [(-1, 10), (0, 0)])
    def test_invalid_arguments(self, page, rows_per_page):
        with pytest.raises(ValueError):
            paginate_rows(ROWS, page=page, rows_per_page=rows_per_page)


class TestReportTab:
    """Test build-on-visible, refresh and superseded builds"""

    def test_visible_builds_once(self, mock_client, memory_cache, now):
        tab = ReportTab(HomeReportBuilder(mock_client, memory_cache, clock=lambda: now, quiet=True), "acme")

        async def scenario():
            first = await tab.on_visible()
            second = await tab.on_visible()
            return first, second

        first, second = asyncio.run(scenario())
        assert first.ok
        assert second is None
        assert tab.loaded
        assert tab.state is BuildState.DONE
        mock_client.get_organization.assert_awaited_once()

    def test_refresh_bypasses_cache(self, mock_client, memory_cache, now):
        tab = ReportTab(HomeReportBuilder(mock_client, memory_cache, clock=lambda: now, quiet=True), "acme")

        async def scenario():
            await tab.on_visible()
            return await tab.refresh()

        outcome = asyncio.run(scenario())
        assert outcome.from_cache is False
        assert mock_client.get_organization.await_count == 2

    def test_failure_exposes_error(self, mock_client, memory_cache, now):
        mock_client.get_organization.side_effect = RuntimeError("boom")
        tab = ReportTab(HomeReportBuilder(mock_client, memory_cache, clock=lambda: now, quiet=True), "acme")

        asyncio.run(tab.on_visible())
        assert tab.state is BuildState.FAILED
        assert tab.error == "boom"
        assert not tab.loaded

    def test_superseded_build_discarded(self):
        builder = GatedBuilder()
        tab = ReportTab(builder, "old-org")

        async def scenario():
            stale = asyncio.create_task(tab.on_visible())
            await asyncio.sleep(0)
            tab.switch_org("new-org")
            fresh = asyncio.create_task(tab.on_visible())
            await asyncio.sleep(0)

            builder.gates["new-org"].set()
            fresh_outcome = await fresh
            builder.gates["old-org"].set()
            return await stale, fresh_outcome

        stale_outcome, fresh_outcome = asyncio.run(scenario())
        assert stale_outcome is None
        assert fresh_outcome.result.org == "new-org"
        assert tab.result.org == "new-org"
        assert builder.calls == [("old-org", False), ("new-org", False)]

    def test_refresh_supersedes_in_flight_build(self):
        builder = GatedBuilder()
        tab = ReportTab(builder, "acme")

        async def scenario():
            first = asyncio.create_task(tab.on_visible())
            await asyncio.sleep(0)
            second = asyncio.create_task(tab.refresh())
            await asyncio.sleep(0)
            builder.gates["acme"].set()
            return await first, await second

        first, second = asyncio.run(scenario())
        assert first is None
        assert second.ok
        assert builder.calls == [("acme", False), ("acme", True)]
