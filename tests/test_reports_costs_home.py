"""Tests for the costs and home reports"""

import asyncio

import pytest

from github_org_analyser.core.config import BillingSettings
from github_org_analyser.core.exceptions import APIError
from github_org_analyser.reports import CostsReportBuilder, HomeReportBuilder
from github_org_analyser.reports.costs import summarize_actions, summarize_copilot, summarize_seats
from github_org_analyser.reports.home import repository_breakdown


def usage_item(day, sku, quantity, unit="Minutes", product="actions"):
    return {"date": f"{day}T00:00:00Z", "product": product, "sku": sku, "unitType": unit, "quantity": quantity}


def run(builder):
    outcome = asyncio.run(builder.build("acme"))
    assert outcome.ok, outcome.error
    return outcome.result


class TestSeatCosts:
    """Test seat usage estimates"""

    def test_seat_summary(self):
        summary = summarize_seats({"plan": {"name": "enterprise", "seats": 10, "filled_seats": 7}}, BillingSettings())
        assert summary["unused"] == 3
        assert summary["monthlyCost"] == 210.0
        assert summary["unusedMonthlyCost"] == 63.0

    def test_no_plan_visible(self):
        assert summarize_seats({"login": "acme"}, BillingSettings()) is None

    def test_copilot_summary(self):
        summary = summarize_copilot({"seat_breakdown": {"total": 5, "active_this_cycle": 3}, "plan_type": "business"})
        assert summary["total"] == 5
        assert summary["active"] == 3
        assert summary["inactive"] == 0
        assert summarize_copilot(None) is None


class TestActionsUsage:
    """Test Actions minutes aggregation"""

    def test_current_month_minutes_by_platform(self, now):
        usage = {
            "usageItems": [
                usage_item("2026-06-03", "Actions Linux", 40000),
                usage_item("2026-06-04", "Actions macOS 3-core", 9000),
                usage_item("2026-06-05", "Actions Windows", 2000),
                usage_item("2026-05-30", "Actions Linux", 99999),
                usage_item("2026-06-05", "Actions storage", 77, unit="GigabyteHours"),
                usage_item("2026-06-05", "Packages", 5, product="packages"),
            ]
        }
        summary = summarize_actions(usage, BillingSettings(), now)
        assert summary["minutes"] == 51000
        assert summary["breakdown"] == {"ubuntu": 40000, "macos": 9000, "windows": 2000}
        assert summary["paid"] == 1000
        assert (summary["year"], summary["month"]) == (2026, 6)

    def test_within_included_minutes(self, now):
        usage = {"usageItems": [{"product": "actions", "sku": "Actions Linux", "unitType": "minutes", "quantity": 10}]}
        assert summarize_actions(usage, BillingSettings(), now)["paid"] == 0

    def test_usage_unavailable(self, now):
        assert summarize_actions(None, BillingSettings(), now) is None


class TestCostsReport:
    """Test the costs report build"""

    def test_build(self, mock_client, memory_cache, now):
        mock_client.get_organization.return_value = {"login": "acme", "plan": {"seats": 4, "filled_seats": 4}}
        mock_client.get_budgets.return_value = [{"budget_amount": 100, "budget_product_sku": "actions"}]
        builder = CostsReportBuilder(
            mock_client, memory_cache, {"billing": {"pricePerUserMonth": 4.0}}, clock=lambda: now, quiet=True
        )

        result = run(builder)
        assert result.summary["seats"]["monthlyCost"] == 16.0
        assert result.summary["copilotSeats"] is None
        assert result.summary["actions"] is None
        assert result.section("budgets").rows == [{"budgetAmount": 100, "budgetProductSku": "actions"}]
        mock_client.get_billing_usage.assert_awaited_once_with("acme", year=2026, month=6)


class TestHomeReport:
    """Test the organization overview"""

    def test_breakdown_counts_forks_only_as_forks(self, make_repo):
        repos = [
            make_repo("pub"),
            make_repo("pub-old", archived=True),
            make_repo("priv", private=True, visibility="private"),
            make_repo("priv-fork", private=True, fork=True),
            make_repo("fork-old", fork=True, archived=True),
        ]
        assert repository_breakdown(repos) == {
            "publicActive": 1,
            "publicArchived": 1,
            "privateActive": 1,
            "privateArchived": 0,
            "forkedActive": 1,
            "forkedArchived": 1,
            "total": 5,
        }

    def test_build(self, mock_client, memory_cache, make_repo, now):
        mock_client.list_org_repositories.return_value = [
            make_repo("a", language="Python", topics=("cli", "tools")),
            make_repo("b", language="Python", topics=("cli",)),
            make_repo("c", language="Go"),
            make_repo("d", language="Rust", archived=True),
        ]
        mock_client.list_org_members.return_value = [{"login": "u1"}, {"login": "u2"}]
        builder = HomeReportBuilder(
            mock_client, memory_cache, {"displayLimits": {"topLanguages": 1}}, clock=lambda: now, quiet=True
        )

        result = run(builder)
        languages = result.section("topLanguages")
        assert languages.rows == [{"name": "Python", "count": 2}]
        assert languages.total == 2
        assert result.section("topTopics").rows[0] == {"name": "cli", "count": 2}
        assert result.summary["memberCount"] == 2
        assert result.summary["repoBreakdown"]["total"] == 4

    @pytest.mark.parametrize("failing", ["list_org_repositories", "list_org_members"])
    def test_aborting_fetch_fails(self, mock_client, memory_cache, now, failing):
        getattr(mock_client, failing).side_effect = APIError("Server Error", status_code=500)
        builder = HomeReportBuilder(mock_client, memory_cache, clock=lambda: now, quiet=True)
        outcome = asyncio.run(builder.build("acme"))
        assert not outcome.ok
        assert memory_cache.get("acme", "home") is None
