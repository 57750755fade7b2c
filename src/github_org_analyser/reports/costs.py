"""Costs report: seat usage, Copilot seats, Actions minutes and budgets."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from github_org_analyser.core.config import BillingSettings, ThresholdSet
from github_org_analyser.core.constants import REPORT_COSTS
from github_org_analyser.core.dates import parse_timestamp
from github_org_analyser.reports.base import ReportBuilder
from github_org_analyser.reports.models import ReportSection, camelize_keys

# Runner SKU fragment -> breakdown bucket
RUNNER_PLATFORMS = {"linux": "ubuntu", "macos": "macos", "windows": "windows"}


@dataclass
class BillingData:
    organization: dict[str, Any]
    copilot: dict[str, Any] | None = None
    budgets: list[dict[str, Any]] = field(default_factory=list)
    usage: dict[str, Any] | None = None


def summarize_seats(organization: dict[str, Any], billing: BillingSettings) -> dict[str, Any] | None:
    plan = organization.get("plan") or {}
    if "seats" not in plan:
        return None
    total = plan.get("seats") or 0
    filled = plan.get("filled_seats") or 0
    return {
        "plan": plan.get("name"),
        "total": total,
        "filled": filled,
        "unused": max(0, total - filled),
        "pricePerUserMonth": billing.price_per_user_month,
        "monthlyCost": round(total * billing.price_per_user_month, 2),
        "unusedMonthlyCost": round(max(0, total - filled) * billing.price_per_user_month, 2),
    }


def summarize_copilot(copilot: dict[str, Any] | None) -> dict[str, Any] | None:
    if not copilot:
        return None
    breakdown = copilot.get("seat_breakdown") or {}
    return {
        "total": breakdown.get("total", 0),
        "active": breakdown.get("active_this_cycle", 0),
        "inactive": breakdown.get("inactive_this_cycle", 0),
        "pendingInvitation": breakdown.get("pending_invitation", 0),
        "planType": copilot.get("plan_type"),
        "seatManagementSetting": copilot.get("seat_management_setting"),
    }


def _in_month(item: dict[str, Any], now: datetime) -> bool:
    when = parse_timestamp(item.get("date"))
    # Items without a date are assumed to belong to the requested month.
    return when is None or (when.year == now.year and when.month == now.month)


def summarize_actions(usage: dict[str, Any] | None, billing: BillingSettings, now: datetime) -> dict[str, Any] | None:
    """Current-month Actions minutes with a per-runner-platform breakdown."""
    if usage is None:
        return None
    breakdown = {bucket: 0.0 for bucket in RUNNER_PLATFORMS.values()}
    minutes = 0.0
    net_amount = 0.0
    for item in usage.get("usageItems") or []:
        if str(item.get("product", "")).lower() != "actions" or str(item.get("unitType", "")).lower() != "minutes":
            continue
        if not _in_month(item, now):
            continue
        quantity = float(item.get("quantity") or 0)
        minutes += quantity
        net_amount += float(item.get("netAmount") or 0)
        sku = str(item.get("sku", "")).lower()
        for fragment, bucket in RUNNER_PLATFORMS.items():
            if fragment in sku:
                breakdown[bucket] += quantity
                break

    total = round(minutes)
    included = billing.included_actions_minutes
    return {
        "year": now.year,
        "month": now.month,
        "minutes": total,
        "included": included,
        "paid": max(0, total - included),
        "netAmount": round(net_amount, 2),
        "breakdown": {bucket: round(value) for bucket, value in breakdown.items()},
    }


class CostsReportBuilder(ReportBuilder):
    """Estimates monthly spend from the organization plan and billing usage."""

    report_type = REPORT_COSTS

    async def collect(self, org: str, settings: ThresholdSet) -> BillingData:
        now = self.clock()
        organization, copilot, budgets, usage = await asyncio.gather(
            self.client.get_organization(org),
            self.client.get_copilot_billing(org),
            self.client.get_budgets(org),
            self.client.get_billing_usage(org, year=now.year, month=now.month),
        )
        return BillingData(organization=organization or {}, copilot=copilot, budgets=budgets, usage=usage)

    def aggregate(
        self, org: str, data: BillingData, settings: ThresholdSet, now: datetime
    ) -> tuple[list[ReportSection], dict[str, Any]]:
        billing = settings.billing
        summary = {
            "seats": summarize_seats(data.organization, billing),
            "copilotSeats": summarize_copilot(data.copilot),
            "actions": summarize_actions(data.usage, billing, now),
        }
        budgets = [camelize_keys(budget) for budget in data.budgets]
        return [ReportSection.from_rows("budgets", budgets, settings.display_limits.max_budgets)], summary
