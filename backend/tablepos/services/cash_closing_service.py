# Overview: End-of-shift cash reconciliation; daily payment aggregation and closing snapshots.

"""
Cash Closing Service

WHY: Cashier accountability. At shift end the operator counts the drawer;
the closing compares that count with the cash payments recorded for the day.

DESIGN PRINCIPLES:
- Days are calendar days in the business timezone, not UTC.
- difference = cashCountEntered - expectedCash, signed. Negative is a
  shortfall, positive an overage. `variance` is the absolute value and is
  for display only.
- Closings are frozen snapshots. Several per day are allowed; each
  recomputes its own totals at generation time and is never revised when
  later payments land on the same day.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app

from tablepos.money import ZERO, format_money, sum_money, to_decimal
from tablepos.time_utils import local_date, local_today, parse_iso_date
from ..validation import ValidationError, parse_amount
from . import configuration_service
from .payment_service import PAYMENT_METHOD_CARD, PAYMENT_METHOD_CASH, list_payments
from .repository import cash_closings


def _resolve_day(day) -> date:
    if day is None or day == "":
        return local_today(configuration_service.business_timezone())
    if isinstance(day, date):
        return day
    try:
        return parse_iso_date(str(day))
    except ValueError:
        raise ValidationError(f"Invalid date '{day}'. Expected YYYY-MM-DD")


def daily_payments(day=None, tz_name: str | None = None, payments: list[dict] | None = None) -> list[dict]:
    """
    Payments whose createdAt falls on `day` in the business timezone.

    Args:
        day: date or "YYYY-MM-DD"; defaults to today (local)
        tz_name: IANA timezone; defaults to configuration
        payments: pre-fetched payments; defaults to a full scan
    """
    tz_name = tz_name or configuration_service.business_timezone()
    target = _resolve_day(day)
    if payments is None:
        payments = list_payments()
    return [p for p in payments if local_date(p.get("createdAt"), tz_name) == target]


def summarize_by_method(payments: list[dict]) -> dict:
    """
    Group payments by method.

    Returns:
        {
            "byMethod": {"cash": {"count": 2, "total": "80.00"}, ...},
            "count": 3,
            "total": "110.00",
        }

    The grand total is the sum of the per-method totals.
    """
    sums: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for payment in payments:
        method = payment.get("paymentMethod") or "unknown"
        sums[method] = sums.get(method, ZERO) + to_decimal(payment.get("total") or ZERO)
        counts[method] = counts.get(method, 0) + 1

    grand_total = sum_money(sums.values())

    return {
        "byMethod": {
            method: {"count": counts[method], "total": format_money(sums[method])}
            for method in sorted(sums)
        },
        "count": sum(counts.values()),
        "total": format_money(grand_total),
    }


def _method_total(summary: dict, method: str) -> str:
    return summary["byMethod"].get(method, {}).get("total", format_money(ZERO))


def generate_closing(
    cash_count_entered,
    notes: str | None = None,
    day=None,
    *,
    actor: str | None = None,
) -> dict:
    """
    Persist a cash closing snapshot for `day` (default: today, local).

    Raises:
        ValidationError: missing, negative or non-numeric cash count; bad date
    """
    counted = parse_amount(cash_count_entered, "cashCount")
    target = _resolve_day(day)

    payments = daily_payments(target)
    summary = summarize_by_method(payments)
    expected_cash = to_decimal(_method_total(summary, PAYMENT_METHOD_CASH))
    difference = counted - expected_cash

    closing = cash_closings.create({
        "date": target.isoformat(),
        "cashCountEntered": format_money(counted),
        "expectedCash": format_money(expected_cash),
        "difference": format_money(difference),
        "variance": format_money(abs(difference)),
        "totalSales": summary["total"],
        "totalCash": _method_total(summary, PAYMENT_METHOD_CASH),
        "totalCard": _method_total(summary, PAYMENT_METHOD_CARD),
        "totalTransactions": summary["count"],
        "byMethod": summary["byMethod"],
        "notes": notes or "",
        "closedBy": actor,
    }, actor=actor)

    current_app.logger.info(
        "Cash closing %s for %s: expected %s, counted %s, difference %s",
        closing["id"], closing["date"], closing["expectedCash"],
        closing["cashCountEntered"], closing["difference"],
    )
    return closing


def preview_closing(day=None) -> dict:
    """Per-method summary for a day without persisting anything."""
    target = _resolve_day(day)
    summary = summarize_by_method(daily_payments(target))
    return {
        "date": target.isoformat(),
        "expectedCash": _method_total(summary, PAYMENT_METHOD_CASH),
        **summary,
    }


def list_closings() -> list[dict]:
    """Newest first."""
    return sorted(cash_closings.list(), key=lambda c: c.get("createdAt") or "", reverse=True)


def get_closing(closing_id: str) -> dict:
    return cash_closings.require(closing_id)
