"""
Cash closing tests.

Verifies:
- Signed difference (negative = shortfall) and display variance
- Business-day boundaries follow the local timezone, not UTC
- Grand total equals the sum of per-method totals
- Closings are snapshots; later payments do not change them
"""

from datetime import date

import pytest

from tablepos.services import cash_closing_service, payment_service
from tablepos.services.order_service import STATUS_READY
from tablepos.validation import NotFoundError, ValidationError

from conftest import make_order


def _pay(method, amount, **kwargs):
    order = make_order(
        items=[{"name": "Menu del dia", "unitPrice": amount, "quantity": 1}],
        status=STATUS_READY,
    )
    if method == "cash":
        kwargs.setdefault("received_amount", amount)
    return payment_service.process_payment(order["id"], method, **kwargs)


class TestDailyPayments:

    def test_local_midnight_splits_days(self):
        # America/Bogota is UTC-5: 04:50Z is 23:50 on the 19th, 05:10Z is 00:10 on the 20th
        late = {"id": "payment:a", "paymentMethod": "cash", "total": "10.00",
                "createdAt": "2026-10-20T04:50:00.000Z"}
        early = {"id": "payment:b", "paymentMethod": "cash", "total": "20.00",
                 "createdAt": "2026-10-20T05:10:00.000Z"}

        on_19th = cash_closing_service.daily_payments("2026-10-19", "America/Bogota", [late, early])
        on_20th = cash_closing_service.daily_payments(date(2026, 10, 20), "America/Bogota", [late, early])

        assert [p["id"] for p in on_19th] == ["payment:a"]
        assert [p["id"] for p in on_20th] == ["payment:b"]

    def test_invalid_date(self, db_session):
        with pytest.raises(ValidationError):
            cash_closing_service.daily_payments("19/10/2026")


class TestSummarizeByMethod:

    def test_grand_total_is_sum_of_methods(self):
        payments = [
            {"paymentMethod": "cash", "total": "50.00"},
            {"paymentMethod": "cash", "total": "30.25"},
            {"paymentMethod": "card", "total": "19.99"},
            {"paymentMethod": "qr", "total": "0.01"},
        ]

        summary = cash_closing_service.summarize_by_method(payments)

        assert summary["byMethod"] == {
            "card": {"count": 1, "total": "19.99"},
            "cash": {"count": 2, "total": "80.25"},
            "qr": {"count": 1, "total": "0.01"},
        }
        assert summary["count"] == 4
        assert summary["total"] == "100.25"

    def test_empty_day(self):
        summary = cash_closing_service.summarize_by_method([])
        assert summary == {"byMethod": {}, "count": 0, "total": "0.00"}


class TestGenerateClosing:

    def test_shortfall(self, flat_rates):
        _pay("cash", "200.00")
        _pay("cash", "100.00")
        _pay("card", "45.50")

        closing = cash_closing_service.generate_closing("295.00", notes="end of shift", actor="user_profile:1")

        assert closing["expectedCash"] == "300.00"
        assert closing["cashCountEntered"] == "295.00"
        assert closing["difference"] == "-5.00"
        assert closing["variance"] == "5.00"
        assert closing["totalSales"] == "345.50"
        assert closing["totalCash"] == "300.00"
        assert closing["totalCard"] == "45.50"
        assert closing["totalTransactions"] == 3
        assert closing["closedBy"] == "user_profile:1"

    def test_overage(self, flat_rates):
        _pay("cash", "100.00")
        closing = cash_closing_service.generate_closing("102.50")
        assert closing["difference"] == "2.50"

    def test_no_payments(self, db_session):
        closing = cash_closing_service.generate_closing(0)
        assert closing["expectedCash"] == "0.00"
        assert closing["difference"] == "0.00"
        assert closing["totalTransactions"] == 0

    @pytest.mark.parametrize("count", [None, "", "-1", "abc"])
    def test_bad_cash_count(self, db_session, count):
        with pytest.raises(ValidationError):
            cash_closing_service.generate_closing(count)

    def test_snapshot_is_frozen(self, flat_rates):
        _pay("cash", "100.00")
        first = cash_closing_service.generate_closing("100.00")

        _pay("cash", "50.00")
        second = cash_closing_service.generate_closing("150.00")

        assert cash_closing_service.get_closing(first["id"])["expectedCash"] == "100.00"
        assert second["expectedCash"] == "150.00"
        assert len(cash_closing_service.list_closings()) == 2

    def test_other_day_excluded(self, flat_rates):
        _pay("cash", "100.00")
        closing = cash_closing_service.generate_closing("0", day="2000-01-01")
        assert closing["expectedCash"] == "0.00"
        assert closing["date"] == "2000-01-01"

    def test_missing_closing(self, db_session):
        with pytest.raises(NotFoundError):
            cash_closing_service.get_closing("cash_closing:missing")


class TestPreview:

    def test_preview_does_not_persist(self, flat_rates):
        _pay("cash", "10.00")
        _pay("transfer", "5.00")

        preview = cash_closing_service.preview_closing()

        assert preview["expectedCash"] == "10.00"
        assert preview["total"] == "15.00"
        assert cash_closing_service.list_closings() == []
