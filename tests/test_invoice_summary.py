# tests/test_invoice_summary.py - dashboard aggregation

from datetime import date, datetime
from decimal import Decimal

from models.invoice import InvoiceCategory, InvoiceStatus
from services.invoice_summary import compute_invoice_summary, growth_percentage, percentage

NOW = datetime(2025, 2, 15, 12, 0, 0)


class TestPercentages:

    def test_percentage_rounds_half_up(self):
        assert percentage(1, 3) == 33.33
        assert percentage(2, 3) == 66.67
        assert percentage(0, 0) == 0.0

    def test_growth_zero_without_previous(self):
        assert growth_percentage(Decimal("100"), Decimal("0")) == 0.0

    def test_growth_negative(self):
        assert growth_percentage(Decimal("50"), Decimal("200")) == -75.0


class TestInvoiceSummary:

    def test_collection_rate_seven_of_ten(self, db, seed, make_invoice):
        """$10,000 billed over ten invoices, seven paid: collection rate 70"""
        for i in range(10):
            status = InvoiceStatus.PAID if i < 7 else InvoiceStatus.SENT
            make_invoice(amount=Decimal("1000"), status=status)

        summary = compute_invoice_summary(db, seed.org_a.id, NOW)
        overview = summary["overview"]

        assert overview["total_invoices"] == 10
        assert overview["total_amount"] == 10000.0
        assert overview["paid_amount"] == 7000.0
        assert overview["pending_amount"] == 3000.0
        assert overview["collection_rate"] == 70.0

    def test_overdue_aging_uses_derived_status(self, db, seed, make_invoice):
        # Stored as Sent; both are past due on 2025-02-15 12:00
        make_invoice(amount=Decimal("300"), status=InvoiceStatus.SENT,
                     issue_date=date(2025, 1, 20), due_date=date(2025, 2, 5))
        make_invoice(amount=Decimal("200"), status=InvoiceStatus.VIEWED,
                     issue_date=date(2025, 1, 20), due_date=date(2025, 2, 10))
        # Paid invoices are never overdue
        make_invoice(amount=Decimal("999"), status=InvoiceStatus.PAID,
                     issue_date=date(2025, 1, 1), due_date=date(2025, 1, 15))

        summary = compute_invoice_summary(db, seed.org_a.id, NOW)

        assert summary["overdue"]["count"] == 2
        assert summary["overdue"]["amount"] == 500.0
        # ceil(10.5) = 11 and ceil(5.5) = 6, mean 8.5 rounds to 9
        assert summary["overdue"]["avg_days_overdue"] == 9
        assert summary["overview"]["overdue_amount"] == 500.0
        assert summary["distributions"]["status"] == {"Overdue": 2, "Paid": 1}

    def test_month_over_month_growth(self, db, seed, make_invoice):
        for _ in range(2):
            make_invoice(amount=Decimal("500"), issue_date=date(2025, 1, 10), due_date=date(2025, 3, 1))
        for _ in range(3):
            make_invoice(amount=Decimal("500"), issue_date=date(2025, 2, 3), due_date=date(2025, 3, 1))
        # Older than last month: ignored by the monthly block
        make_invoice(amount=Decimal("500"), issue_date=date(2024, 12, 1), due_date=date(2025, 3, 1))

        monthly = compute_invoice_summary(db, seed.org_a.id, NOW)["monthly"]

        assert monthly["current_month"] == 1500.0
        assert monthly["current_month_count"] == 3
        assert monthly["last_month"] == 1000.0
        assert monthly["last_month_count"] == 2
        assert monthly["growth"] == 50.0

    def test_category_distribution(self, db, seed, make_invoice):
        make_invoice(category=InvoiceCategory.RENT)
        make_invoice(category=InvoiceCategory.RENT)
        make_invoice(category=InvoiceCategory.LATE_FEE)

        summary = compute_invoice_summary(db, seed.org_a.id, NOW)

        assert summary["distributions"]["category"] == {"Rent": 2, "Late Fee": 1}

    def test_scoped_to_organization(self, db, seed, make_invoice):
        make_invoice(tenant=seed.tenant_b, amount=Decimal("750"))

        summary = compute_invoice_summary(db, seed.org_a.id, NOW)

        assert summary["overview"]["total_invoices"] == 0
        assert summary["overview"]["collection_rate"] == 0.0
        assert summary["overdue"]["avg_days_overdue"] == 0
