# services/invoice_summary.py
"""
Dashboard aggregation over an organization's invoices.

One pass over the invoice set, using derived statuses, so an unpaid invoice
past its due date counts as overdue even if nobody re-saved it.
"""
from collections import Counter
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

import structlog
from sqlalchemy.orm import Session

from models import Invoice
from models.invoice import InvoiceStatus, to_money
from services.invoice_status import derive_status, days_overdue
from services.recurring_billing import add_months, month_start

logger = structlog.get_logger(__name__)

HUNDREDTH = Decimal("0.01")


def percentage(part, whole) -> float:
     """part / whole * 100, half-up to two places; 0 when whole is 0."""
     if not whole:
          return 0.0
     value = Decimal(part) * 100 / Decimal(whole)
     return float(value.quantize(HUNDREDTH, rounding=ROUND_HALF_UP))


def growth_percentage(current: Decimal, previous: Decimal) -> float:
     if previous <= 0:
          return 0.0
     value = (current - previous) / previous * 100
     return float(value.quantize(HUNDREDTH, rounding=ROUND_HALF_UP))


def compute_invoice_summary(db: Session, organization_id: int, now: datetime) -> dict:
     """
     Build the summary dictionary (overview, monthly, distributions, overdue).

     Month boundaries use the issue date: "current month" is the calendar
     month containing `now`.
     """
     this_month = month_start(now.date())
     last_month = add_months(this_month, -1)
     next_month = add_months(this_month, 1)

     invoices = db.query(Invoice).filter(Invoice.organization_id == organization_id).all()

     total_amount = Decimal("0")
     paid_amount = Decimal("0")
     overdue_amount = Decimal("0")
     paid_count = 0
     current_total = Decimal("0")
     current_count = 0
     previous_total = Decimal("0")
     previous_count = 0
     overdue_days_total = 0
     status_counts = Counter()
     category_counts = Counter()

     for invoice in invoices:
          amount = to_money(invoice.total_amount)
          status = derive_status(invoice.status, invoice.due_date, now)

          total_amount += amount
          status_counts[status.value] += 1
          category_counts[invoice.category.value] += 1

          if status == InvoiceStatus.PAID:
               paid_amount += amount
               paid_count += 1
          elif status == InvoiceStatus.OVERDUE:
               overdue_amount += amount
               overdue_days_total += days_overdue(invoice.status, invoice.due_date, now)

          if this_month <= invoice.issue_date < next_month:
               current_total += amount
               current_count += 1
          elif last_month <= invoice.issue_date < this_month:
               previous_total += amount
               previous_count += 1

     overdue_count = status_counts[InvoiceStatus.OVERDUE.value]
     avg_days = 0
     if overdue_count:
          avg_days = int((Decimal(overdue_days_total) / overdue_count).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

     summary = {
          "overview": {
               "total_invoices": len(invoices),
               "total_amount": float(to_money(total_amount)),
               "paid_amount": float(to_money(paid_amount)),
               "overdue_amount": float(to_money(overdue_amount)),
               "pending_amount": float(to_money(total_amount - paid_amount)),
               "collection_rate": percentage(paid_count, len(invoices)),
          },
          "monthly": {
               "current_month": float(to_money(current_total)),
               "last_month": float(to_money(previous_total)),
               "growth": growth_percentage(current_total, previous_total),
               "current_month_count": current_count,
               "last_month_count": previous_count,
          },
          "distributions": {
               "status": dict(status_counts),
               "category": dict(category_counts),
          },
          "overdue": {
               "count": overdue_count,
               "amount": float(to_money(overdue_amount)),
               "avg_days_overdue": avg_days,
          },
     }
     logger.debug("invoice_summary_computed", organization_id=organization_id, invoices=len(invoices))
     return summary
