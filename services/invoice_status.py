# services/invoice_status.py
"""
Invoice status state machine.

Happy path: Draft -> Sent -> Viewed -> Paid. Generated invoices start as
Pending. Cancelled and Refunded are reachable from every open state (and a
paid invoice can be refunded). Overdue is never stored on request: it is
derived from the due date each time an invoice is read, via derive_status().
"""
import math
from datetime import date, datetime, time
from typing import Optional

import structlog

from models.invoice import Invoice, InvoiceStatus
from utils.exceptions import InvalidTransitionError

logger = structlog.get_logger(__name__)

# No automatic overdue transition out of these
TERMINAL_STATUSES = frozenset({
     InvoiceStatus.PAID,
     InvoiceStatus.CANCELLED,
     InvoiceStatus.REFUNDED,
})

# Stored statuses that make a generated invoice count as already billed
OPEN_BILLING_STATUSES = (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)

_CLOSE = {InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED}

ALLOWED_TRANSITIONS = {
     InvoiceStatus.DRAFT: {InvoiceStatus.PENDING, InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.PAID} | _CLOSE,
     InvoiceStatus.PENDING: {InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.PAID} | _CLOSE,
     InvoiceStatus.SENT: {InvoiceStatus.VIEWED, InvoiceStatus.PAID} | _CLOSE,
     InvoiceStatus.VIEWED: {InvoiceStatus.PAID} | _CLOSE,
     InvoiceStatus.OVERDUE: {InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.PAID} | _CLOSE,
     InvoiceStatus.PAID: {InvoiceStatus.REFUNDED},
     InvoiceStatus.CANCELLED: set(),
     InvoiceStatus.REFUNDED: set(),
}

TIMESTAMP_FIELDS = {
     InvoiceStatus.SENT: "sent_at",
     InvoiceStatus.VIEWED: "viewed_at",
     InvoiceStatus.PAID: "paid_at",
}


def _as_status(value) -> InvoiceStatus:
     return value if isinstance(value, InvoiceStatus) else InvoiceStatus(value)


def is_past_due(due_date: Optional[date], now: datetime) -> bool:
     return due_date is not None and now.date() > due_date


def derive_status(stored_status, due_date: Optional[date], now: datetime) -> InvoiceStatus:
     """Status as seen by readers: open invoices past their due date are Overdue."""
     status = _as_status(stored_status)
     if status not in TERMINAL_STATUSES and is_past_due(due_date, now):
          return InvoiceStatus.OVERDUE
     return status


def effective_status(invoice: Invoice, now: datetime) -> InvoiceStatus:
     return derive_status(invoice.status, invoice.due_date, now)


def days_overdue(stored_status, due_date: Optional[date], now: datetime) -> int:
     """Whole days (rounded up) since the due date began, 0 unless overdue."""
     if derive_status(stored_status, due_date, now) != InvoiceStatus.OVERDUE:
          return 0
     elapsed = now - datetime.combine(due_date, time.min)
     return max(0, math.ceil(elapsed.total_seconds() / 86400))


def can_transition(current, target) -> bool:
     return _as_status(target) in ALLOWED_TRANSITIONS[_as_status(current)]


def transition(invoice: Invoice, target, now: datetime) -> bool:
     """
     Move an invoice to `target`, stamping sent_at/viewed_at/paid_at the first
     time it enters the matching status. Returns False when nothing changed.

     Raises:
          InvalidTransitionError: target is Overdue, or not reachable from the
               invoice's current (derived) status.
     """
     target = _as_status(target)
     if target == InvoiceStatus.OVERDUE:
          raise InvalidTransitionError(
               "Overdue is set automatically from the due date and cannot be requested",
               errors=[{"field": "status", "message": "Overdue cannot be set explicitly"}],
          )

     stored = _as_status(invoice.status)
     if target == stored:
          return False

     current = derive_status(stored, invoice.due_date, now)
     if not can_transition(current, target):
          raise InvalidTransitionError(
               f"Cannot move invoice from {current.value} to {target.value}",
               errors=[{"field": "status", "message": f"{current.value} -> {target.value} is not allowed"}],
          )

     invoice.status = target
     field = TIMESTAMP_FIELDS.get(target)
     if field and getattr(invoice, field) is None:
          setattr(invoice, field, now)

     logger.info(
          "invoice_status_changed",
          invoice_id=invoice.id,
          from_status=stored.value,
          to_status=target.value,
     )
     return True
