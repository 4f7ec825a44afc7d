# services/bulk_actions.py
"""
Bulk status changes over a set of invoices in one organization.

A batch is applied as a unit: every id must resolve inside the caller's
organization and every invoice must be able to make the requested
transition, otherwise nothing is changed.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from models import Invoice
from models.invoice import InvoiceStatus
from schemas.billing import BulkAction
from services.invoice_status import can_transition, effective_status, transition
from utils.exceptions import AuthorizationError, InvalidTransitionError, ValidationError

logger = structlog.get_logger(__name__)

ACTION_TARGETS = {
     BulkAction.SEND_INVOICES: InvoiceStatus.SENT,
     BulkAction.MARK_PAID: InvoiceStatus.PAID,
}


@dataclass
class BulkOutcome:
     action: BulkAction
     results: List[Dict] = field(default_factory=list)

     @property
     def processed_count(self) -> int:
          return len(self.results)

     @property
     def message(self) -> str:
          return f"{self.processed_count} invoice(s) processed"


def _target_status(action: BulkAction, status: Optional[InvoiceStatus]) -> InvoiceStatus:
     if action == BulkAction.UPDATE_STATUS:
          if status is None:
               raise ValidationError(
                    "Status is required for update_status",
                    errors=[{"field": "data.status", "message": "Status is required"}],
               )
          if status == InvoiceStatus.OVERDUE:
               raise InvalidTransitionError(
                    "Overdue is set automatically from the due date and cannot be requested",
                    errors=[{"field": "data.status", "message": "Overdue cannot be set explicitly"}],
               )
          return status
     return ACTION_TARGETS[action]


def _blocked_transitions(invoices: List[Invoice], target: InvoiceStatus, now: datetime) -> List[Dict]:
     blocked = []
     for invoice in invoices:
          if invoice.status == target:
               continue
          current = effective_status(invoice, now)
          if not can_transition(current, target):
               blocked.append({
                    "invoiceId": invoice.id,
                    "message": f"{current.value} -> {target.value} is not allowed",
               })
     return blocked


def apply_bulk_action(
     db: Session,
     organization_id: int,
     action: BulkAction,
     invoice_ids: List[int],
     now: datetime,
     status: Optional[InvoiceStatus] = None,
) -> BulkOutcome:
     """
     Apply one status change to many invoices, all or nothing.

     Raises:
          ValidationError: update_status without a status
          AuthorizationError: any id missing from the caller's organization
          InvalidTransitionError: any invoice cannot reach the target status
     """
     target = _target_status(action, status)
     ids = list(dict.fromkeys(invoice_ids))

     invoices = (
          db.query(Invoice)
          .filter(Invoice.id.in_(ids), Invoice.organization_id == organization_id)
          .all()
     )
     if len(invoices) != len(ids):
          found = {inv.id for inv in invoices}
          logger.warning(
               "bulk_action_rejected",
               organization_id=organization_id,
               action=action.value,
               unresolved=[i for i in ids if i not in found],
          )
          raise AuthorizationError("Some invoices not found or not authorized")

     by_id = {inv.id: inv for inv in invoices}
     ordered = [by_id[invoice_id] for invoice_id in ids]

     blocked = _blocked_transitions(ordered, target, now)
     if blocked:
          logger.warning(
               "bulk_action_blocked",
               organization_id=organization_id,
               action=action.value,
               target=target.value,
               blocked=[b["invoiceId"] for b in blocked],
          )
          raise InvalidTransitionError(
               f"{len(blocked)} invoice(s) cannot be moved to {target.value}; nothing was applied",
               errors=blocked,
          )

     outcome = BulkOutcome(action=action)
     for invoice in ordered:
          transition(invoice, target, now)
          outcome.results.append({"invoice_id": invoice.id, "status": effective_status(invoice, now).value})

     db.flush()
     logger.info(
          "bulk_action_applied",
          organization_id=organization_id,
          action=action.value,
          target=target.value,
          processed=outcome.processed_count,
     )
     return outcome
