# services/recurring_billing.py
"""
Monthly rent generation.

Turns every active lease of an organization into one Pending rent invoice
for the target month. Re-running for the same month creates nothing new:
leases that already have an open invoice for the month are skipped up
front, and the (lease_id, billing_period) unique constraint catches
anything a concurrent run slipped in between the check and the insert.

Usage:
     with get_session_context() as db:
          result = generate_monthly_invoices(db, organization_id=1, created_by=1)
          print(result.count, result.skipped)
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import settings
from models import Invoice, InvoiceLineItem, Lease, LeaseStatus, Organization
from models.invoice import InvoiceCategory, InvoicePriority, InvoiceStatus, RecurrenceFrequency, to_money
from services.clock import Clock, SystemClock
from services.invoice_service import check_tenant_reference
from services.invoice_status import OPEN_BILLING_STATUSES
from utils.exceptions import DuplicateError, InvalidReferenceError, NotFoundError

logger = structlog.get_logger(__name__)

# How many sequence numbers one lease may burn through on number collisions
MAX_NUMBER_ATTEMPTS = 5

SKIP_ALREADY_BILLED = "already_billed"
SKIP_MISSING_PROPERTY = "missing_property"


@dataclass
class GenerationResult:
     month: date
     created: List[Invoice] = field(default_factory=list)
     skipped: List[Dict] = field(default_factory=list)

     @property
     def count(self) -> int:
          return len(self.created)

     @property
     def invoice_numbers(self) -> List[str]:
          return [inv.invoice_number for inv in self.created]

     def skip(self, lease_id: int, reason: str) -> None:
          self.skipped.append({"lease_id": lease_id, "reason": reason})


def month_start(value: date) -> date:
     return value.replace(day=1)


def add_months(value: date, months: int) -> date:
     """First day of the month `months` after value's month."""
     index = value.year * 12 + (value.month - 1) + months
     return date(index // 12, index % 12 + 1, 1)


def format_invoice_number(prefix: str, period: date, sequence: int) -> str:
     return f"INV-{prefix}-{period:%Y%m}-{sequence:03d}"


def _reference_problem(lease: Lease, organization_id: int) -> Optional[str]:
     reason = check_tenant_reference(lease.tenant, organization_id, lease.property_id)
     if reason:
          return reason
     if lease.property is None or lease.property.organization_id != organization_id:
          return SKIP_MISSING_PROPERTY
     return None


def _build_invoice(
     lease: Lease,
     invoice_number: str,
     period: date,
     issue_date: date,
     created_by: int,
) -> Invoice:
     rent = to_money(lease.rent_price)
     label = f"Rent for {period:%B %Y}"
     invoice = Invoice(
          organization_id=lease.organization_id,
          invoice_number=invoice_number,
          tenant_id=lease.tenant_id,
          property_id=lease.property_id,
          lease_id=lease.id,
          created_by=created_by,
          title=label,
          category=InvoiceCategory.RENT,
          priority=InvoicePriority.MEDIUM,
          status=InvoiceStatus.PENDING,
          tax_amount=Decimal("0.00"),
          discount_amount=Decimal("0.00"),
          issue_date=issue_date,
          due_date=period,
          is_recurring=True,
          frequency=RecurrenceFrequency.MONTHLY,
          next_invoice_date=add_months(period, 1),
          billing_period=period,
     )
     invoice.line_items = [
          InvoiceLineItem(
               position=0,
               description=label,
               quantity=Decimal("1"),
               unit_price=rent,
               amount=rent,
               tax_rate=Decimal("0"),
          )
     ]
     invoice.recalculate_totals()
     return invoice


def _already_billed(db: Session, lease_id: int, period: date) -> bool:
     return (
          db.query(Invoice.id)
          .filter(Invoice.lease_id == lease_id, Invoice.billing_period == period)
          .first()
          is not None
     )


def generate_monthly_invoices(
     db: Session,
     organization_id: int,
     created_by: int,
     for_month: Optional[date] = None,
     clock: Optional[Clock] = None,
     reference_policy: Optional[str] = None,
) -> GenerationResult:
     """
     Generate one rent invoice per active lease for a month.

     Args:
          db: SQLAlchemy database session (caller commits)
          organization_id: organization being billed
          created_by: user recorded as the creator of every invoice
          for_month: any day of the target month; defaults to next month
          clock: time source, SystemClock when omitted
          reference_policy: "skip" (report stale leases and continue) or
               "abort" (refuse the whole run); defaults to the configured policy

     Returns:
          GenerationResult with the created invoices and per-lease skips

     Raises:
          NotFoundError: unknown organization
          InvalidReferenceError: stale lease references under the abort policy
     """
     clock = clock or SystemClock()
     policy = reference_policy or settings.GENERATION_REFERENCE_POLICY
     today = clock.today()
     period = month_start(for_month) if for_month else add_months(today, 1)
     issue_date = min(today, period)

     organization = db.query(Organization).filter(Organization.id == organization_id).first()
     if organization is None:
          raise NotFoundError(f"Organization with ID {organization_id} not found")

     result = GenerationResult(month=period)
     logger.info(
          "invoice_generation_started",
          organization_id=organization_id,
          month=period.isoformat(),
          policy=policy,
     )

     leases = (
          db.query(Lease)
          .filter(Lease.organization_id == organization_id, Lease.status == LeaseStatus.ACTIVE)
          .order_by(Lease.id)
          .all()
     )
     if not leases:
          logger.info("invoice_generation_completed", organization_id=organization_id, created=0, skipped=0)
          return result

     # Only seeds the human-readable sequence; uniqueness is the constraints' job
     sequence_seed = (
          db.query(func.count(Invoice.id))
          .filter(Invoice.organization_id == organization_id, Invoice.billing_period == period)
          .scalar()
     ) or 0

     billed = {
          lease_id
          for (lease_id,) in db.query(Invoice.lease_id).filter(
               Invoice.organization_id == organization_id,
               Invoice.billing_period == period,
               Invoice.status.in_(OPEN_BILLING_STATUSES),
          )
     }

     eligible = []
     problems = []
     for lease in leases:
          if lease.id in billed:
               result.skip(lease.id, SKIP_ALREADY_BILLED)
               continue
          problem = _reference_problem(lease, organization_id)
          if problem:
               problems.append({"field": f"lease:{lease.id}", "message": problem})
               result.skip(lease.id, problem)
               logger.warning("invoice_generation_lease_skipped", lease_id=lease.id, reason=problem)
               continue
          eligible.append(lease)

     if problems and policy == "abort":
          logger.error(
               "invoice_generation_aborted",
               organization_id=organization_id,
               month=period.isoformat(),
               problems=len(problems),
          )
          raise InvalidReferenceError(
               "Generation aborted: some leases reference missing or mismatched records",
               errors=problems,
          )

     prefix = organization.invoice_prefix
     batch = [
          _build_invoice(lease, format_invoice_number(prefix, period, sequence_seed + offset + 1), period, issue_date, created_by)
          for offset, lease in enumerate(eligible)
     ]

     try:
          with db.begin_nested():
               db.add_all(batch)
               db.flush()
          result.created.extend(batch)
     except IntegrityError:
          logger.warning(
               "invoice_generation_batch_conflict",
               organization_id=organization_id,
               month=period.isoformat(),
          )
          _insert_individually(db, eligible, prefix, period, issue_date, created_by, sequence_seed, result)

     logger.info(
          "invoice_generation_completed",
          organization_id=organization_id,
          month=period.isoformat(),
          created=result.count,
          skipped=len(result.skipped),
     )
     return result


def _insert_individually(
     db: Session,
     leases: List[Lease],
     prefix: str,
     period: date,
     issue_date: date,
     created_by: int,
     sequence_seed: int,
     result: GenerationResult,
) -> None:
     """One savepoint per invoice: billed leases are skipped, number collisions move on to the next sequence."""
     sequence = sequence_seed
     for lease in leases:
          for _ in range(MAX_NUMBER_ATTEMPTS):
               sequence += 1
               invoice = _build_invoice(
                    lease, format_invoice_number(prefix, period, sequence), period, issue_date, created_by
               )
               try:
                    with db.begin_nested():
                         db.add(invoice)
                         db.flush()
               except IntegrityError:
                    if _already_billed(db, lease.id, period):
                         result.skip(lease.id, SKIP_ALREADY_BILLED)
                         break
                    logger.info("invoice_number_collision", invoice_number=invoice.invoice_number)
                    continue
               result.created.append(invoice)
               break
          else:
               raise DuplicateError(f"Could not allocate a unique invoice number for lease {lease.id}")
