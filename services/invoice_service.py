# services/invoice_service.py
"""
Invoice Service - Business logic layer for invoice operations.

This service handles manual invoice creation, updates, deletion and the
cross-entity rules (tenant/property/lease/organization must line up),
separate from the API layer. Recurring generation lives in
services/recurring_billing.py.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import is_unique_violation
from models import Invoice, InvoiceLineItem, InvoiceAttachment, Lease, Property, Tenant
from models.invoice import InvoiceStatus, to_money
from schemas.invoice import InvoiceCreate, InvoiceUpdate, RecurringInfo
from services.invoice_status import effective_status, transition
from utils.exceptions import DuplicateError, InvalidReferenceError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

INVOICE_NUMBER_KEY = "uq_invoices_organization_invoice_number"
LEASE_PERIOD_KEY = "uq_invoices_lease_billing_period"


def check_tenant_reference(tenant: Optional[Tenant], organization_id: int, property_id: int) -> Optional[str]:
     """
     Return None when the tenant belongs to the organization and property,
     otherwise a short reason code ("missing_tenant" / "tenant_mismatch").
     """
     if tenant is None:
          return "missing_tenant"
     if tenant.organization_id != organization_id or tenant.property_id != property_id:
          return "tenant_mismatch"
     return None


class InvoiceService:
     """Service class for invoice-related business logic."""

     @staticmethod
     def get_invoice(db: Session, organization_id: int, invoice_id: int) -> Invoice:
          """
          Load an invoice inside the caller's organization.

          Raises:
               NotFoundError: unknown id, or the invoice belongs to another
                    organization (callers must not learn that it exists)
          """
          invoice = (
               db.query(Invoice)
               .filter(Invoice.id == invoice_id, Invoice.organization_id == organization_id)
               .first()
          )
          if invoice is None:
               raise NotFoundError(f"Invoice with ID {invoice_id} not found")
          return invoice

     @staticmethod
     def tenant_id_for_user(db: Session, organization_id: int, user_id: int) -> Optional[int]:
          """Get tenant_id for a portal user (role=tenant). None if the user is not a tenant."""
          tenant = (
               db.query(Tenant)
               .filter(Tenant.user_id == user_id, Tenant.organization_id == organization_id)
               .first()
          )
          return tenant.tenant_id if tenant else None

     @staticmethod
     def validate_references(
          db: Session,
          organization_id: int,
          tenant_id: int,
          property_id: int,
          lease_id: Optional[int] = None,
     ) -> Tuple[Tenant, Property, Optional[Lease]]:
          """
          Verify tenant, property and (optional) lease all belong to the
          organization and to each other.

          Raises:
               InvalidReferenceError: on any mismatch
          """
          tenant = db.query(Tenant).filter(Tenant.tenant_id == tenant_id).first()
          if tenant is None or tenant.organization_id != organization_id:
               raise InvalidReferenceError(
                    "Invalid tenant",
                    errors=[{"field": "tenantId", "message": "Tenant does not belong to this organization"}],
               )

          property_obj = db.query(Property).filter(Property.id == property_id).first()
          if property_obj is None or property_obj.organization_id != organization_id:
               raise InvalidReferenceError(
                    "Invalid property",
                    errors=[{"field": "propertyId", "message": "Property does not belong to this organization"}],
               )

          if check_tenant_reference(tenant, organization_id, property_id) is not None:
               raise InvalidReferenceError(
                    "Tenant does not belong to this property",
                    errors=[{"field": "propertyId", "message": "Tenant does not belong to this property"}],
               )

          lease = None
          if lease_id is not None:
               lease = db.query(Lease).filter(Lease.id == lease_id).first()
               if lease is None or lease.organization_id != organization_id:
                    raise InvalidReferenceError(
                         "Invalid lease",
                         errors=[{"field": "leaseId", "message": "Lease does not belong to this organization"}],
                    )
               if lease.tenant_id != tenant_id:
                    raise InvalidReferenceError(
                         "Lease does not belong to the specified tenant",
                         errors=[{"field": "leaseId", "message": "Lease does not belong to the specified tenant"}],
                    )

          return tenant, property_obj, lease

     @staticmethod
     def next_invoice_number(db: Session, organization_id: int, now: datetime) -> str:
          """INV-<epoch millis>-<4 digit sequence within the organization>."""
          count = (
               db.query(func.count(Invoice.id))
               .filter(Invoice.organization_id == organization_id)
               .scalar()
          ) or 0
          millis = int(now.replace(tzinfo=timezone.utc).timestamp() * 1000)
          return f"INV-{millis}-{count + 1:04d}"

     @staticmethod
     def validate_recurrence(info: Optional[RecurringInfo], today: date) -> None:
          if info is None:
               return
          if info.next_invoice_date is not None and info.next_invoice_date <= today:
               raise ValidationError(
                    "Validation failed",
                    errors=[{"field": "recurringInfo.nextInvoiceDate", "message": "Next invoice date must be in the future"}],
               )

     @staticmethod
     def create_invoice(
          db: Session,
          organization_id: int,
          created_by: int,
          data: InvoiceCreate,
          now: datetime,
     ) -> Invoice:
          """
          Create a manual invoice in Draft status.

          Args:
               db: SQLAlchemy database session
               organization_id: caller's organization
               created_by: id of the acting user
               data: validated request body
               now: current time from the injected clock

          Returns:
               The flushed Invoice (id assigned, not yet committed)

          Raises:
               InvalidReferenceError: tenant/property/lease mismatch
               ValidationError: due date before issue date, bad recurrence, negative total
               DuplicateError: invoice number collision inside the organization
          """
          tenant, _, _ = InvoiceService.validate_references(
               db, organization_id, data.tenant_id, data.property_id, data.lease_id
          )

          issue_date = now.date()
          _check_due_date(data.due_date, issue_date)
          InvoiceService.validate_recurrence(data.recurring_info, issue_date)

          invoice = Invoice(
               organization_id=organization_id,
               invoice_number=InvoiceService.next_invoice_number(db, organization_id, now),
               tenant_id=data.tenant_id,
               property_id=data.property_id,
               lease_id=data.lease_id,
               created_by=created_by,
               title=data.title or f"Invoice for {tenant.full_name}",
               category=data.category,
               priority=data.priority,
               status=InvoiceStatus.DRAFT,
               tax_amount=data.tax_amount,
               discount_amount=data.discount_amount,
               issue_date=issue_date,
               due_date=data.due_date,
               notes=data.notes or None,
               payment_terms=data.payment_terms or None,
          )
          _apply_recurring_info(invoice, data.recurring_info)
          invoice.line_items = _build_line_items(data.line_items)
          invoice.attachments = _build_attachments(data.attachments, now)
          _check_totals(invoice)

          db.add(invoice)
          try:
               db.flush()
          except IntegrityError as e:
               if not is_unique_violation(e, INVOICE_NUMBER_KEY, "invoices", "organization_id", "invoice_number"):
                    raise
               db.rollback()
               logger.warning("invoice_number_conflict", organization_id=organization_id)
               raise DuplicateError("Invoice number already exists")

          logger.info(
               "invoice_created",
               invoice_id=invoice.id,
               invoice_number=invoice.invoice_number,
               organization_id=organization_id,
               total_amount=str(invoice.total_amount),
          )
          return invoice

     @staticmethod
     def update_invoice(db: Session, invoice: Invoice, data: InvoiceUpdate, now: datetime) -> Invoice:
          """
          Apply a partial update. References are re-validated when tenant,
          property or lease change; a status change goes through the state
          machine after all other fields are applied.
          """
          fields = data.model_dump(exclude_unset=True)

          if {"tenant_id", "property_id", "lease_id"} & fields.keys():
               tenant_id = fields.get("tenant_id") or invoice.tenant_id
               property_id = fields.get("property_id") or invoice.property_id
               lease_id = fields["lease_id"] if "lease_id" in fields else invoice.lease_id
               InvoiceService.validate_references(db, invoice.organization_id, tenant_id, property_id, lease_id)
               invoice.tenant_id = tenant_id
               invoice.property_id = property_id
               invoice.lease_id = lease_id

          for name in ("title", "category", "priority", "notes", "payment_terms"):
               if name in fields and fields[name] is not None:
                    setattr(invoice, name, getattr(data, name))

          for name in ("tax_amount", "discount_amount"):
               if fields.get(name) is not None:
                    setattr(invoice, name, getattr(data, name))

          if fields.get("due_date") is not None:
               _check_due_date(data.due_date, invoice.issue_date)
               invoice.due_date = data.due_date

          if data.line_items is not None:
               invoice.line_items = _build_line_items(data.line_items)

          if data.attachments is not None:
               invoice.attachments = _build_attachments(data.attachments, now)

          if data.recurring_info is not None:
               InvoiceService.validate_recurrence(data.recurring_info, now.date())
               _apply_recurring_info(invoice, data.recurring_info)

          if data.status is not None:
               transition(invoice, data.status, now)

          _check_totals(invoice)
          try:
               db.flush()
          except IntegrityError as e:
               if not is_unique_violation(e, LEASE_PERIOD_KEY, "invoices", "lease_id", "billing_period"):
                    raise
               logger.warning("invoice_lease_period_conflict", invoice_id=invoice.id, lease_id=invoice.lease_id)
               db.rollback()
               raise DuplicateError(
                    "Lease already has an invoice for this billing period",
                    errors=[{"field": "leaseId", "message": "Lease already billed for this billing period"}],
               )

          logger.info("invoice_updated", invoice_id=invoice.id, fields=sorted(fields.keys()))
          return invoice

     @staticmethod
     def mark_viewed(invoice: Invoice, now: datetime) -> bool:
          """A tenant opening a Sent invoice moves it to Viewed."""
          if invoice.status == InvoiceStatus.SENT:
               return transition(invoice, InvoiceStatus.VIEWED, now)
          return False

     @staticmethod
     def delete_invoice(db: Session, invoice: Invoice) -> None:
          logger.info(
               "invoice_deleted",
               invoice_id=invoice.id,
               invoice_number=invoice.invoice_number,
               organization_id=invoice.organization_id,
          )
          db.delete(invoice)
          db.flush()

     @staticmethod
     def calculate_tenant_balance(db: Session, organization_id: int, tenant_id: int, now: datetime) -> dict:
          """
          Calculate paid/pending/overdue totals for one tenant using derived statuses.

          Returns:
               Dictionary with balance information
          """
          tenant = (
               db.query(Tenant)
               .filter(Tenant.tenant_id == tenant_id, Tenant.organization_id == organization_id)
               .first()
          )
          if tenant is None:
               raise NotFoundError(f"Tenant with ID {tenant_id} not found")

          invoices = (
               db.query(Invoice)
               .filter(Invoice.tenant_id == tenant_id, Invoice.organization_id == organization_id)
               .all()
          )

          buckets = {"paid": [], "pending": [], "overdue": []}
          for inv in invoices:
               status = effective_status(inv, now)
               if status == InvoiceStatus.PAID:
                    buckets["paid"].append(inv)
               elif status == InvoiceStatus.OVERDUE:
                    buckets["overdue"].append(inv)
               elif status not in (InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED):
                    buckets["pending"].append(inv)

          def _bucket(items):
               return {
                    "count": len(items),
                    "amount": float(sum((to_money(i.total_amount) for i in items), Decimal("0"))),
               }

          return {
               "tenant_id": tenant_id,
               "tenant_name": tenant.full_name,
               "total_invoices": len(invoices),
               "total_amount": float(sum((to_money(i.total_amount) for i in invoices), Decimal("0"))),
               "paid": _bucket(buckets["paid"]),
               "pending": _bucket(buckets["pending"]),
               "overdue": _bucket(buckets["overdue"]),
          }


def _check_due_date(due_date: date, issue_date: date) -> None:
     if due_date < issue_date:
          raise ValidationError(
               "Validation failed",
               errors=[{"field": "dueDate", "message": "Due date must be on or after the issue date"}],
          )


def _check_totals(invoice: Invoice) -> None:
     invoice.recalculate_totals()
     if invoice.total_amount < 0:
          raise ValidationError(
               "Validation failed",
               errors=[{"field": "discountAmount", "message": "Discount cannot exceed subtotal plus tax"}],
          )


def _build_line_items(items) -> list:
     return [
          InvoiceLineItem(
               position=index,
               description=item.description,
               quantity=item.quantity,
               unit_price=item.unit_price,
               amount=to_money(item.quantity * item.unit_price),
               tax_rate=item.tax_rate,
          )
          for index, item in enumerate(items)
     ]


def _build_attachments(items, now: datetime) -> list:
     return [
          InvoiceAttachment(
               url=item.url,
               filename=item.filename,
               description=item.description,
               uploaded_at=item.uploaded_at or now,
          )
          for item in items
     ]


def _apply_recurring_info(invoice: Invoice, info: Optional[RecurringInfo]) -> None:
     if info is None:
          return
     invoice.is_recurring = info.is_recurring
     invoice.frequency = info.frequency
     invoice.next_invoice_date = info.next_invoice_date
     invoice.recurrence_end_date = info.end_date
