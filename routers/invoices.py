# routers/invoices.py
"""
Invoice API routes.

Every route is scoped to the caller's organization; an invoice from another
organization is reported as not found.
Role-based access:
- Admin / Manager: everything, including delete, generation and bulk actions
- Agent: create, update, email, read, summary
- Tenant: read own invoices only
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_, and_
from sqlalchemy.orm import Session

from database import get_session
from dependencies import Actor, MANAGER_ROLES, STAFF_ROLES, get_actor, get_clock, require_roles
from models import Invoice, Organization
from models.invoice import InvoiceCategory, InvoicePriority, InvoiceStatus, to_money
from schemas.billing import (
     BulkActionRequest,
     BulkActionResponse,
     GenerateInvoicesRequest,
     GenerateInvoicesResponse,
     InvoiceSummaryResponse,
)
from schemas.invoice import (
     AttachmentResponse,
     ErrorResponse,
     InvoiceCreate,
     InvoiceEmailRequest,
     InvoiceEmailResponse,
     InvoiceListResponse,
     InvoiceResponse,
     InvoiceSearchResult,
     InvoiceUpdate,
     LineItemResponse,
     PageTotals,
     Pagination,
     RecurringInfo,
     TenantInvoiceSummary,
)
from services.bulk_actions import apply_bulk_action
from services.clock import Clock
from services.invoice_service import InvoiceService
from services.invoice_status import TERMINAL_STATUSES, days_overdue, derive_status, effective_status, transition
from services.invoice_summary import compute_invoice_summary
from services.recurring_billing import generate_monthly_invoices
from utils.email import render_invoice_html, send_invoice_email
from utils.exceptions import NotFoundError, ValidationError

router = APIRouter(
     prefix="/api/invoices",
     tags=["invoices"],
     responses={code: {"model": ErrorResponse} for code in (400, 401, 403, 404)},
)

SORT_FIELDS = {
     "createdAt": Invoice.created_at,
     "issueDate": Invoice.issue_date,
     "dueDate": Invoice.due_date,
     "totalAmount": Invoice.total_amount,
     "invoiceNumber": Invoice.invoice_number,
     "status": Invoice.status,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _build_invoice_response(invoice: Invoice, now: datetime) -> InvoiceResponse:
     """Build InvoiceResponse with derived status and related display data."""
     current = effective_status(invoice, now)
     tenant = invoice.tenant
     property_obj = invoice.property
     return InvoiceResponse(
          id=invoice.id,
          organization_id=invoice.organization_id,
          invoice_number=invoice.invoice_number,
          tenant_id=invoice.tenant_id,
          property_id=invoice.property_id,
          lease_id=invoice.lease_id,
          created_by=invoice.created_by,
          title=invoice.title,
          category=invoice.category,
          priority=invoice.priority,
          status=current,
          line_items=[LineItemResponse.model_validate(item) for item in invoice.line_items],
          subtotal=invoice.subtotal,
          tax_amount=invoice.tax_amount,
          discount_amount=invoice.discount_amount,
          total_amount=invoice.total_amount,
          amount=invoice.amount,
          issue_date=invoice.issue_date,
          due_date=invoice.due_date,
          sent_at=invoice.sent_at,
          viewed_at=invoice.viewed_at,
          paid_at=invoice.paid_at,
          payment_terms=invoice.payment_terms,
          notes=invoice.notes,
          # Stored schedules were validated on the way in
          recurring_info=RecurringInfo.model_construct(
               is_recurring=bool(invoice.is_recurring),
               frequency=invoice.frequency,
               next_invoice_date=invoice.next_invoice_date,
               end_date=invoice.recurrence_end_date,
          ),
          attachments=[AttachmentResponse.model_validate(a) for a in invoice.attachments],
          is_overdue=current == InvoiceStatus.OVERDUE,
          days_overdue=days_overdue(invoice.status, invoice.due_date, now),
          created_at=invoice.created_at,
          updated_at=invoice.updated_at,
          tenant_name=tenant.full_name if tenant else None,
          tenant_email=tenant.email if tenant else None,
          property_name=property_obj.property_name if property_obj else None,
     )


def _tenant_scope(db: Session, actor: Actor) -> Optional[int]:
     """tenant_id a tenant actor is limited to; None for staff. -1 when the login has no tenant profile."""
     if not actor.is_tenant:
          return None
     tenant_id = InvoiceService.tenant_id_for_user(db, actor.organization_id, actor.user_id)
     return tenant_id if tenant_id is not None else -1


def _get_scoped_invoice(db: Session, actor: Actor, invoice_id: int) -> Invoice:
     invoice = InvoiceService.get_invoice(db, actor.organization_id, invoice_id)
     scope = _tenant_scope(db, actor)
     if scope is not None and invoice.tenant_id != scope:
          raise NotFoundError(f"Invoice with ID {invoice_id} not found")
     return invoice


def _status_clause(wanted: InvoiceStatus, today: date):
     """SQL filter matching the derived status."""
     open_statuses = [s for s in InvoiceStatus if s not in TERMINAL_STATUSES and s != InvoiceStatus.OVERDUE]
     if wanted == InvoiceStatus.OVERDUE:
          return or_(
               Invoice.status == InvoiceStatus.OVERDUE,
               and_(Invoice.status.in_(open_statuses), Invoice.due_date < today),
          )
     if wanted in TERMINAL_STATUSES:
          return Invoice.status == wanted
     return and_(Invoice.status == wanted, Invoice.due_date >= today)


def _page_totals(rows, now: datetime) -> PageTotals:
     total = paid = overdue = Decimal("0")
     for stored, due_date, amount in rows:
          amount = to_money(amount)
          total += amount
          current = derive_status(stored, due_date, now)
          if current == InvoiceStatus.PAID:
               paid += amount
          elif current == InvoiceStatus.OVERDUE:
               overdue += amount
     return PageTotals(
          total_invoices=len(rows),
          total_amount=total,
          paid_amount=paid,
          overdue_amount=overdue,
          pending_amount=total - paid,
     )


# ---------------------------------------------------------------------------
# Collection endpoints
# ---------------------------------------------------------------------------

@router.post(
     "",
     response_model=InvoiceResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Create a new invoice"
)
def create_invoice(
     invoice_data: InvoiceCreate,
     db: Session = Depends(get_session),
     actor: Actor = Depends(require_roles(*STAFF_ROLES)),
     clock: Clock = Depends(get_clock),
):
     """
     Create a manual invoice in Draft status.

     - **tenantId** / **propertyId**: must belong to the caller's organization and to each other
     - **lineItems**: at least one; amounts are recomputed as quantity x unitPrice
     - **taxAmount** / **discountAmount**: added to / subtracted from the subtotal
     """
     now = clock.now()
     invoice = InvoiceService.create_invoice(db, actor.organization_id, actor.user_id, invoice_data, now)
     db.commit()
     db.refresh(invoice)
     return _build_invoice_response(invoice, now)


@router.get(
     "",
     response_model=InvoiceListResponse,
     summary="List invoices with filters"
)
def list_invoices(
     page: int = Query(1, ge=1, description="Page number"),
     limit: int = Query(10, ge=1, le=100, description="Items per page"),
     status_filter: Optional[InvoiceStatus] = Query(None, alias="status", description="Filter by (derived) status"),
     priority: Optional[InvoicePriority] = Query(None),
     category: Optional[InvoiceCategory] = Query(None),
     property_id: Optional[int] = Query(None, alias="propertyId"),
     tenant_id: Optional[int] = Query(None, alias="tenantId"),
     lease_id: Optional[int] = Query(None, alias="leaseId"),
     overdue: Optional[bool] = Query(None, description="Only overdue (true) or only not overdue (false)"),
     start_date: Optional[date] = Query(None, alias="startDate", description="Issue date from"),
     end_date: Optional[date] = Query(None, alias="endDate", description="Issue date to"),
     search: Optional[str] = Query(None, max_length=100, description="Invoice number, title or notes"),
     sort_by: str = Query("createdAt", alias="sortBy"),
     sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
     db: Session = Depends(get_session),
     actor: Actor = Depends(get_actor),
     clock: Clock = Depends(get_clock),
):
     """
     Retrieve a paginated list of invoices with optional filters.

     `summary` carries totals over every matching invoice, not just the page.
     Tenants only ever see their own invoices.
     """
     now = clock.now()
     today = now.date()
     query = db.query(Invoice).filter(Invoice.organization_id == actor.organization_id)

     scope = _tenant_scope(db, actor)
     if scope is not None:
          query = query.filter(Invoice.tenant_id == scope)

     if status_filter is not None:
          query = query.filter(_status_clause(status_filter, today))
     if overdue is True:
          query = query.filter(_status_clause(InvoiceStatus.OVERDUE, today))
     elif overdue is False:
          query = query.filter(~_status_clause(InvoiceStatus.OVERDUE, today))
     if priority is not None:
          query = query.filter(Invoice.priority == priority)
     if category is not None:
          query = query.filter(Invoice.category == category)
     if property_id:
          query = query.filter(Invoice.property_id == property_id)
     if tenant_id:
          query = query.filter(Invoice.tenant_id == tenant_id)
     if lease_id:
          query = query.filter(Invoice.lease_id == lease_id)
     if start_date:
          query = query.filter(Invoice.issue_date >= start_date)
     if end_date:
          query = query.filter(Invoice.issue_date <= end_date)
     if search:
          pattern = f"%{search.strip()}%"
          query = query.filter(
               or_(
                    Invoice.invoice_number.ilike(pattern),
                    Invoice.title.ilike(pattern),
                    Invoice.notes.ilike(pattern),
               )
          )

     totals_rows = query.with_entities(Invoice.status, Invoice.due_date, Invoice.total_amount).all()
     total = len(totals_rows)

     sort_column = SORT_FIELDS.get(sort_by, Invoice.created_at)
     ordering = sort_column.asc() if sort_order == "asc" else sort_column.desc()
     offset = (page - 1) * limit
     invoices = query.order_by(ordering, Invoice.id.desc()).offset(offset).limit(limit).all()

     total_pages = (total + limit - 1) // limit
     return InvoiceListResponse(
          data=[_build_invoice_response(inv, now) for inv in invoices],
          pagination=Pagination(
               current_page=page,
               total_pages=total_pages,
               total_count=total,
               has_next=page < total_pages,
               has_prev=page > 1,
          ),
          summary=_page_totals(totals_rows, now),
     )


@router.get(
     "/search",
     response_model=List[InvoiceSearchResult],
     summary="Quick search over invoices"
)
def search_invoices(
     q: str = Query(..., min_length=2, max_length=100),
     limit: int = Query(10, ge=1, le=50),
     db: Session = Depends(get_session),
     actor: Actor = Depends(get_actor),
     clock: Clock = Depends(get_clock),
):
     now = clock.now()
     pattern = f"%{q.strip()}%"
     query = db.query(Invoice).filter(
          Invoice.organization_id == actor.organization_id,
          or_(
               Invoice.invoice_number.ilike(pattern),
               Invoice.title.ilike(pattern),
               Invoice.notes.ilike(pattern),
          ),
     )
     scope = _tenant_scope(db, actor)
     if scope is not None:
          query = query.filter(Invoice.tenant_id == scope)

     results = []
     for invoice in query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).limit(limit).all():
          results.append(
               InvoiceSearchResult(
                    id=invoice.id,
                    invoice_number=invoice.invoice_number,
                    title=invoice.title,
                    total_amount=invoice.total_amount,
                    status=effective_status(invoice, now),
                    category=invoice.category,
                    issue_date=invoice.issue_date,
                    due_date=invoice.due_date,
                    tenant_id=invoice.tenant_id,
                    property_id=invoice.property_id,
                    tenant_name=invoice.tenant.full_name if invoice.tenant else None,
                    property_name=invoice.property.property_name if invoice.property else None,
               )
          )
     return results


@router.get(
     "/summary",
     response_model=InvoiceSummaryResponse,
     summary="Invoice dashboard summary"
)
def get_invoice_summary(
     db: Session = Depends(get_session),
     actor: Actor = Depends(require_roles(*STAFF_ROLES)),
     clock: Clock = Depends(get_clock),
):
     """Totals, month-over-month growth, status/category distributions and overdue aging."""
     summary = compute_invoice_summary(db, actor.organization_id, clock.now())
     return InvoiceSummaryResponse.model_validate(summary)


@router.post(
     "/generate",
     response_model=GenerateInvoicesResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Generate monthly rent invoices"
)
def generate_invoices(
     payload: Optional[GenerateInvoicesRequest] = None,
     db: Session = Depends(get_session),
     actor: Actor = Depends(require_roles(*MANAGER_ROLES)),
     clock: Clock = Depends(get_clock),
):
     """
     Create one Pending rent invoice per active lease for `forMonth`
     (default: next calendar month). Safe to re-run.
     """
     for_month = payload.for_month if payload else None
     result = generate_monthly_invoices(
          db,
          organization_id=actor.organization_id,
          created_by=actor.user_id,
          for_month=for_month,
          clock=clock,
     )
     db.commit()
     return GenerateInvoicesResponse(
          message=f"Generated {result.count} invoices for {result.month:%B %Y}",
          count=result.count,
          month=result.month,
          invoice_numbers=result.invoice_numbers,
          skipped=result.skipped,
     )


@router.post(
     "/bulk",
     response_model=BulkActionResponse,
     summary="Apply a status action to many invoices"
)
def bulk_action(
     payload: BulkActionRequest,
     db: Session = Depends(get_session),
     actor: Actor = Depends(require_roles(*MANAGER_ROLES)),
     clock: Clock = Depends(get_clock),
):
     """
     - **update_status**: move to `data.status`
     - **send_invoices**: move to Sent
     - **mark_paid**: move to Paid

     If any id is outside the caller's organization nothing is applied (403).
     If any invoice cannot make the transition nothing is applied (400).
     """
     outcome = apply_bulk_action(
          db,
          organization_id=actor.organization_id,
          action=payload.action,
          invoice_ids=payload.invoice_ids,
          now=clock.now(),
          status=payload.data.status if payload.data else None,
     )
     db.commit()
     return BulkActionResponse(
          success=True,
          action=outcome.action,
          processed_count=outcome.processed_count,
          results=outcome.results,
          message=outcome.message,
     )


@router.get(
     "/tenant/{tenant_id}/summary",
     response_model=TenantInvoiceSummary,
     summary="Invoice balance for a tenant"
)
def get_tenant_invoice_summary(
     tenant_id: int,
     db: Session = Depends(get_session),
     actor: Actor = Depends(get_actor),
     clock: Clock = Depends(get_clock),
):
     scope = _tenant_scope(db, actor)
     if scope is not None and scope != tenant_id:
          raise NotFoundError(f"Tenant with ID {tenant_id} not found")
     balance = InvoiceService.calculate_tenant_balance(db, actor.organization_id, tenant_id, clock.now())
     return TenantInvoiceSummary.model_validate(balance)


# ---------------------------------------------------------------------------
# Single invoice endpoints
# ---------------------------------------------------------------------------

@router.get(
     "/{invoice_id}",
     response_model=InvoiceResponse,
     summary="Get invoice by ID"
)
def get_invoice(
     invoice_id: int,
     db: Session = Depends(get_session),
     actor: Actor = Depends(get_actor),
     clock: Clock = Depends(get_clock),
):
     """
     Retrieve a specific invoice. A tenant opening a Sent invoice marks it Viewed.
     """
     now = clock.now()
     invoice = _get_scoped_invoice(db, actor, invoice_id)
     if actor.is_tenant and InvoiceService.mark_viewed(invoice, now):
          db.commit()
          db.refresh(invoice)
     return _build_invoice_response(invoice, now)


@router.put(
     "/{invoice_id}",
     response_model=InvoiceResponse,
     summary="Update invoice"
)
def update_invoice(
     invoice_id: int,
     invoice_data: InvoiceUpdate,
     db: Session = Depends(get_session),
     actor: Actor = Depends(require_roles(*STAFF_ROLES)),
     clock: Clock = Depends(get_clock),
):
     """
     Update an existing invoice.

     Only provided fields are updated. `lineItems` replaces the existing
     lines; `status` goes through the status rules (Overdue cannot be set).
     """
     now = clock.now()
     invoice = _get_scoped_invoice(db, actor, invoice_id)
     InvoiceService.update_invoice(db, invoice, invoice_data, now)
     db.commit()
     db.refresh(invoice)
     return _build_invoice_response(invoice, now)


@router.delete(
     "/{invoice_id}",
     status_code=status.HTTP_204_NO_CONTENT,
     summary="Delete invoice"
)
def delete_invoice(
     invoice_id: int,
     db: Session = Depends(get_session),
     actor: Actor = Depends(require_roles(*MANAGER_ROLES)),
):
     """
     Delete an invoice by ID.

     Note: This permanently removes the invoice record.
     """
     invoice = _get_scoped_invoice(db, actor, invoice_id)
     InvoiceService.delete_invoice(db, invoice)
     db.commit()


@router.post(
     "/{invoice_id}/email",
     response_model=InvoiceEmailResponse,
     summary="Email an invoice to the tenant"
)
def email_invoice(
     invoice_id: int,
     payload: Optional[InvoiceEmailRequest] = None,
     db: Session = Depends(get_session),
     actor: Actor = Depends(require_roles(*STAFF_ROLES)),
     clock: Clock = Depends(get_clock),
):
     """
     Send the invoice by email. Draft and Pending invoices move to Sent once
     delivery succeeds.
     """
     now = clock.now()
     payload = payload or InvoiceEmailRequest()
     invoice = _get_scoped_invoice(db, actor, invoice_id)

     recipient = payload.email or (invoice.tenant.email if invoice.tenant else None)
     if not recipient:
          raise ValidationError(
               "Recipient email is required",
               errors=[{"field": "email", "message": "Tenant has no email address"}],
          )

     organization = db.query(Organization).filter(Organization.id == invoice.organization_id).first()
     subject = payload.subject or f"Invoice #{invoice.invoice_number} from {organization.name}"
     send_invoice_email(recipient, subject, render_invoice_html(invoice, organization.name, payload.message))

     if invoice.status in (InvoiceStatus.DRAFT, InvoiceStatus.PENDING):
          transition(invoice, InvoiceStatus.SENT, now)
          db.commit()
          db.refresh(invoice)

     return InvoiceEmailResponse(
          invoice_id=invoice.id,
          to=recipient,
          subject=subject,
          status=effective_status(invoice, now),
          sent_at=invoice.sent_at,
     )
