# models/invoice.py
import enum
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import (
     Boolean,
     CheckConstraint,
     Column,
     Date,
     DateTime,
     Enum,
     ForeignKey,
     Index,
     Integer,
     Numeric,
     String,
     UniqueConstraint,
     event,
     text,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Session, relationship

from .base import Base, TimestampMixin

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
     """Quantize to the stored precision (two decimal places)."""
     if value is None:
          return Decimal("0.00")
     if not isinstance(value, Decimal):
          value = Decimal(str(value))
     return value.quantize(CENT, rounding=ROUND_HALF_UP)


class InvoiceStatus(str, enum.Enum):
     """Invoice payment status. OVERDUE is derived from the due date, never requested."""
     DRAFT = "Draft"
     PENDING = "Pending"
     SENT = "Sent"
     VIEWED = "Viewed"
     PAID = "Paid"
     OVERDUE = "Overdue"
     CANCELLED = "Cancelled"
     REFUNDED = "Refunded"


class InvoiceCategory(str, enum.Enum):
     RENT = "Rent"
     UTILITIES = "Utilities"
     MAINTENANCE = "Maintenance"
     LATE_FEE = "Late Fee"
     SECURITY_DEPOSIT = "Security Deposit"
     OTHER = "Other"


class InvoicePriority(str, enum.Enum):
     LOW = "Low"
     MEDIUM = "Medium"
     HIGH = "High"
     URGENT = "Urgent"


class RecurrenceFrequency(str, enum.Enum):
     MONTHLY = "Monthly"
     QUARTERLY = "Quarterly"
     YEARLY = "Yearly"


def _enum_column(enum_cls, name):
     return Enum(
          enum_cls,
          name=name,
          create_constraint=True,
          values_callable=lambda members: [m.value for m in members],
          length=32,
     )


class Invoice(Base, TimestampMixin):
     """
     Invoice model - a financial obligation raised against a tenant.

     Created manually by staff or by recurring generation from an active
     lease. Line amounts, subtotal and totals are recomputed on every flush
     (see _recalculate_invoice_totals below), so callers never persist
     stale figures. `amount` mirrors `total_amount` for older readers.
     """
     __tablename__ = "invoices"
     __table_args__ = (
          UniqueConstraint("organization_id", "invoice_number", name="uq_invoices_organization_invoice_number"),
          # One generated invoice per lease and billing month; manual invoices leave both NULL
          Index(
               "uq_invoices_lease_billing_period",
               "lease_id",
               "billing_period",
               unique=True,
               mssql_where=text("lease_id IS NOT NULL AND billing_period IS NOT NULL"),
          ),
          CheckConstraint("subtotal >= 0", name="non_negative_subtotal"),
          CheckConstraint("tax_amount >= 0", name="non_negative_tax"),
          CheckConstraint("discount_amount >= 0", name="non_negative_discount"),
          CheckConstraint("total_amount >= 0", name="non_negative_total"),
          CheckConstraint("due_date >= issue_date", name="due_after_issue"),
          Index("ix_invoices_org_status_due", "organization_id", "status", "due_date"),
          Index("ix_invoices_org_category", "organization_id", "category"),
          Index("ix_invoices_org_billing_period", "organization_id", "billing_period"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
     invoice_number = Column(String(50), nullable=False)

     # Foreign keys
     tenant_id = Column(Integer, ForeignKey("tenants.tenant_id"), nullable=False, index=True)
     property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
     lease_id = Column(Integer, ForeignKey("leases.id", ondelete="SET NULL"), nullable=True, index=True)
     created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

     # Classification
     title = Column(String(200), nullable=True)
     category = Column(_enum_column(InvoiceCategory, "invoice_category"), nullable=False, index=True)
     priority = Column(
          _enum_column(InvoicePriority, "invoice_priority"),
          default=InvoicePriority.MEDIUM,
          nullable=False,
     )
     status = Column(
          _enum_column(InvoiceStatus, "invoice_status"),
          default=InvoiceStatus.DRAFT,
          nullable=False,
          index=True,
     )

     # Money
     subtotal = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
     tax_amount = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
     discount_amount = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
     total_amount = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
     amount = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

     # Dates
     issue_date = Column(Date, nullable=False, index=True)
     due_date = Column(Date, nullable=False, index=True)
     sent_at = Column(DateTime, nullable=True)
     viewed_at = Column(DateTime, nullable=True)
     paid_at = Column(DateTime, nullable=True)

     payment_terms = Column(String(500), nullable=True)
     notes = Column(String(1000), nullable=True)

     # Recurrence
     is_recurring = Column(Boolean, default=False, nullable=False)
     frequency = Column(_enum_column(RecurrenceFrequency, "recurrence_frequency"), nullable=True)
     next_invoice_date = Column(Date, nullable=True)
     recurrence_end_date = Column(Date, nullable=True)
     billing_period = Column(Date, nullable=True)

     # Relationships
     organization = relationship("Organization")
     tenant = relationship("Tenant", back_populates="invoices")
     property = relationship("Property")
     lease = relationship("Lease", back_populates="invoices")
     creator = relationship("User")
     line_items = relationship(
          "InvoiceLineItem",
          back_populates="invoice",
          order_by="InvoiceLineItem.position",
          collection_class=ordering_list("position"),
          cascade="all, delete-orphan",
     )
     attachments = relationship(
          "InvoiceAttachment",
          back_populates="invoice",
          order_by="InvoiceAttachment.id",
          cascade="all, delete-orphan",
     )

     def __repr__(self):
          status = self.status.value if self.status else None
          return f"<Invoice(id={self.id}, number='{self.invoice_number}', total={self.total_amount}, status='{status}')>"

     def recalculate_totals(self) -> None:
          """subtotal = sum(line amounts); total = amount = subtotal + tax - discount."""
          for item in self.line_items:
               item.amount = to_money(to_money(item.quantity) * to_money(item.unit_price))
          self.subtotal = to_money(sum((to_money(item.amount) for item in self.line_items), Decimal("0")))
          self.tax_amount = to_money(self.tax_amount)
          self.discount_amount = to_money(self.discount_amount)
          self.total_amount = to_money(self.subtotal + self.tax_amount - self.discount_amount)
          self.amount = self.total_amount


class InvoiceLineItem(Base):
     __tablename__ = "invoice_line_items"
     __table_args__ = (
          CheckConstraint("quantity >= 0", name="non_negative_quantity"),
          CheckConstraint("unit_price >= 0", name="non_negative_unit_price"),
          CheckConstraint("tax_rate >= 0 AND tax_rate <= 100", name="tax_rate_range"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
     position = Column(Integer, nullable=False, default=0)
     description = Column(String(500), nullable=False)
     quantity = Column(Numeric(10, 2), default=Decimal("1"), nullable=False)
     unit_price = Column(Numeric(12, 2), nullable=False)
     amount = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
     tax_rate = Column(Numeric(5, 2), default=Decimal("0"), nullable=False)

     invoice = relationship("Invoice", back_populates="line_items")

     def __repr__(self):
          return f"<InvoiceLineItem(invoice_id={self.invoice_id}, description='{self.description}', amount={self.amount})>"


class InvoiceAttachment(Base):
     __tablename__ = "invoice_attachments"

     id = Column(Integer, primary_key=True, autoincrement=True)
     invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
     url = Column(String(1000), nullable=False)
     filename = Column(String(255), nullable=False)
     description = Column(String(500), nullable=True)
     uploaded_at = Column(DateTime, nullable=False)

     invoice = relationship("Invoice", back_populates="attachments")


@event.listens_for(Session, "before_flush")
def _recalculate_invoice_totals(session, flush_context, instances):
     """Recompute derived money fields for every invoice touched by this flush."""
     touched = {}
     for obj in list(session.new) + list(session.dirty):
          if isinstance(obj, Invoice):
               touched[id(obj)] = obj
          elif isinstance(obj, InvoiceLineItem) and obj.invoice is not None:
               touched[id(obj.invoice)] = obj.invoice
     for invoice in touched.values():
          invoice.recalculate_totals()
