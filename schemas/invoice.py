# schemas/invoice.py
"""
Pydantic schemas for Invoice API request/response validation.

Wire names are camelCase (tenantId, lineItems, ...); Python attributes stay
snake_case.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict

from pydantic import BaseModel, Field, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from models.invoice import InvoiceCategory, InvoicePriority, InvoiceStatus, RecurrenceFrequency


class CamelModel(BaseModel):
     model_config = ConfigDict(
          alias_generator=to_camel,
          populate_by_name=True,
          from_attributes=True,
          str_strip_whitespace=True,
     )


class LineItemIn(CamelModel):
     """One billable line. `amount` is accepted for compatibility but recomputed."""
     description: str = Field(..., min_length=1, max_length=500)
     quantity: Decimal = Field(Decimal("1"), ge=0, max_digits=10, decimal_places=2)
     unit_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
     amount: Optional[Decimal] = Field(None, ge=0)
     tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100)


class LineItemResponse(CamelModel):
     description: str
     quantity: Decimal
     unit_price: Decimal
     amount: Decimal
     tax_rate: Decimal


class AttachmentIn(CamelModel):
     url: str = Field(..., pattern=r"^(https?://|/)", max_length=1000)
     filename: str = Field(..., min_length=1, max_length=255)
     description: Optional[str] = Field(None, max_length=500)
     uploaded_at: Optional[datetime] = None


class AttachmentResponse(CamelModel):
     url: str
     filename: str
     description: Optional[str] = None
     uploaded_at: datetime


class RecurringInfo(CamelModel):
     is_recurring: bool = False
     frequency: Optional[RecurrenceFrequency] = None
     next_invoice_date: Optional[date] = None
     end_date: Optional[date] = None

     @model_validator(mode="after")
     def _check_schedule(self):
          if self.is_recurring and self.frequency is None:
               raise ValueError("Frequency is required for recurring invoices")
          if self.end_date and self.next_invoice_date and self.end_date <= self.next_invoice_date:
               raise ValueError("End date must be after next invoice date")
          return self


class InvoiceCreate(CamelModel):
     """Schema for creating a manual invoice."""
     tenant_id: int = Field(..., gt=0)
     property_id: int = Field(..., gt=0)
     category: InvoiceCategory
     due_date: date
     line_items: List[LineItemIn] = Field(..., min_length=1)
     lease_id: Optional[int] = Field(None, gt=0)
     title: Optional[str] = Field(None, max_length=200)
     priority: InvoicePriority = InvoicePriority.MEDIUM
     notes: Optional[str] = Field(None, max_length=1000)
     payment_terms: Optional[str] = Field(None, max_length=500)
     tax_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
     discount_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
     recurring_info: Optional[RecurringInfo] = None
     attachments: List[AttachmentIn] = Field(default_factory=list)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "tenantId": 1,
                    "propertyId": 1,
                    "category": "Rent",
                    "dueDate": "2025-03-01",
                    "lineItems": [
                         {"description": "Rent", "quantity": 1, "unitPrice": 1000, "amount": 1000}
                    ],
                    "taxAmount": 50,
                    "discountAmount": 0,
               }
          }
     )


class InvoiceUpdate(CamelModel):
     """Partial update. Line items, when given, replace the existing ones."""
     tenant_id: Optional[int] = Field(None, gt=0)
     property_id: Optional[int] = Field(None, gt=0)
     lease_id: Optional[int] = Field(None, gt=0)
     title: Optional[str] = Field(None, max_length=200)
     category: Optional[InvoiceCategory] = None
     priority: Optional[InvoicePriority] = None
     status: Optional[InvoiceStatus] = None
     due_date: Optional[date] = None
     line_items: Optional[List[LineItemIn]] = Field(None, min_length=1)
     notes: Optional[str] = Field(None, max_length=1000)
     payment_terms: Optional[str] = Field(None, max_length=500)
     tax_amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     discount_amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     recurring_info: Optional[RecurringInfo] = None
     attachments: Optional[List[AttachmentIn]] = None

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "status": "Sent"
               }
          }
     )


class InvoiceResponse(CamelModel):
     """Schema for invoice response. `status` is the derived status."""
     id: int
     organization_id: int
     invoice_number: str
     tenant_id: int
     property_id: int
     lease_id: Optional[int] = None
     created_by: int
     title: Optional[str] = None
     category: InvoiceCategory
     priority: InvoicePriority
     status: InvoiceStatus
     line_items: List[LineItemResponse]
     subtotal: Decimal
     tax_amount: Decimal
     discount_amount: Decimal
     total_amount: Decimal
     amount: Decimal
     issue_date: date
     due_date: date
     sent_at: Optional[datetime] = None
     viewed_at: Optional[datetime] = None
     paid_at: Optional[datetime] = None
     payment_terms: Optional[str] = None
     notes: Optional[str] = None
     recurring_info: RecurringInfo
     attachments: List[AttachmentResponse] = Field(default_factory=list)
     is_overdue: bool = False
     days_overdue: int = 0
     created_at: Optional[datetime] = None
     updated_at: Optional[datetime] = None

     # Optional related data
     tenant_name: Optional[str] = None
     tenant_email: Optional[str] = None
     property_name: Optional[str] = None


class Pagination(CamelModel):
     current_page: int
     total_pages: int
     total_count: int
     has_next: bool
     has_prev: bool


class PageTotals(CamelModel):
     total_invoices: int
     total_amount: Decimal
     paid_amount: Decimal
     overdue_amount: Decimal
     pending_amount: Decimal


class InvoiceListResponse(CamelModel):
     """Schema for paginated invoice list response."""
     success: bool = True
     data: List[InvoiceResponse]
     pagination: Pagination
     summary: PageTotals


class InvoiceSearchResult(CamelModel):
     id: int
     invoice_number: str
     title: Optional[str] = None
     total_amount: Decimal
     status: InvoiceStatus
     category: InvoiceCategory
     issue_date: date
     due_date: date
     tenant_id: int
     property_id: int
     tenant_name: Optional[str] = None
     property_name: Optional[str] = None


class StatusBucket(CamelModel):
     count: int
     amount: float


class TenantInvoiceSummary(CamelModel):
     tenant_id: int
     tenant_name: str
     total_invoices: int
     total_amount: float
     paid: StatusBucket
     pending: StatusBucket
     overdue: StatusBucket


class InvoiceEmailRequest(CamelModel):
     email: Optional[str] = Field(None, max_length=255)
     subject: Optional[str] = Field(None, max_length=255)
     message: Optional[str] = Field(None, max_length=5000)


class InvoiceEmailResponse(CamelModel):
     invoice_id: int
     to: str
     subject: str
     status: InvoiceStatus
     sent_at: Optional[datetime] = None


class ErrorResponse(CamelModel):
     success: bool = False
     message: str
     errors: List[Dict] = Field(default_factory=list)
