# schemas/billing.py
"""
Schemas for recurring generation, bulk actions and the dashboard summary.
"""
import enum
from datetime import date
from typing import Optional, List, Dict

from pydantic import Field, ConfigDict

from models.invoice import InvoiceStatus
from .invoice import CamelModel


class GenerateInvoicesRequest(CamelModel):
     """`forMonth` may be any day of the target month; defaults to next month."""
     for_month: Optional[date] = None

     model_config = ConfigDict(
          json_schema_extra={"example": {"forMonth": "2025-03-01"}}
     )


class SkippedLease(CamelModel):
     lease_id: int
     reason: str


class GenerateInvoicesResponse(CamelModel):
     success: bool = True
     message: str
     count: int
     month: date
     invoice_numbers: List[str] = Field(default_factory=list)
     skipped: List[SkippedLease] = Field(default_factory=list)


class BulkAction(str, enum.Enum):
     UPDATE_STATUS = "update_status"
     SEND_INVOICES = "send_invoices"
     MARK_PAID = "mark_paid"


class BulkActionData(CamelModel):
     status: Optional[InvoiceStatus] = None


class BulkActionRequest(CamelModel):
     action: BulkAction
     invoice_ids: List[int] = Field(..., min_length=1)
     data: Optional[BulkActionData] = None

     model_config = ConfigDict(
          json_schema_extra={
               "example": {"action": "mark_paid", "invoiceIds": [1, 2, 3]}
          }
     )


class BulkResultItem(CamelModel):
     invoice_id: int
     status: str


class BulkActionResponse(CamelModel):
     success: bool
     action: BulkAction
     processed_count: int
     results: List[BulkResultItem]
     # Always empty on success; a blocked batch is rejected as a whole
     errors: List[Dict] = Field(default_factory=list)
     message: str


class SummaryOverview(CamelModel):
     total_invoices: int
     total_amount: float
     paid_amount: float
     overdue_amount: float
     pending_amount: float
     collection_rate: float


class SummaryMonthly(CamelModel):
     current_month: float
     last_month: float
     growth: float
     current_month_count: int
     last_month_count: int


class SummaryDistributions(CamelModel):
     status: Dict[str, int]
     category: Dict[str, int]


class SummaryOverdue(CamelModel):
     count: int
     amount: float
     avg_days_overdue: int


class InvoiceSummaryResponse(CamelModel):
     overview: SummaryOverview
     monthly: SummaryMonthly
     distributions: SummaryDistributions
     overdue: SummaryOverdue
