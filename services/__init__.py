# services/__init__.py
from .clock import Clock, SystemClock, FixedClock
from .invoice_service import InvoiceService
from .invoice_status import derive_status, effective_status, days_overdue, transition
from .recurring_billing import GenerationResult, generate_monthly_invoices
from .bulk_actions import BulkOutcome, apply_bulk_action
from .invoice_summary import compute_invoice_summary

__all__ = [
     "Clock",
     "SystemClock",
     "FixedClock",
     "InvoiceService",
     "derive_status",
     "effective_status",
     "days_overdue",
     "transition",
     "GenerationResult",
     "generate_monthly_invoices",
     "BulkOutcome",
     "apply_bulk_action",
     "compute_invoice_summary",
]
