# schemas/__init__.py
from .invoice import (
     InvoiceCreate,
     InvoiceUpdate,
     InvoiceResponse,
     InvoiceListResponse,
     InvoiceSearchResult,
     InvoiceEmailRequest,
     InvoiceEmailResponse,
     TenantInvoiceSummary,
)
from .billing import (
     GenerateInvoicesRequest,
     GenerateInvoicesResponse,
     BulkAction,
     BulkActionRequest,
     BulkActionResponse,
     InvoiceSummaryResponse,
)

__all__ = [
     "InvoiceCreate",
     "InvoiceUpdate",
     "InvoiceResponse",
     "InvoiceListResponse",
     "InvoiceSearchResult",
     "InvoiceEmailRequest",
     "InvoiceEmailResponse",
     "TenantInvoiceSummary",
     "GenerateInvoicesRequest",
     "GenerateInvoicesResponse",
     "BulkAction",
     "BulkActionRequest",
     "BulkActionResponse",
     "InvoiceSummaryResponse",
]
