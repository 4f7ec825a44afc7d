# models/__init__.py
from .base import Base
from .organization import Organization
from .user import User
from .property import Property
from .tenant import Tenant
from .lease import Lease, LeaseStatus
from .invoice import (
     Invoice,
     InvoiceLineItem,
     InvoiceAttachment,
     InvoiceStatus,
     InvoiceCategory,
     InvoicePriority,
     RecurrenceFrequency,
)

__all__ = [
     "Base",
     "Organization",
     "User",
     "Property",
     "Tenant",
     "Lease",
     "LeaseStatus",
     "Invoice",
     "InvoiceLineItem",
     "InvoiceAttachment",
     "InvoiceStatus",
     "InvoiceCategory",
     "InvoicePriority",
     "RecurrenceFrequency",
]
