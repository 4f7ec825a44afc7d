# models/lease.py
from sqlalchemy import Column, Integer, String, Numeric, Date, Text, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin


class LeaseStatus:
     ACTIVE = "active"
     PENDING = "pending"
     EXPIRED = "expired"
     TERMINATED = "terminated"


class Lease(Base, TimestampMixin):
     """
     Lease model - rental agreement between a tenant and a property.
     Active leases are billed once per month by recurring generation.
     """
     __tablename__ = "leases"

     id = Column(Integer, primary_key=True, autoincrement=True)
     organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
     property_id = Column(Integer, ForeignKey("properties.id"), nullable=False)
     tenant_id = Column(Integer, ForeignKey("tenants.tenant_id"), nullable=False)

     # Pricing
     rent_price = Column(Numeric(12, 2), nullable=False)
     deposit_price = Column(Numeric(12, 2), nullable=True)

     # Lease period
     start_date = Column(Date, nullable=False)
     end_date = Column(Date, nullable=True)

     status = Column(String(20), default=LeaseStatus.ACTIVE, nullable=False, index=True)
     tenancy_terms = Column(Text, nullable=True)

     # Relationships
     property = relationship("Property", back_populates="leases")
     tenant = relationship("Tenant", back_populates="leases")
     invoices = relationship("Invoice", back_populates="lease")

     def __repr__(self):
          return f"<Lease(id={self.id}, tenant_id={self.tenant_id}, property_id={self.property_id})>"
