# models/tenant.py
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin


class Tenant(Base, TimestampMixin):
     """
     Tenant model - a renter housed in one property of one organization.
     Invoices must reference the tenant's own organization and property.
     """
     __tablename__ = "tenants"

     tenant_id = Column(Integer, primary_key=True, autoincrement=True)
     organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
     property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
     # Set when the tenant has a portal login
     user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)

     # Personal info
     first_name = Column(String(100), nullable=False)
     last_name = Column(String(100), nullable=False)
     email = Column(String(255), nullable=True)
     contact_number = Column(String(50), nullable=True)

     status = Column(String(50), default="active", nullable=False)  # active, inactive, pending, terminated

     # Must precede the `property` relationship below
     @property
     def full_name(self) -> str:
          return f"{self.first_name} {self.last_name}"

     # Relationships
     user = relationship("User", back_populates="tenant")
     property = relationship("Property", back_populates="tenants")
     leases = relationship("Lease", back_populates="tenant")
     invoices = relationship("Invoice", back_populates="tenant")

     def __repr__(self):
          return f"<Tenant(tenant_id={self.tenant_id}, name='{self.first_name} {self.last_name}')>"
