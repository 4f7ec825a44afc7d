# models/property.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin


class Property(Base, TimestampMixin):
     """
     Property model - a building or complex owned by an organization.
     """
     __tablename__ = "properties"

     id = Column(Integer, primary_key=True, autoincrement=True)
     organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
     property_name = Column(String(255), nullable=False)
     description = Column(Text, nullable=True)

     # Address
     street = Column(String(255), nullable=True)
     city = Column(String(100), nullable=True)
     province = Column(String(100), nullable=True)

     # Relationships
     organization = relationship("Organization", back_populates="properties")
     tenants = relationship("Tenant", back_populates="property")
     leases = relationship("Lease", back_populates="property")

     @property
     def address(self) -> str:
          return ", ".join(part for part in (self.street, self.city, self.province) if part)

     def __repr__(self):
          return f"<Property(id={self.id}, name='{self.property_name}')>"
