# models/organization.py
"""
Organization model - the tenant-isolation boundary.

Every billable record carries an organization_id; nothing is shared across
organizations. `code` seeds the prefix of generated invoice numbers.
"""
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin


class Organization(Base, TimestampMixin):
     __tablename__ = "organizations"

     id = Column(Integer, primary_key=True, autoincrement=True)
     name = Column(String(255), nullable=False)
     code = Column(String(20), nullable=True, unique=True)

     users = relationship("User", back_populates="organization")
     properties = relationship("Property", back_populates="organization")

     @property
     def invoice_prefix(self) -> str:
          """First five characters of the code (or id), upper-cased."""
          return str(self.code or self.id)[:5].upper()

     def __repr__(self):
          return f"<Organization(id={self.id}, name='{self.name}')>"
