# models/user.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin


class User(Base, TimestampMixin):
     """
     User model - staff and tenant accounts.
     Authentication happens upstream; tokens carry id, organizationId and role.
     """
     __tablename__ = "users"

     id = Column(Integer, primary_key=True, autoincrement=True)
     organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
     email = Column(String(255), unique=True, nullable=False, index=True)
     first_name = Column(String(100), nullable=False)
     last_name = Column(String(100), nullable=False)
     role = Column(String(50), nullable=False)  # admin, manager, agent, tenant
     is_active = Column(Boolean, default=True, nullable=False)

     organization = relationship("Organization", back_populates="users")
     tenant = relationship("Tenant", back_populates="user", uselist=False)

     @property
     def full_name(self) -> str:
          return f"{self.first_name} {self.last_name}"

     def __repr__(self):
          return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
