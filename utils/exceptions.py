# utils/exceptions.py
"""
Billing error taxonomy.

Each error knows the HTTP status it maps to; main.py renders them as
{"success": false, "message": ..., "errors": [...]}.
"""
from typing import Any, Dict, List, Optional


class BillingError(Exception):
     status_code = 500

     def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
          super().__init__(message)
          self.message = message
          self.errors = errors or []


class ValidationError(BillingError):
     """Missing or malformed fields, invalid enum value, negative amount."""
     status_code = 400


class InvalidTransitionError(ValidationError):
     pass


class InvalidReferenceError(BillingError):
     """Tenant, property, lease or organization do not line up."""
     status_code = 400


class NotFoundError(BillingError):
     """Not resolvable inside the caller's organization (even if it exists elsewhere)."""
     status_code = 404


class DuplicateError(BillingError):
     status_code = 409


class AuthorizationError(BillingError):
     status_code = 403


class EmailDeliveryError(BillingError):
     status_code = 502
