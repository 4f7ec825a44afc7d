# dependencies.py
"""
Shared FastAPI dependencies: bearer token, acting user, role gates, clock.
"""
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt

from config import settings
from services.clock import Clock, SystemClock
from utils.exceptions import AuthorizationError

logger = structlog.get_logger(__name__)

STAFF_ROLES = ("admin", "manager", "agent")
MANAGER_ROLES = ("admin", "manager")

_system_clock = SystemClock()


# Token Auth Dependency
def verify_token(request: Request) -> dict:
     auth = request.headers.get("Authorization")
     if not auth or not auth.startswith("Bearer "):
          raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
     token = auth.split(" ", 1)[1]
     try:
          return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
     except JWTError:
          raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


@dataclass(frozen=True)
class Actor:
     user_id: int
     organization_id: int
     role: str

     @property
     def is_tenant(self) -> bool:
          return self.role == "tenant"


def _claim(payload: dict, *names) -> Optional[object]:
     for name in names:
          if payload.get(name) is not None:
               return payload[name]
     return None


def get_actor(token: dict = Depends(verify_token)) -> Actor:
     """Acting user from the token claims; every request needs an organization."""
     organization_id = _claim(token, "organizationId", "organization_id")
     user_id = _claim(token, "id", "sub")
     if organization_id is None or user_id is None:
          raise HTTPException(
               status_code=status.HTTP_401_UNAUTHORIZED,
               detail="Organization context required",
          )
     try:
          return Actor(
               user_id=int(user_id),
               organization_id=int(organization_id),
               role=str(token.get("role") or "").lower(),
          )
     except (TypeError, ValueError):
          raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def require_roles(*roles: str):
     """Dependency factory: 403 unless the actor holds one of `roles`."""

     def _check(actor: Actor = Depends(get_actor)) -> Actor:
          if actor.role not in roles:
               logger.info("access_denied", user_id=actor.user_id, role=actor.role, required=list(roles))
               raise AuthorizationError("You do not have permission to perform this action")
          return actor

     return _check


def get_clock() -> Clock:
     return _system_clock
