# main.py
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import check_connection
from logging_config import configure_logging
from routers import invoices_router
from utils.exceptions import BillingError

configure_logging()
logger = structlog.get_logger(__name__)

# App instance
app = FastAPI(title=settings.APP_NAME)

# CORS
app.add_middleware(
     CORSMiddleware,
     allow_origins=settings.CORS_ORIGINS,
     allow_credentials=True,
     allow_methods=["*"],
     allow_headers=["*"],
)


def _field_path(loc) -> str:
     # Drop the leading "body"/"query"/"path" marker
     parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
     return ".".join(parts)


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
     content = {"success": False, "message": exc.message}
     if exc.errors:
          content["errors"] = exc.errors
     return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
     errors = exc.errors()
     missing = [
          _field_path(err["loc"])
          for err in errors
          if err.get("type") == "missing"
          or (err.get("type") == "too_short" and err.get("input") == [])
     ]
     if missing:
          return JSONResponse(
               status_code=status.HTTP_400_BAD_REQUEST,
               content={"success": False, "message": f"Missing required fields: {', '.join(missing)}"},
          )
     return JSONResponse(
          status_code=status.HTTP_400_BAD_REQUEST,
          content={
               "success": False,
               "message": "Validation failed",
               "errors": [{"field": _field_path(err["loc"]), "message": err["msg"]} for err in errors],
          },
     )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
     logger.exception("unhandled_error", path=request.url.path, method=request.method)
     content = {"success": False, "message": "Internal server error"}
     if not settings.is_production:
          content["error"] = str(exc)
     return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


app.include_router(invoices_router)


@app.get("/health")
def health():
     database_ok = check_connection()
     return JSONResponse(
          status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
          content={"status": "ok" if database_ok else "degraded", "database": database_ok},
     )


if __name__ == "__main__":
     port = int(os.getenv("PORT", 10000))
     uvicorn.run("main:app", host="0.0.0.0", port=port, reload=not settings.is_production)
