# config.py
"""
Application settings loaded from the environment (.env supported).

Database settings keep the Azure SQL (MS SQL Server) variables; an explicit
DATABASE_URL takes precedence so local runs and tests can point at SQLite.
"""
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()

REFERENCE_POLICIES = ("skip", "abort")


def _build_database_url() -> str:
     explicit = os.getenv("DATABASE_URL")
     if explicit:
          return explicit

     user = quote_plus(os.getenv("DB_USER") or "")
     password = quote_plus(os.getenv("DB_PASS") or "")
     server = os.getenv("DB_SERVER")
     port = os.getenv("DB_PORT", "1433")
     name = os.getenv("DB_NAME")
     return f"mssql+pymssql://{user}:{password}@{server}:{port}/{name}"


def _reference_policy() -> str:
     policy = os.getenv("GENERATION_REFERENCE_POLICY", "skip").strip().lower()
     return policy if policy in REFERENCE_POLICIES else "skip"


class Settings:
     APP_NAME = "Property Billing Service"
     ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

     DATABASE_URL = _build_database_url()
     SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

     JWT_SECRET = os.getenv("JWT_SECRET")
     JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

     CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

     LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
     LOG_JSON = os.getenv("LOG_JSON", "false").lower() == "true"

     # What recurring generation does with a lease whose tenant/property is stale
     GENERATION_REFERENCE_POLICY = _reference_policy()

     BREVO_API_KEY = os.getenv("BREVO_API_KEY")
     MAIL_SENDER_NAME = os.getenv("MAIL_SENDER_NAME", "Property Billing")
     MAIL_SENDER_EMAIL = os.getenv("MAIL_SENDER_EMAIL", "billing@example.com")

     @property
     def is_production(self) -> bool:
          return self.ENVIRONMENT == "production"


settings = Settings()
