# logging_config.py
"""
structlog setup shared by the API process, migrations and scripts.

Usage:
     from logging_config import configure_logging
     configure_logging()

     logger = structlog.get_logger(__name__)
     logger.info("invoice_created", invoice_id=42)
"""
import logging
import sys
from typing import Optional

import structlog

from config import settings


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
     """Route structlog through the stdlib logging tree."""
     level_name = (level or settings.LOG_LEVEL).upper()
     use_json = settings.LOG_JSON if json_output is None else json_output

     logging.basicConfig(
          format="%(message)s",
          stream=sys.stdout,
          level=getattr(logging, level_name, logging.INFO),
     )

     renderer = (
          structlog.processors.JSONRenderer()
          if use_json
          else structlog.dev.ConsoleRenderer(colors=False)
     )

     structlog.configure(
          processors=[
               structlog.stdlib.filter_by_level,
               structlog.stdlib.add_logger_name,
               structlog.stdlib.add_log_level,
               structlog.stdlib.PositionalArgumentsFormatter(),
               structlog.processors.TimeStamper(fmt="iso"),
               structlog.processors.StackInfoRenderer(),
               structlog.processors.format_exc_info,
               structlog.processors.UnicodeDecoder(),
               renderer,
          ],
          context_class=dict,
          logger_factory=structlog.stdlib.LoggerFactory(),
          wrapper_class=structlog.stdlib.BoundLogger,
          cache_logger_on_first_use=True,
     )
