"""
Utility modules for the Browser Agent.

This package contains:
    - logger: Structured logging with structlog and the per-run log context
    - security: Secret masking and payload truncation for logs
"""

from browser_agent.utils.logger import LogContext, RunLog, get_logger, setup_logging
from browser_agent.utils.security import mask_sensitive, sanitize_for_logging, truncate_data_urls

__all__ = [
    "get_logger",
    "setup_logging",
    "LogContext",
    "RunLog",
    "mask_sensitive",
    "sanitize_for_logging",
    "truncate_data_urls",
]
