"""
Utility modules for the FamilyHub backend.

Provides:
- Logging configuration (structured JSON in production)
- Application version lookup
"""

from backend.src.utils.logging_config import get_logger, init_logging
from backend.src.utils.version import get_version

__all__ = [
    "get_logger",
    "init_logging",
    "get_version",
]
