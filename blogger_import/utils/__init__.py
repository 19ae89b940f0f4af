"""
Utility helpers used by the import tool.

This subpackage exposes convenience functions for structured reports and
URL mapping generation.
"""

from .errors import ERRORS, report_error, report_ok
from .redirects import generate_redirects_csv

__all__ = ["ERRORS", "report_error", "report_ok", "generate_redirects_csv"]
