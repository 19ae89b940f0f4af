"""
Structured reports for failed and successful import steps.

The :mod:`blogger_import.utils.errors` module centralizes the writing of
report entries for entries that failed or were imported during a run.  Each
entry is appended to a JSON Lines file under ``reports/import`` (or the
directory passed as ``report_dir``) so that the information can be reviewed
or parsed after a run.

Two public functions are provided:

``report_error``
    Record an error that occurred for an entry.  An optional exception can be
    supplied and will be serialized to the report.

``report_ok``
    Record a successful step for an entry.  Additional key/value information
    can be attached via the ``extra`` parameter.

The ``ERRORS`` dictionary maps event codes to human readable messages.  Codes
not present in the dictionary fall back to the code itself.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

ERRORS: Dict[str, str] = {
    "ENTRY_SKIPPED": "Entry skipped while parsing the export",
    "ORPHANED_COMMENT": "Comment target not found in the export",
    "POST_STORE": "Failed to store post",
    "COMMENT_STORE": "Failed to store comment",
    "COMMENT_POST_MISSING": "Comment skipped because its post was not imported",
    "TERM_STORE": "Failed to store label",
    "POST_IMPORTED": "Post imported successfully",
    "PAGE_IMPORTED": "Page imported successfully",
    "COMMENT_IMPORTED": "Comment imported successfully",
}

DEFAULT_REPORT_DIR = os.path.join("reports", "import")
ERROR_LOG_NAME = "errors.jsonl"
OK_LOG_NAME = "success.jsonl"


def _write_jsonl(report_dir: str, name: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline."""
    os.makedirs(report_dir, exist_ok=True)
    with open(os.path.join(report_dir, name), "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
        f.write("\n")


def _describe(entry: Any) -> Dict[str, Any]:
    if isinstance(entry, dict):
        return {"entry_id": entry.get("id"), "title": entry.get("title")}
    return {"entry_id": getattr(entry, "id", None), "title": getattr(entry, "title", None)}


def report_error(
    code: str,
    entry: Any,
    exc: Optional[BaseException] = None,
    *,
    report_dir: str = DEFAULT_REPORT_DIR,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """Log an error event for ``entry``.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value will be used as the message.
    entry:
        The entry (model or dict) associated with the error.  Only its ``id``
        and ``title`` are referenced if present.
    exc:
        Optional exception instance that triggered the error.
    report_dir:
        Directory holding the JSON Lines reports.
    extra:
        Optional additional fields merged into the report entry.
    """
    message = ERRORS.get(code, code)
    record: Dict[str, Any] = {"code": code, "message": message, **_describe(entry)}
    if exc is not None:
        record["error"] = str(exc)
    if extra:
        record.update(extra)
    logger.error("%s - %s", message, record.get("entry_id") or "")
    _write_jsonl(report_dir, ERROR_LOG_NAME, record)


def report_ok(
    code: str,
    entry: Any,
    extra: Optional[Dict[str, Any]] = None,
    *,
    report_dir: str = DEFAULT_REPORT_DIR,
) -> None:
    """Log a successful event for ``entry``."""
    message = ERRORS.get(code, code)
    record: Dict[str, Any] = {"code": code, "message": message, **_describe(entry)}
    if extra:
        record.update(extra)
    logger.info("%s - %s", message, record.get("entry_id") or "")
    _write_jsonl(report_dir, OK_LOG_NAME, record)
