"""
Repair of text damaged by broken Blogger exports.

Some exports lose the backslash of JSON-style escapes, leaving sequences
such as ``u5408u7968`` where CJK characters should be.  Only runs of at least
two such sequences are decoded so that ordinary words (``menu1234``) are left
alone.
"""

from __future__ import annotations

import re

_BARE_ESCAPE_RUN = re.compile(r"(?:u[0-9a-fA-F]{4}){2,}")
_BARE_ESCAPE = re.compile(r"u([0-9a-fA-F]{4})")


def _decode_run(match: re.Match) -> str:
    run = match.group(0)
    chars = [chr(int(code, 16)) for code in _BARE_ESCAPE.findall(run)]
    if any(0xD800 <= ord(c) <= 0xDFFF for c in chars):
        return run
    return "".join(chars)


def fix_encoding(text: str) -> str:
    if not text or "u" not in text:
        return text or ""
    return _BARE_ESCAPE_RUN.sub(_decode_run, text)
