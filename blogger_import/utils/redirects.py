"""
Generation of URL mapping CSV files.

The :func:`generate_redirects_csv` helper writes a CSV file containing the
mapping of Blogger permalinks to their new local counterparts.  The resulting
file is used to configure 301 redirects so that existing links continue to
work after the import.
"""

from __future__ import annotations

import csv
import os
from typing import Dict, Iterable


def generate_redirects_csv(
    entries: Iterable[Dict[str, str]], *, new_base: str, out_path: str = "reports/redirect_map.csv"
) -> str:
    """Generate a CSV mapping old Blogger URLs to new local URLs.

    Parameters
    ----------
    entries:
        Iterable of dictionaries with at least ``Permalink`` and ``Slug`` keys.
        ``NewURL`` is used when present.
    new_base:
        Base URL of the new site.  Combined with ``Slug`` when an entry has
        no ``NewURL``.
    out_path:
        Location of the CSV file to be written.  The parent directory is
        created automatically.

    Returns
    -------
    str
        The path of the generated CSV file.
    """
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["OldURL", "NewURL"])
        for entry in entries:
            old_url = entry.get("Permalink")
            if not old_url:
                # drafts have no public URL to redirect from
                continue
            slug = entry.get("Slug", "")
            new_url = entry.get("NewURL") or f"{new_base.rstrip('/')}/{slug}"
            writer.writerow([old_url, new_url])
    return out_path
