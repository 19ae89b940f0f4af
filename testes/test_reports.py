import csv
import json
import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from blogger_import.utils.errors import report_error, report_ok
from blogger_import.utils.redirects import generate_redirects_csv


def read_jsonl(path):
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f]


def test_report_error_appends_json_lines(tmp_path):
    report_error("POST_STORE", {"id": "p1", "title": "T"}, RuntimeError("disk full"), report_dir=str(tmp_path))
    report_error("CUSTOM_CODE", {"id": "p2"}, report_dir=str(tmp_path), extra={"reason": "x"})

    rows = read_jsonl(tmp_path / "errors.jsonl")
    assert rows[0] == {
        "code": "POST_STORE",
        "message": "Failed to store post",
        "entry_id": "p1",
        "title": "T",
        "error": "disk full",
    }
    assert rows[1]["message"] == "CUSTOM_CODE"
    assert rows[1]["reason"] == "x"


def test_report_ok_writes_success_file(tmp_path):
    class Entry:
        id = "p1"
        title = "Hello"

    report_ok("POST_IMPORTED", Entry(), {"local_id": "3"}, report_dir=str(tmp_path))
    rows = read_jsonl(tmp_path / "success.jsonl")
    assert rows == [
        {"code": "POST_IMPORTED", "message": "Post imported successfully", "entry_id": "p1", "title": "Hello", "local_id": "3"}
    ]


def test_redirects_csv_skips_entries_without_permalink(tmp_path):
    out = tmp_path / "nested" / "map.csv"
    generate_redirects_csv(
        [
            {"Slug": "first", "Permalink": "https://x.blogspot.com/2011/03/first.html", "NewURL": "https://new.org/2011/03/first"},
            {"Slug": "about", "Permalink": "https://x.blogspot.com/p/about.html"},
            {"Slug": "draft", "Permalink": ""},
        ],
        new_base="https://new.org/",
        out_path=str(out),
    )
    with open(out, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows == [
        ["OldURL", "NewURL"],
        ["https://x.blogspot.com/2011/03/first.html", "https://new.org/2011/03/first"],
        ["https://x.blogspot.com/p/about.html", "https://new.org/about"],
    ]
