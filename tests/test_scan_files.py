"""Tests for the batch directory scan script."""

import csv

from script import scan_files


def test_scan_writes_one_row_per_tag(tmp_path):
    source_dir = tmp_path / "site"
    (source_dir / "pages").mkdir(parents=True)
    (source_dir / "node_modules").mkdir()
    (source_dir / "pages" / "index.html").write_text(
        '<div>Logo <img src="logo.svg"></div>\n<video src="intro.mp4" />\n', encoding="utf-8"
    )
    (source_dir / "pages" / "notes.txt").write_text('<img src="ignored.png">', encoding="utf-8")
    (source_dir / "node_modules" / "vendor.html").write_text('<img src="v.png">', encoding="utf-8")
    out = tmp_path / "out" / "tags.csv"

    scan_files.main(["--source_dir", str(source_dir), "--out", str(out)])

    with out.open(encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [(r["kind"], r["file_name"], r["line"]) for r in rows] == [
        ("img", "logo.svg", "1"),
        ("video", "intro.mp4", "2"),
    ]
    assert rows[0]["file"].endswith("index.html")
    assert int(rows[0]["context_chars"]) > 0
    assert rows[0]["group_id"] == rows[1]["group_id"] == "0"
