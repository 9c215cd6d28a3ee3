from __future__ import annotations

from osmhistory.storage.ledger import read_latest_ledger_entry, read_ledger_entries, safe_append_ledger_entry


def test_ledger_append_and_read_latest(tmp_path) -> None:
    path = tmp_path / "cache" / "runs.jsonl"
    safe_append_ledger_entry(path, {"run_id": "a", "stage": "extract", "status": "ok"})
    safe_append_ledger_entry(path, {"run_id": "b", "stage": "query", "status": "error"})

    assert read_latest_ledger_entry(path) == {"run_id": "b", "stage": "query", "status": "error"}
    assert [entry["stage"] for entry in read_ledger_entries(path, run_id="a")] == ["extract"]


def test_ledger_skips_corrupt_lines(tmp_path) -> None:
    path = tmp_path / "runs.jsonl"
    path.write_text('{"run_id": "a"}\nnot json\n[1, 2]\n\n', encoding="utf-8")

    assert read_ledger_entries(path) == [{"run_id": "a"}]
    assert read_latest_ledger_entry(tmp_path / "missing.jsonl") is None
