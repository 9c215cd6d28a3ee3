from __future__ import annotations

import _bootstrap  # noqa: F401

import argparse
import json

from osmhistory.settings import get_config
from osmhistory.storage.ledger import read_latest_ledger_entry, read_ledger_entries


def main() -> None:
    parser = argparse.ArgumentParser(description="Show the stages recorded for the latest (or a given) run.")
    parser.add_argument("--run-id", default=None, help="Run id (default: the most recent run).")
    parser.add_argument("--json", action="store_true", help="Print raw JSON entries.")
    args = parser.parse_args()

    ledger = get_config().paths.ledger_path
    run_id = args.run_id
    if run_id is None:
        latest = read_latest_ledger_entry(ledger)
        if latest is None:
            print(f"No runs recorded in {ledger}")
            return
        run_id = latest.get("run_id")

    for entry in read_ledger_entries(ledger, run_id=run_id):
        if args.json:
            print(json.dumps(entry, ensure_ascii=False))
            continue
        year = f" {entry['year']}" if entry.get("year") is not None else ""
        line = f"{entry.get('ts')} {entry.get('stage')}{year}: {entry.get('status')}"
        if entry.get("error_code"):
            line += f" ({entry['error_code']})"
        print(line)


if __name__ == "__main__":
    main()
