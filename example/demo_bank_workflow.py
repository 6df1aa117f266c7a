#!/usr/bin/env python3
"""
Demo: Managing banks in a promotions workbook.

This demo shows how to:
1. Create a new workbook with all sheets and example data
2. Create, update and deactivate banks through the BanksAPI
3. Run batch operations and inspect per-item failures
4. Check the workbook for structural problems
"""

import json
import tempfile
from pathlib import Path

from promotrack.api import BanksAPI
from promotrack.check import check_workbook
from promotrack.repositories import BankRepository
from promotrack.table_service import TableService
from promotrack.template import generate_workbook


def show(title, response):
    """Print an API response envelope."""
    print(f"\n--- {title} ---")
    print(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))


def main():
    with tempfile.TemporaryDirectory() as tmpdir:
        output_file = Path(tmpdir) / "promociones.xlsx"

        print("🏦 Creating workbook with example data...")
        grid = generate_workbook(output_file, sample_data=True)
        api = BanksAPI(BankRepository(TableService(grid)))

        show("Active banks", api.get_all_banks())

        created = api.create_bank({"name": "ING", "supports_bizum": True})
        show("Created bank", created)
        bank_id = created.data["bank_id"]

        show("Renamed bank", api.update_bank(bank_id, {"name": "ING Direct"}))
        show("Invalid create", api.create_bank({"name": "  "}))
        show("Bodega banks", api.get_banks_by_bodega(True))

        show(
            "Batch create",
            api.batch_create_banks(
                [{"name": "Revolut", "supports_bizum": True}, {"name": ""}]
            ),
        )
        show(
            "Batch update",
            api.batch_update_banks(
                [
                    {"bank_id": "BBVA001", "updates": {"supports_bizum": False}},
                    {"bank_id": "NOPE", "updates": {"name": "Ghost"}},
                ]
            ),
        )

        show("Deactivate", api.delete_bank("SANTANDER001"))
        show("All banks incl. inactive", api.get_all_banks(include_inactive=True))

        problems = check_workbook(grid)
        if problems:
            print("\n❌ Workbook problems:")
            for problem in problems:
                print(f"  • {problem}")
        else:
            print(f"\n✅ Workbook check passed: {output_file}")


if __name__ == "__main__":
    main()
