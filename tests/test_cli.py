import json
import logging

import pytest

from promotrack.checks import PromotrackError
from promotrack.cli import main_cli, run_cli_app
from promotrack.grid import XLSXGrid
from promotrack.models import BANKS_SHEET_NAME
from promotrack.table_service import TableService


def run_banks(capsys, *args):
    """Run the banks subcommand and return the printed envelope."""
    capsys.readouterr()
    main_cli(["banks", *args])
    return json.loads(capsys.readouterr().out)


def test_run_cli_app_no_args_entrypoint(monkeypatch, capsys):
    monkeypatch.setattr("sys.argv", ["promotrack"])
    run_cli_app()
    captured = capsys.readouterr()
    assert "usage: promotrack" in captured.out


def test_run_cli_app_no_args(capsys):
    run_cli_app([])
    captured = capsys.readouterr()
    assert "usage: promotrack" in captured.out


def test_main_unknown_arg(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main_cli(["--unknown-arg"])
    assert exc_info.value.code == 2  # noqa: PLR2004
    captured = capsys.readouterr()
    assert "promotrack: error: unrecognized arguments: --unknown-arg" in captured.err


def test_main_version(capsys):
    main_cli(["--version"])
    captured = capsys.readouterr()
    assert captured.out.startswith("promotrack")


def test_main_subcmd_help(capsys):
    with pytest.raises(SystemExit) as exc_info:
        run_cli_app(["banks", "--help"])
    assert exc_info.value.code == 0
    captured = capsys.readouterr()
    assert "usage: promotrack banks" in captured.out


# ===== Tests for common options of all subcommands =====


def test_nonexisting_workbook(tmp_path, caplog):
    fpath = tmp_path / "missing.xlsx"
    with caplog.at_level(logging.ERROR), pytest.raises(PromotrackError):
        main_cli(["check", str(fpath)])
    assert f"Workbook not found: {fpath}" in caplog.text


def test_exit_errorvalue(tmp_path, caplog):
    with caplog.at_level(logging.ERROR), pytest.raises(SystemExit) as exc_info:
        run_cli_app(["check", str(tmp_path / "missing.xlsx")])
    assert exc_info.value.code == 1
    assert "Terminating with error: Workbook not found" in caplog.text


def test_nonexisting_config(tmp_path, caplog, temp_config):
    fpath = tmp_path / "missing.toml"
    with caplog.at_level(logging.ERROR), pytest.raises(PromotrackError):
        main_cli(["banks", "--config", str(fpath), "--list"])
    assert f"Config file not found at: {fpath}" in caplog.text


def test_workbook_from_config(tmp_path, capsys, temp_config):
    main_cli(["init", "--sample-data", str(tmp_path / "promociones.xlsx")])
    cfg = tmp_path / "promotrack.toml"
    cfg.write_text('workbook = "promociones.xlsx"\n')
    response = run_banks(capsys, "--config", str(cfg))
    assert response["count"] == 3  # noqa: PLR2004


def test_verbosity(xlsx_workbook, caplog):
    with caplog.at_level(logging.DEBUG):
        main_cli(["check", "-v", str(xlsx_workbook)])
    assert "Executing cmd: promotrack check -v" in caplog.text
    assert "Check subcommand started!" in caplog.text


# ===== Tests for init subcommand =====


def test_init(tmp_path, capsys):
    fpath = tmp_path / "new.xlsx"
    main_cli(["init", str(fpath)])
    assert f"Created workbook: {fpath}" in capsys.readouterr().out
    assert TableService(XLSXGrid.open(fpath)).get_row_count(BANKS_SHEET_NAME) == 0


def test_init_existing_workbook(xlsx_workbook, caplog):
    with caplog.at_level(logging.ERROR), pytest.raises(SystemExit) as exc_info:
        run_cli_app(["init", str(xlsx_workbook)])
    assert exc_info.value.code == 1
    assert "File already exists" in caplog.text

    main_cli(["init", "--force", str(xlsx_workbook)])
    assert TableService(XLSXGrid.open(xlsx_workbook)).get_row_count(
        BANKS_SHEET_NAME
    ) == 0


# ===== Tests for banks subcommand =====


def test_banks_list(xlsx_workbook, capsys):
    response = run_banks(capsys, str(xlsx_workbook))
    assert response["success"] is True
    assert response["count"] == 3  # noqa: PLR2004
    assert response["data"][0]["name"] == "BBVA"


def test_banks_add_and_show(xlsx_workbook, capsys):
    response = run_banks(capsys, "--add", "ING", "--bizum", str(xlsx_workbook))
    assert response["message"] == "Bank created successfully"
    bank = response["data"]
    assert bank["supports_bizum"] is True
    assert bank["is_bodega"] is False

    response = run_banks(capsys, "--show", bank["bank_id"], str(xlsx_workbook))
    assert response["data"] == bank
    listed = run_banks(capsys, "--list", str(xlsx_workbook))
    assert listed["count"] == 4  # noqa: PLR2004


def test_banks_rename(xlsx_workbook, capsys):
    response = run_banks(
        capsys, "--rename", "BBVA001", "BBVA Online", str(xlsx_workbook)
    )
    assert response["data"]["name"] == "BBVA Online"
    assert response["data"]["is_bodega"] is True


def test_banks_deactivate_activate_purge(xlsx_workbook, capsys):
    run_banks(capsys, "--deactivate", "SANTANDER001", str(xlsx_workbook))
    assert run_banks(capsys, str(xlsx_workbook))["count"] == 2  # noqa: PLR2004
    assert run_banks(capsys, "--all", str(xlsx_workbook))["count"] == 3  # noqa: PLR2004

    response = run_banks(capsys, "--activate", "SANTANDER001", str(xlsx_workbook))
    assert response["data"]["active"] is True

    response = run_banks(capsys, "--purge", "SANTANDER001", str(xlsx_workbook))
    assert response == {"success": True, "message": "Bank permanently deleted"}
    assert run_banks(capsys, "--all", str(xlsx_workbook))["count"] == 2  # noqa: PLR2004


def test_banks_failure_exits_with_error(xlsx_workbook, capsys, caplog):
    with caplog.at_level(logging.ERROR), pytest.raises(SystemExit) as exc_info:
        run_cli_app(["banks", "--show", "NOPE", str(xlsx_workbook)])
    assert exc_info.value.code == 1
    assert json.loads(capsys.readouterr().out) == {
        "success": False,
        "error": "Bank not found",
    }
    assert "Terminating with error: Bank not found" in caplog.text


def test_banks_actions_are_exclusive(xlsx_workbook):
    with pytest.raises(SystemExit) as exc_info:
        main_cli(["banks", "--show", "A", "--purge", "B", str(xlsx_workbook)])
    assert exc_info.value.code == 2  # noqa: PLR2004
