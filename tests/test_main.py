"""Tests for configuration loading and the console driver."""

import io
import json
from pathlib import Path

from database import Database
from main import build_terminal, load_config, main, merge_config, run_console


def test_missing_config_is_created_with_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"

    config = load_config(str(path))

    assert path.exists()
    assert config["scanner"]["min_length"] == 3
    assert config["terminal"]["profile_count"] == 4


def test_user_sections_merge_over_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"scanner": {"decay_ms": 80}, "terminal": {"role": "admin"}}))

    config = load_config(str(path))

    assert config["scanner"] == {"decay_ms": 80, "min_length": 3, "cooldown_ms": 500,
                                 "scope": "global"}
    assert config["terminal"]["role"] == "admin"
    assert config["terminal"]["branch_id"] == 1


def test_unreadable_config_falls_back(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{broken")

    assert load_config(str(path)) == merge_config({})


def _config(tmp_path):
    config = merge_config({"receipt": {"receipt_dir": str(tmp_path / "receipts")}})
    config["scanner"]["cooldown_ms"] = 0
    return config


def test_console_session_scans_and_checks_out(tmp_path: Path) -> None:
    db = Database(":memory:")
    db.add_variant("CAP-01", "Cap", 10000.0, 2.0, 5, barcode="4006381333931")
    terminal = build_terminal(_config(tmp_path), db)
    terminal.start()
    out = io.StringIO()

    run_console(terminal, io.StringIO(
        "4006381333931\n"
        ":qty 1 1\n"
        ":mode amount\n"
        ":discount 1000\n"
        ":pay card\n"
        ":checkout\n"
        ":quit\n"
        "4006381333931\n"
    ), out)

    [sale] = db.list_sales()
    assert (sale['total'], sale['payment_method']) == (19000.0, 'card')
    assert terminal.profile().cart == ()
    receipt = json.loads((tmp_path / "receipts" / "sale_1.json").read_text())
    assert receipt['items'][0]['quantity'] == 2
    assert "Added Cap" in out.getvalue()


def test_console_reports_bad_commands(tmp_path: Path) -> None:
    db = Database(":memory:")
    terminal = build_terminal(_config(tmp_path), db)
    out = io.StringIO()

    run_console(terminal, io.StringIO(":tab x\n:frobnicate\n:checkout\n"), out)

    text = out.getvalue()
    assert "Bad arguments for :tab" in text
    assert "Unknown command: frobnicate" in text
    assert "at least one item" in text


def test_import_then_export_via_cli(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "database": {"name": str(tmp_path / "pos.db")},
        "logging": {"file": str(tmp_path / "logs" / "pos.log")},
        "receipt": {"receipt_dir": str(tmp_path / "receipts")},
    }))
    catalog = tmp_path / "catalog.csv"
    catalog.write_text("sku,barcode,name,sale_price,stock_on_hand\nA1,0042,Mug,5000,6\n")
    exported = tmp_path / "export.csv"

    assert main(["--config", str(config_path), "--import-catalog", str(catalog)]) == 0
    assert main(["--config", str(config_path), "--export-catalog", str(exported)]) == 0

    assert "0042" in exported.read_text()
