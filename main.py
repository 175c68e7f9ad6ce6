# main.py
import os
import sys
import json
import logging
import argparse
from pathlib import Path

from database import Database
from logger import configure_logger
from models import TerminalIdentity
from terminal import PosTerminal
from scanner import TARGET_BARCODE_INPUT
from utils import export_catalog, import_catalog

logger = logging.getLogger("pos_terminal.main")

# Default configuration
DEFAULT_CONFIG = {
    "database": {"name": "pos.db"},
    "logging": {"level": "INFO", "file": "logs/pos.log", "max_size": 1048576,
                "backup_count": 3},
    "scanner": {"decay_ms": 150, "min_length": 3, "cooldown_ms": 500, "scope": "global"},
    "terminal": {"branch_id": 1, "cashier_id": 1, "role": "cashier", "profile_count": 4},
    "exchange_rate": {"default": 1500},
    "receipt": {"receipt_dir": "receipts"},
}


def merge_config(user_config):
    """Overlay user sections on the defaults, one level deep."""
    config = {key: dict(value) for key, value in DEFAULT_CONFIG.items()}
    for key, value in (user_config or {}).items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key].update(value)
        else:
            config[key] = value
    return config


def load_config(config_path="config.json"):
    """Load configuration from JSON file or create default if not exists"""
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config = json.load(f)
            logger.info(f"Configuration loaded from {config_path}")
            return merge_config(config)
        except Exception as e:
            logger.error(f"Error loading config: {e}")
            return merge_config({})

    try:
        with open(config_path, 'w') as f:
            json.dump(DEFAULT_CONFIG, f, indent=4)
        logger.info(f"Created default configuration at {config_path}")
    except OSError as e:
        logger.warning(f"Could not write default configuration: {e}")
    return merge_config({})


def setup_directories(config):
    """Create required directories if they don't exist."""
    dirs = [
        config["receipt"]["receipt_dir"],
        os.path.dirname(config["logging"]["file"] or ""),
    ]
    for dir_path in dirs:
        if not dir_path:
            continue
        path = Path(dir_path)
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created directory: {path}")


class SaleRecordWriter:
    """Hands created sales to the print queue as JSON files."""

    def __init__(self, receipt_dir):
        self.receipt_dir = Path(receipt_dir)

    def __call__(self, record):
        self.receipt_dir.mkdir(parents=True, exist_ok=True)
        path = self.receipt_dir / f"sale_{record['id']}.json"
        with open(path, 'w') as f:
            json.dump(record, f, indent=2)
        logger.info(f"Sale #{record['id']} queued for printing: {path}")
        return path


def build_terminal(config, db: Database, clock=None):
    term = config["terminal"]
    identity = TerminalIdentity(
        branch_id=int(term["branch_id"]),
        cashier_id=int(term["cashier_id"]),
        role=term.get("role", "cashier"),
    )
    return PosTerminal(
        catalog_provider=db, customers=db, rates=db, sales=db, kv=db,
        identity=identity,
        printer=SaleRecordWriter(config["receipt"]["receipt_dir"]),
        profile_count=int(term.get("profile_count", 4)),
        scanner_config=config["scanner"],
        clock=clock,
    )


def format_profile(terminal):
    profile = terminal.profile()
    totals = terminal.totals()
    lines = [f"--- Profile {terminal.active_index + 1} ---"]
    for line in profile.cart:
        lines.append(f"  [{line.variant_id}] {line.name[:24]:24} x{line.quantity:<3} "
                     f"{line.line_total:10.2f}")
    lines.append(f"  Subtotal: {totals['subtotal']:.2f}  Discount: {totals['discount']:.2f} "
                 f"({profile.discount_mode})  Total: {totals['total']:.2f}")
    if 'profit' in totals:
        lines.append(f"  Profit: {totals['profit']:.2f}")
    lines.append(f"  Payment: {profile.payment_method}  Customer: "
                 f"{profile.selected_customer_id or '-'}")
    if profile.error:
        lines.append(f"  ! {profile.error}")
    if profile.success:
        lines.append(f"  * {profile.success}")
    if terminal.global_error:
        lines.append(f"  !! {terminal.global_error}")
    return "\n".join(lines)


def run_command(terminal, command, out):
    """Run one ':'-prefixed console command. Returns False to quit."""
    parts = command.split()
    if not parts:
        return True
    name, args = parts[0].lower(), parts[1:]
    try:
        if name in ("quit", "q"):
            return False
        elif name == "tab":
            terminal.switch_profile(int(args[0]) - 1)
        elif name == "qty":
            terminal.update_quantity(int(args[0]), int(args[1]))
        elif name == "rm":
            terminal.remove_item(int(args[0]))
        elif name == "undo":
            terminal.remove_last_item()
        elif name == "clear":
            terminal.clear()
        elif name == "mode":
            terminal.set_discount_mode(args[0])
        elif name == "discount":
            terminal.set_discount_value(args[0])
        elif name == "pay":
            terminal.set_payment_method(args[0])
        elif name == "customer":
            if not args or args[0] == "-":
                terminal.select_customer(None)
            elif args[0].isdigit():
                terminal.select_customer(int(args[0]))
            else:
                for c in terminal.search_customers(" ".join(args)):
                    out.write(f"  {c['id']}: {c['name']} {c['phone'] or ''}\n")
        elif name == "checkout":
            terminal.commit()
        elif name == "refresh":
            terminal.refresh_catalog()
        elif name != "show":
            out.write(f"Unknown command: {name}\n")
    except (IndexError, ValueError):
        out.write(f"Bad arguments for :{name}\n")
    return True


def run_console(terminal, stdin=None, out=None):
    """
    Line-oriented driver: each plain line is typed through the barcode
    capture as a wedge scanner would; ':' lines are commands.
    """
    stdin = stdin or sys.stdin
    out = out or sys.stdout
    out.write(format_profile(terminal) + "\n")
    for raw in stdin:
        line = raw.rstrip("\n")
        if line.startswith(":"):
            if not run_command(terminal, line[1:], out):
                break
        elif line.strip():
            terminal.capture.feed_text(line.strip(), TARGET_BARCODE_INPUT)
            if terminal.scanner_message:
                out.write(f"  {terminal.scanner_message}\n")
                terminal.scanner_message = None
        terminal.tick()
        out.write(format_profile(terminal) + "\n")


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="POS terminal transaction core")
    parser.add_argument("--config", help="Path to configuration file", default="config.json")
    parser.add_argument("--debug", help="Enable debug mode", action="store_true")
    parser.add_argument("--import-catalog", metavar="PATH",
                        help="Import variants from a CSV or Excel file and exit")
    parser.add_argument("--export-catalog", metavar="PATH",
                        help="Export variants to a CSV or Excel file and exit")
    return parser.parse_args(argv)


def main(argv=None):
    try:
        args = parse_arguments(argv)
        config = load_config(args.config)
        if args.debug:
            config["logging"]["level"] = "DEBUG"
        configure_logger(config)
        setup_directories(config)

        db = Database(config["database"]["name"], float(config["exchange_rate"]["default"]))
        logger.info(f"Database initialized: {config['database']['name']}")

        if args.import_catalog:
            count = import_catalog(db, args.import_catalog)
            logger.info(f"Imported {count} variants from {args.import_catalog}")
            db.close()
            return 0
        if args.export_catalog:
            export_catalog(db, args.export_catalog)
            logger.info(f"Exported catalog to {args.export_catalog}")
            db.close()
            return 0

        terminal = build_terminal(config, db)
        terminal.start()
        run_console(terminal)
        db.close()
        return 0

    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    sys.exit(main())
