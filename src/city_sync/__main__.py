"""
City sync CLI entry point.

Inspect and drive a city account across the base ledger and the rollup.

Usage::

    python -m city_sync status
    python -m city_sync init
    python -m city_sync place 3 4 residential
    python -m city_sync bulldoze 3 4
    python -m city_sync delegate
    python -m city_sync commit
    python -m city_sync undelegate
    python -m city_sync watch

Options:
    --keypair      Path to the wallet keypair JSON file (default: ~/.config/solana/id.json)
    --base-rpc     Base ledger JSON-RPC endpoint
    --rollup-rpc   Rollup JSON-RPC endpoint
    --log-level    Logging level (default: INFO)
    --no-color     Disable colored logging output
    --metrics      Print Prometheus metrics on exit
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

from city_sync.client import CityClient
from city_sync.codec import TOOL_TILE_TYPES
from city_sync.config import ClientConfig, ws_url_for
from city_sync.errors import CitySyncError
from city_sync.keys import Keypair
from city_sync.ledger import LedgerError, LedgerKind
from city_sync.metrics import generate_metrics
from city_sync.session import KeypairSigner
from city_sync.sync import LedgerView

logger = logging.getLogger(__name__)

DEFAULT_KEYPAIR = Path.home() / ".config" / "solana" / "id.json"


class ColoredFormatter(logging.Formatter):
    """Log formatter with level colors."""

    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    CYAN = "\x1b[38;5;51m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        timestamp = f"{self.CYAN}{self.formatTime(record, self.datefmt)}{self.RESET}"
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"
        return f"{timestamp} {levelname} {name}: {record.getMessage()}"


def setup_logging(level: str = "INFO", no_color: bool = False) -> None:
    """Configure the root logger."""
    handler = logging.StreamHandler()
    if no_color:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    else:
        handler.setFormatter(ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


def build_config(args: argparse.Namespace) -> ClientConfig:
    """Apply command-line overrides on top of the environment."""
    config = ClientConfig.from_env()
    overrides: dict[str, Any] = {}
    if args.base_rpc:
        overrides |= {"base_rpc_url": args.base_rpc, "base_ws_url": ws_url_for(args.base_rpc)}
    if args.rollup_rpc:
        overrides |= {
            "rollup_rpc_url": args.rollup_rpc,
            "rollup_ws_url": ws_url_for(args.rollup_rpc),
        }
    return dataclasses.replace(config, **overrides) if overrides else config


def print_json(payload: dict[str, Any]) -> None:
    """Write one JSON document per line to stdout."""
    sys.stdout.write(json.dumps(payload, sort_keys=True) + "\n")
    sys.stdout.flush()


async def watch(client: CityClient) -> None:
    """Print a snapshot on every view change until cancelled."""
    changed = asyncio.Event()

    def on_view(kind: LedgerKind, view: LedgerView | None) -> None:
        changed.set()

    client.sync.on_view_change(on_view)
    print_json(client.snapshot())
    while True:
        await changed.wait()
        changed.clear()
        print_json(client.snapshot())


async def run_command(args: argparse.Namespace) -> int:
    """Connect, run one subcommand, disconnect."""
    keypair = Keypair.from_json_file(args.keypair)
    config = build_config(args)
    client = CityClient.from_config(config, KeypairSigner(keypair))

    async with client:
        match args.command:
            case "status":
                pass
            case "init":
                await client.initialize_city()
            case "place":
                await client.place_building(args.x, args.y, args.building)
            case "bulldoze":
                await client.bulldoze(args.x, args.y)
            case "delegate":
                await client.delegate()
            case "commit":
                result = await client.commit()
                if result.commitment_signature is not None:
                    logger.info("Base-ledger commit: %s", result.commitment_signature)
            case "undelegate":
                await client.undelegate()
            case "watch":
                await watch(client)
        print_json(client.snapshot())
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="city_sync",
        description="City account sync across the base ledger and the rollup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--keypair",
        type=Path,
        default=DEFAULT_KEYPAIR,
        help=f"Path to the wallet keypair JSON file (default: {DEFAULT_KEYPAIR})",
    )
    parser.add_argument("--base-rpc", default=None, help="Base ledger JSON-RPC endpoint")
    parser.add_argument("--rollup-rpc", default=None, help="Rollup JSON-RPC endpoint")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored logging output",
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        help="Print Prometheus metrics on exit",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("status", help="Show the cached account and delegation status")
    commands.add_parser("init", help="Create the city account")

    place = commands.add_parser("place", help="Place a building")
    place.add_argument("x", type=int)
    place.add_argument("y", type=int)
    place.add_argument("building", choices=sorted(TOOL_TILE_TYPES))

    bulldoze = commands.add_parser("bulldoze", help="Clear a tile")
    bulldoze.add_argument("x", type=int)
    bulldoze.add_argument("y", type=int)

    commands.add_parser("delegate", help="Delegate the city to the rollup")
    commands.add_parser("commit", help="Commit rollup state to the base ledger")
    commands.add_parser("undelegate", help="Return the city to the base ledger")
    commands.add_parser("watch", help="Print a snapshot on every account change")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.no_color)

    try:
        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return 0
    except (CitySyncError, LedgerError, ValueError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    finally:
        if args.metrics:
            sys.stdout.write(generate_metrics().decode())


if __name__ == "__main__":
    sys.exit(main())
