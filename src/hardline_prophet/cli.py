from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import GameConfig
from .data.loader import load_content
from .errors import HardlineError
from .logging_config import configure_logging, level_for_verbosity
from .models.record import PlayerClass
from .profile import STARTING_PERKS, needs_profile
from .save.errors import SaveError
from .save.store import StateStore
from .session import GameSession
from .utils.jsonutil import pretty_dumps

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.05


def _echo(message: str) -> None:
    # Game console output goes to stderr so stdout stays a clean JSON summary.
    print(message, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hardline-prophet",
        description="Hardline Prophet - headless idle hacking runner",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--user", default="default_user", help="Player handle to log on as")
    parser.add_argument("--dev", action="store_true", help="Dev mode: integrity failures become warnings")
    parser.add_argument("--ticks", type=int, default=10, help="Number of ticks to run before saving")
    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Run ticks on the event loop timer instead of back to back",
    )
    parser.add_argument("--save-dir", type=Path, default=None, help="Override the save directory")
    parser.add_argument("--content-dir", type=Path, default=None, help="Override the content catalogs directory")
    parser.add_argument("--config", type=Path, default=None, help="Path to a JSON config file")
    parser.add_argument(
        "--class",
        dest="player_class",
        choices=[c.value for c in PlayerClass if c is not PlayerClass.NONE],
        default=None,
        help="Starting class for a player without a profile",
    )
    parser.add_argument(
        "--perk",
        dest="perks",
        action="append",
        choices=sorted(STARTING_PERKS),
        default=[],
        help="Starting perk (repeatable); only used together with --class",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    return parser


def build_config(args: argparse.Namespace) -> GameConfig:
    """Config file first, then environment, then command-line flags."""
    cfg = GameConfig.from_json(args.config) if args.config else GameConfig()
    cfg.apply_env()
    if args.save_dir is not None:
        cfg.save_dir = args.save_dir
    if args.content_dir is not None:
        cfg.content_dir = args.content_dir
    if args.dev:
        cfg.dev_mode = True
    return cfg


async def run_session(args: argparse.Namespace, config: GameConfig) -> dict:
    """Log on, run the requested ticks, save, and return a summary."""
    store = StateStore(config.save_dir, dev_mode=config.dev_mode, diagnostics=_echo)
    catalog = load_content(config.content_dir)
    scheduler = asyncio.get_running_loop() if args.realtime else None
    session = GameSession(store, catalog, config=config, scheduler=scheduler, log=_echo)

    record = await session.logon_async(args.user)
    if args.player_class and needs_profile(record):
        session.choose_profile(PlayerClass.parse(args.player_class), args.perks)

    engine = session.engine
    if not catalog.missions:
        logger.warning("No missions loaded; nothing to run")
    elif args.realtime:
        while engine.running and engine.tick_count < args.ticks:
            await asyncio.sleep(POLL_INTERVAL_S)
    else:
        session.run_ticks(args.ticks)
    ticks = engine.tick_count

    saved = await session.shutdown_async()
    return {
        "ticks": ticks,
        "save_path": str(store.path_for(args.user)),
        "record": saved.to_dict() if saved else None,
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.ticks < 0:
        parser.error("--ticks must be >= 0")

    configure_logging(level_for_verbosity(args.verbose))

    try:
        config = build_config(args)
        summary = asyncio.run(run_session(args, config))
    except (SaveError, HardlineError) as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    except (OSError, ValueError) as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    print(pretty_dumps(summary))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
