"""Command line entrypoint for the decision core."""

import argparse
import asyncio
import logging
import sys
from datetime import datetime

try:
    import uvloop
except ImportError:  # not built for Windows
    uvloop = None

from config import ConfigLoader
from constants import __version__
from engine import AccessDecisionEngine
from enforcement import JsonFileEnforcer, build_directives
from errors import StoreUnavailable
from json_utils import json_dumps
from logger import EngineLogger
from server import BlockService
from snooze import to_ms
from stats import DecisionStats
from store import ConfigRepository, JsonFileStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="focusgate", description="Site blocking and time limit decisions")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--state", default="focusgate-state.json", help="Path to the JSON state file")
    parser.add_argument("--check", action="append", metavar="URL", default=[], help="Print the decision for URL (repeatable)")
    parser.add_argument("--block-set", action="store_true", help="Print the materialized block set and its directives")
    parser.add_argument("--snooze", type=float, metavar="MINUTES", help="Snooze all blocking for MINUTES")
    parser.add_argument("--clear-snooze", action="store_true", help="End an active snooze")
    parser.add_argument("--serve", action="store_true", help="Run the block service until interrupted")
    parser.add_argument("--directives-file", help="Where the service writes enforcement directives")
    parser.add_argument("--redirect", help="Redirect target for blocked requests")
    parser.add_argument("--debounce-ms", type=float, help="Debounce window for rebuilds")
    parser.add_argument("--tick", type=float, help="Seconds between periodic re-evaluations")
    parser.add_argument("--log-access", required=False, help="Path to the decision log")
    parser.add_argument("--log-error", required=False, help="Path to log file for errors")
    parser.add_argument("-q", "--quiet", action="store_true", help="Remove console output")
    return parser


async def run(argv=None) -> int:
    logging.getLogger("asyncio").setLevel(logging.CRITICAL)
    args = build_parser().parse_args(argv)
    if args.serve and not args.directives_file:
        print("[ERROR]: --serve needs --directives-file", file=sys.stderr)
        return 2

    config = ConfigLoader.load_from_args(args)
    logger = EngineLogger(config.log_access_file, config.log_error_file, config.quiet)
    stats = DecisionStats()
    logger.set_error_counter_callback(stats.increment_errors)
    repository = ConfigRepository(JsonFileStore(config.state_file), logger)
    engine = AccessDecisionEngine(repository, statistics=stats, logger=logger)
    now = datetime.now()

    try:
        if args.clear_snooze:
            await repository.clear_snooze()
            logger.info("[INFO]: Snooze cleared")
        if args.snooze:
            until = await repository.set_snooze(args.snooze, to_ms(now))
            logger.info(f"[INFO]: Blocking snoozed until {datetime.fromtimestamp(until / 1000):%H:%M on %Y-%m-%d}")
    except StoreUnavailable as e:
        print(f"[ERROR]: {e}", file=sys.stderr)
        return 1

    for url in args.check:
        decision = await engine.decide(url, now)
        print(json_dumps(decision.to_dict()))

    if args.block_set:
        block_set = await engine.materialized_block_set(now)
        payload = block_set.to_dict()
        payload["directives"] = [d.to_dict() for d in build_directives(block_set, config.redirect_target)]
        print(json_dumps(payload))

    if args.serve:
        service = BlockService(config, engine, JsonFileEnforcer(config.directives_file), stats, logger)
        try:
            await service.run()
        except asyncio.CancelledError:
            await service.shutdown()
            logger.info("[INFO]: Shutting down focusgate service...")
    return 0


def main() -> None:
    try:
        if uvloop is not None:
            code = uvloop.run(run())
        else:
            code = asyncio.run(run())
    except KeyboardInterrupt:
        code = 0
    raise SystemExit(code)


if __name__ == "__main__":
    main()
