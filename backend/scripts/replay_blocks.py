import argparse
import json

from loguru import logger

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db import build_db_components, init_db
from ingestion.client import StarknetRpcClient
from pipelines.event_sync_run import build_sync_loop


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Re-apply timed-out event resolutions for a block range without moving the cursor"
    )
    parser.add_argument("--from-block", type=int, required=True, help="First block to re-scan")
    parser.add_argument("--to-block", type=int, default=None, help="Last block to re-scan (defaults to --from-block)")
    parser.add_argument(
        "--address",
        dest="addresses",
        action="append",
        default=None,
        help="Contract address to re-scan (repeatable; defaults to every address in the events table)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = get_settings()
    configure_logging(settings.log_level)

    to_block = args.to_block if args.to_block is not None else args.from_block
    if to_block < args.from_block:
        logger.error("--to-block {} is lower than --from-block {}", to_block, args.from_block)
        raise SystemExit(2)

    engine, session_factory = build_db_components(settings)
    try:
        init_db(engine)
        with StarknetRpcClient(endpoint=settings.rpc_url, timeout=settings.rpc_timeout_seconds) as client:
            loop = build_sync_loop(settings, session_factory=session_factory, client=client)
            summary = loop.replay(args.from_block, to_block, addresses=args.addresses)
    finally:
        engine.dispose()

    logger.info("Replay finished: {}", json.dumps(summary.to_dict(), default=str))


if __name__ == "__main__":
    main()
