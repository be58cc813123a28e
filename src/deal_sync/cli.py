"""
Command line entry point.

    deal-sync sync-deal --id 123
    deal-sync init-db

Storage connections are released before the process exits, whatever the
outcome.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from .clients.pipedrive_client import PipedriveClient
from .clients.postgres_client import PostgresClient
from .logging import configure_logging, get_logger
from .pipeline.pipeline import DealSyncPipeline

logger = get_logger(__name__)


def positive_int(value: str) -> int:
    """argparse type for a Pipedrive id."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid deal id: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"deal id must be a positive integer, got {value}")
    return number


async def cmd_sync_deal(args: argparse.Namespace) -> int:
    async with PostgresClient() as storage:
        async with PipedriveClient() as crm:
            result = await DealSyncPipeline(crm, storage).sync_deal(args.id)
    print(f"Deal {args.id} synchronized successfully (local id {result.deal_id})")
    return 0


async def cmd_init_db(args: argparse.Namespace) -> int:
    async with PostgresClient() as storage:
        await storage.ensure_schema()
    print('Database schema is up to date')
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='deal-sync', description='Sync Pipedrive deals into Postgres')
    parser.add_argument('--log-level', default=None, help='Override LOG_LEVEL')
    parser.add_argument('--log-json', action='store_true', default=None, help='Emit JSON log lines')
    sub = parser.add_subparsers(dest='cmd', required=True)

    sync_p = sub.add_parser('sync-deal', help='Sync one deal and its related entities')
    sync_p.add_argument('--id', type=positive_int, required=True, help='Pipedrive deal id')
    sync_p.set_defaults(func=cmd_sync_deal)

    init_p = sub.add_parser('init-db', help='Create the synced tables if missing')
    init_p.set_defaults(func=cmd_init_db)

    return parser


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = _build_parser()
    # Invalid arguments exit here (status 2), before any I/O
    args = parser.parse_args(argv)

    configure_logging(json_output=args.log_json, log_level=args.log_level)

    try:
        return asyncio.run(args.func(args))
    except Exception as exc:
        logger.error('cli.failed', command=args.cmd, error=str(exc), error_type=type(exc).__name__)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == '__main__':  # pragma: no cover
    raise SystemExit(main())
