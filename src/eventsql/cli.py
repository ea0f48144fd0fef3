"""Command line tools for rendering and checking queries.

``eventsql render`` shows the SQL and bind parameters a filter set produces
without touching the database. ``eventsql check`` resolves the configured
connection and runs a connectivity probe.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

import orjson
from dotenv import load_dotenv

from eventsql.core import get_resolver, parameterize, parse_filters
from eventsql.models.query import QueryOptions
from eventsql.utils import dumps

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = """select count(*) as num
from website_event
{{join_session}}
{{cohort}}
where website_event.website_id = {{websiteId::uuid}}
{{date}}
{{filters}}"""


def render(
    filters: dict, template: str = DEFAULT_TEMPLATE, options: Optional[QueryOptions] = None
) -> dict:
    """
    Render ``template`` against ``filters``.

    The fragment slots ``{{join_session}}``, ``{{cohort}}``, ``{{date}}`` and
    ``{{filters}}`` are filled first; the rest are bind parameters.
    """
    parsed = parse_filters(filters, options)
    sql = (
        template.replace("{{join_session}}", parsed.join_session_query)
        .replace("{{cohort}}", parsed.cohort_query)
        .replace("{{date}}", parsed.date_query)
        .replace("{{filters}}", parsed.filter_query)
    )
    query, params = parameterize(sql, parsed.query_params)
    return {"sql": query, "params": params}


async def check() -> bool:
    resolver = get_resolver()
    client = resolver.get_client()
    try:
        await client.initialize()
        ok = await client.primary.test_connection()
        if ok and client.has_replica:
            ok = await client.replica.test_connection()
        return ok
    finally:
        await resolver.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eventsql", description=__doc__)
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    render_parser = commands.add_parser("render", help="Render SQL for a filter set")
    render_parser.add_argument(
        "filters", help="Filter set as JSON, or @path to a JSON file"
    )
    render_parser.add_argument(
        "--template", help="SQL template, or @path to a file", default=None
    )
    render_parser.add_argument("--join-session", action="store_true")

    commands.add_parser("check", help="Test the configured database connection")
    return parser


def _read_arg(value: str) -> str:
    if value.startswith("@"):
        with open(value[1:], encoding="utf-8") as f:
            return f.read()
    return value


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "render":
        filters = orjson.loads(_read_arg(args.filters))
        template = _read_arg(args.template) if args.template else DEFAULT_TEMPLATE
        options = QueryOptions(join_session=args.join_session)
        print(dumps(render(filters, template, options)))
        return 0

    ok = asyncio.run(check())
    print("ok" if ok else "failed")
    return 0 if ok else 1


def cli_entry() -> None:
    """Entry point for the ``eventsql`` console script."""
    # Windows-specific event loop policy
    if os.name == "nt":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())  # type: ignore[attr-defined]

    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    cli_entry()
