"""
main.py - CLI entry point for the Rosetta test agent.

This module is orchestration-only:
1. parse flags and load settings
2. run the scenario
3. print the report
4. map the result to an exit status (0 ok, 1 failure)
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Optional

from pydantic import ValidationError

from logging_config import LOG_LEVELS, get_logger, parse_log_level, setup_logging
from report import format_report, format_report_json
from scenario import run
from settings import load_settings

logger = get_logger("test-agent")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rosetta-test-agent",
        description=(
            "Run agent to poke at the node and peek at Rosetta.\n"
            "Sends a payment through GraphQL and checks that Rosetta "
            "reports the expected mempool operations."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s --rosetta-uri http://localhost:3087 --graphql-uri http://localhost:3085/graphql\n"
            "  %(prog)s --log-level debug --log-json\n"
        ),
    )
    parser.add_argument(
        "--rosetta-uri",
        type=str,
        default=None,
        help="URI of Rosetta endpoint to connect to (env: TEST_AGENT_ROSETTA_URI)",
    )
    parser.add_argument(
        "--graphql-uri",
        type=str,
        default=None,
        help="URI of the node's GraphQL endpoint to connect to (env: TEST_AGENT_GRAPHQL_URI)",
    )
    parser.add_argument(
        "--log-level",
        type=str.lower,
        choices=sorted(LOG_LEVELS),
        default="info",
        help="Set log level (default: info)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Print log output as JSON (default: plain text)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the final report as JSON instead of formatted text",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run the agent; return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level=parse_log_level(args.log_level), json_format=args.log_json)

    try:
        settings = load_settings({"rosetta_uri": args.rosetta_uri, "graphql_uri": args.graphql_uri})
    except ValidationError as exc:
        logger.error("cli_error | type=ValidationError | error=%s", exc)
        print(f"\nError: invalid configuration\n{exc}")
        return 1

    logger.info("Rosetta test-agent starting | rosetta_uri=%s | graphql_uri=%s", settings.rosetta_uri, settings.graphql_uri)
    try:
        result = asyncio.run(run(settings))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130

    if args.json:
        print(json.dumps(format_report_json(result), indent=2))
    else:
        print(format_report(result))

    if result.ok:
        logger.info("Rosetta test-agent stopping successfully")
        return 0

    logger.error("Rosetta test-agent stopping with a failure: %s", result.message)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
