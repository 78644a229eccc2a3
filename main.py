import asyncio
import argparse
from pathlib import Path
from src.apiconverse.cli import build_engine, cmd_match, cmd_request, cmd_tools, resolve_catalog_path, run_chat
from src.apiconverse.settings import ConverseSettings
from src.utils.logger import configure_logging


def parse_args():
    parser = argparse.ArgumentParser(description="Conversational front end for REST APIs")
    parser.add_argument("--catalog", type=str, default=None, help="Path to the YAML/JSON tool catalog")
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default=None
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # chat
    sub.add_parser("chat", help="Start an interactive conversation")

    # match
    match = sub.add_parser("match", help="Show how tools score against a query")
    match.add_argument("query", help="Natural-language request")
    match.add_argument("--limit", type=int, default=5)

    # tools
    sub.add_parser("tools", help="List the tools in the catalog")

    # request
    request = sub.add_parser("request", help="Print the curl command for a tool call")
    request.add_argument("tool", help="Tool name")
    request.add_argument("params", nargs="*", help="key=value pairs")

    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    settings = ConverseSettings()
    configure_logging(args.log_level or settings.log_level, log_file=settings.log_file)
    catalog = resolve_catalog_path(settings, Path(args.catalog) if args.catalog else None)

    if args.command == "chat":
        asyncio.run(run_chat(build_engine(settings, catalog)))

    elif args.command == "match":
        print(asyncio.run(cmd_match(args.query, settings, catalog, limit=args.limit)))

    elif args.command == "tools":
        print(cmd_tools(catalog))

    elif args.command == "request":
        print(cmd_request(args.tool, args.params, catalog))
