"""Console script wrapper around :func:`notion_file_proxy.main.main`."""

import argparse
import asyncio

from notion_file_proxy.main import main


def run() -> None:
    parser = argparse.ArgumentParser(description="Run the Notion file proxy")
    parser.add_argument("--reload", action="store_true", help="Enable hot reload")
    args = parser.parse_args()
    asyncio.run(main(reload=args.reload))
