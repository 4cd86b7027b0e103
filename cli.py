# cli.py
import argparse
import asyncio
import json
import sys

from place_import.core.config import get_settings
from place_import.core.dependencies import get_service_dependencies
from place_import.core.exceptions import PlaceImportException
from place_import.core.http_client import lifespan_manager
from place_import.core.logging_config import setup_structured_logging
from place_import.schemas.adapters import to_import_payload, to_preview_payload


async def run_import(query: str, user_id: str, flavor: str) -> int:
    deps = get_service_dependencies()
    async with lifespan_manager():
        try:
            place = await deps.place_import_service.import_place(query, user_id)
        except PlaceImportException as e:
            print(json.dumps({"code": e.code, "message": e.message}, indent=2), file=sys.stderr)
            return 1
        finally:
            await deps.close()

    payload = to_preview_payload(place) if flavor == "preview" else to_import_payload(place)
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def main():
    parser = argparse.ArgumentParser(description="Place Import CLI")
    parser.add_argument("query", nargs="?", help="Google Maps link, place name or address")
    parser.add_argument("--user-id", default=None, help="User id used for rate limiting")
    parser.add_argument("--flavor", choices=["import", "preview"], default="import", help="Output field layout")
    parser.add_argument("--version", action="store_true", help="Show version information")
    args = parser.parse_args()

    if args.version:
        from place_import.__version__ import __version__, __author__, __description__
        print(f"Place Import v{__version__}")
        print(f"Author: {__author__}")
        print(f"Description: {__description__}")
        return

    if not args.query:
        parser.error("a query is required")

    settings = get_settings()
    # stdout carries only the JSON result
    setup_structured_logging(settings.LOG_LEVEL, "text", stream=sys.stderr)
    sys.exit(asyncio.run(run_import(args.query, args.user_id or settings.DEV_USER_ID, args.flavor)))


if __name__ == "__main__":
    main()
