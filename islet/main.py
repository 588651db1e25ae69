import argparse
import json
import logging
import logging.config
import sys
from pathlib import Path
from typing import List, Optional

from islet.errors import IsletError
from islet.services.site import setup

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                },
            },
            "root": {"level": level, "handlers": ["console"]},
        }
    )


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="islet",
        description="Compile a site's pages, layouts and data islands into static HTML.",
    )
    parser.add_argument("source", type=Path, help="Site source directory (containing views/).")
    parser.add_argument("output", type=Path, help="Directory the compiled pages are written to.")
    parser.add_argument(
        "--data",
        type=Path,
        help="JSON file merged over the site data before compiling.",
    )
    parser.add_argument(
        "--silent",
        action="store_true",
        help="Do not warn about pages whose layout is missing.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level.upper())

    custom_data = {}
    if args.data is not None:
        try:
            custom_data = json.loads(args.data.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Could not load custom data from %s: %s", args.data, exc)
            return 1

    try:
        site = setup(args.source, custom_data, silent=args.silent)
        written = site.compile_site(args.output)
    except IsletError as exc:
        logger.error("Build failed: %s", exc)
        return 1

    logger.info("Wrote %d page(s) to %s", len(written), args.output)
    return 0 if site.report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
