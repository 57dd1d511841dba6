from __future__ import annotations

import argparse
import logging
import sys

from kintone_mcp import __version__
from kintone_mcp.catalog.loader import CatalogValidationError
from kintone_mcp.config import ConfigurationError, load_config
from kintone_mcp.service.gateway_service import build_service
from kintone_mcp.stdio import JsonRpcStdioServer

LOGGER = logging.getLogger("kintone_mcp")

_USAGE_HINT = (
    "Provide a settings file or set KINTONE_BASE_URL together with "
    "KINTONE_API_TOKEN or KINTONE_USERNAME/KINTONE_PASSWORD."
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the kintone MCP server over STDIO")
    parser.add_argument(
        "settings",
        nargs="?",
        default=None,
        help="Path to a YAML or JSON settings file",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN", "ERROR"],
        default="INFO",
        help="Logging level",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.settings)
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        print(_USAGE_HINT, file=sys.stderr)
        return 1

    try:
        service = build_service(config)
    except CatalogValidationError as exc:
        LOGGER.error("Failed to load the tool catalog: %s", exc)
        return 1

    server = JsonRpcStdioServer(service)
    LOGGER.info("kintone server is running on stdio")
    try:
        server.serve(sys.stdin.buffer, sys.stdout.buffer)
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        LOGGER.error("STDIO transport failed: %s", exc)
        return 1
    finally:
        service.close()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
