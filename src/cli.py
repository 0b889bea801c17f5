"""
Trust Witness Server CLI
Command-line interface for starting Trust Witness Server
"""

import argparse
import logging
import os

import uvicorn

from src.config import settings as settings_module
from src.config.settings import Settings, settings

logger = logging.getLogger(__name__)


def main():
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(description="Trust Witness Server - Trust scoring for autonomous agents")
    parser.add_argument("--host", default=settings.HOST, help=f"Host to bind (default: {settings.HOST})")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"Port to bind (default: {settings.PORT})")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL.lower(),
        choices=["debug", "info", "warning", "error"],
        help="Log level",
    )
    parser.add_argument("--constraints", metavar="PATH", help="YAML constraint catalogue merged over the defaults")
    parser.add_argument("--redis", action="store_true", help="Persist source reliability in Redis (REDIS_URL)")

    args = parser.parse_args()

    # The app reads settings at import time, in this process or the reloader's child
    os.environ["LOG_LEVEL"] = args.log_level.upper()
    if args.constraints:
        os.environ["CONSTRAINT_CATALOGUE_PATH"] = args.constraints
    if args.redis:
        os.environ["USE_REDIS"] = "true"
    # Rebinds the module attribute; app modules bind `settings` when uvicorn imports src.app_factory below
    settings_module.settings = Settings()

    logger.info(f"Starting Trust Witness Server on {args.host}:{args.port}")

    uvicorn.run(
        "src.app_factory:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level
    )


if __name__ == "__main__":
    main()
