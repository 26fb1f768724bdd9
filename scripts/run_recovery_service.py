#!/usr/bin/env python3
"""
Recovery Service Runner
=======================

Serves the recovery engine over HTTP with the background maintenance sweep.
On exit every live session is checkpointed so it can be restored later.

Usage:
    python scripts/run_recovery_service.py
    python scripts/run_recovery_service.py --config config/recovery.yaml --port 8080
"""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from doc_recovery.api.main import create_app
from doc_recovery.config import load_recovery_config
from doc_recovery.services.recovery import CheckpointShutdownHandler, build_engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = argparse.ArgumentParser(description="Document recovery service")

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file",
    )

    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind address (default: 127.0.0.1)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Bind port (default: 8000)",
    )

    parser.add_argument(
        "--no-sweeper",
        action="store_true",
        help="Disable the background expiry sweep",
    )

    args = parser.parse_args()

    try:
        config = load_recovery_config(args.config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    engine = build_engine(config)
    shutdown = CheckpointShutdownHandler(engine)

    @shutdown.on_shutdown
    def close_engine():
        engine.close()

    if not args.no_sweeper:
        engine.start_maintenance()

    logger.info(f"Starting recovery service on {args.host}:{args.port}")
    try:
        # uvicorn installs its own SIGINT/SIGTERM handlers and returns on signal
        uvicorn.run(create_app(engine), host=args.host, port=args.port)
    finally:
        shutdown.request_shutdown("server stopped")

    return 0


if __name__ == "__main__":
    sys.exit(main())
