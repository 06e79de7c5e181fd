#!/usr/bin/env python3
"""
Predictive Maintenance Alert Engine - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
- scheduler : periodic per-tenant alert generation (long-lived)
- api       : query / resolve / dismiss REST API (uvicorn)
- once      : run one evaluation cycle and exit

Compatible with PM2 process management; SIGINT/SIGTERM stop the
scheduler after the current cycle.

============================================================
USAGE
============================================================
    python app.py --mode scheduler
    python app.py --mode api --port 8000
    python app.py --mode once --snapshot-file snapshots.yaml

Environment-based configuration (.env supported):
    MAINT_ALERT_INTERVAL_SECONDS=60 DATABASE_URL=postgresql://... python app.py

============================================================
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import uvicorn

from database.engine import configure_database, initialize_database
from maintenance_alerts.config import AlertEngineConfig
from maintenance_alerts.engine import BatchEvaluator
from maintenance_alerts.exceptions import ValidationError
from maintenance_alerts.providers import (
    HttpSnapshotProvider,
    SnapshotProvider,
    YamlFileSnapshotProvider,
)
from maintenance_alerts.repository import SqlAlchemyAlertHistoryStore
from maintenance_alerts.scheduler import AlertScheduler


logger = logging.getLogger("maintenance_alerts.app")


# ============================================================
# LOGGING
# ============================================================

def setup_logging(level: str = "INFO", log_format: str = "text") -> None:
    """
    Set up process-wide logging.

    Args:
        level: Log level
        log_format: Output format (json or text)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]


# ============================================================
# CLI
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Predictive Maintenance Alert Engine",
    )
    parser.add_argument(
        "--mode",
        choices=["scheduler", "api", "once"],
        default=os.getenv("MAINT_ALERT_MODE", "scheduler"),
        help="Runtime mode",
    )
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    parser.add_argument("--snapshot-file", default=None, help="YAML snapshot export")
    parser.add_argument("--snapshot-api-url", default=None, help="Host system API base URL")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between cycles")
    parser.add_argument("--host", default=os.getenv("API_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("API_PORT", os.getenv("PORT", "8000"))))
    parser.add_argument("--log-level", default=None)
    parser.add_argument("--log-format", choices=["json", "text"], default=None)
    return parser


def build_config(args: argparse.Namespace) -> AlertEngineConfig:
    """Environment config overridden by command-line flags."""
    config = AlertEngineConfig.from_env()

    if args.snapshot_api_url:
        config = replace(config, snapshot_source="http", snapshot_api_url=args.snapshot_api_url)
    elif args.snapshot_file:
        config = replace(config, snapshot_source="file", snapshot_file=args.snapshot_file)

    if args.interval is not None:
        config = replace(config, scheduler=replace(config.scheduler, interval_seconds=args.interval))
    if args.log_level:
        config = replace(config, log_level=args.log_level)
    if args.log_format:
        config = replace(config, log_format=args.log_format)

    return config


def build_provider(config: AlertEngineConfig) -> SnapshotProvider:
    if config.snapshot_source == "http":
        return HttpSnapshotProvider(config.snapshot_api_url, api_token=config.snapshot_api_token or None)
    return YamlFileSnapshotProvider(Path(config.snapshot_file))


def build_scheduler(config: AlertEngineConfig) -> AlertScheduler:
    return AlertScheduler(
        provider=build_provider(config),
        store=SqlAlchemyAlertHistoryStore(),
        evaluator=BatchEvaluator(policy=config.policy),
        config=config.scheduler,
    )


# ============================================================
# RUN MODES
# ============================================================

async def run_scheduler(config: AlertEngineConfig) -> None:
    scheduler = build_scheduler(config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.request_shutdown)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    await scheduler.run_forever()


async def run_once(config: AlertEngineConfig) -> int:
    scheduler = build_scheduler(config)
    try:
        cycle = await scheduler.run_cycle()
    finally:
        await scheduler.provider.close()

    for tenant in cycle.tenants:
        logger.info(
            f"[{tenant.company_id}] evaluated={tenant.evaluated} generated={tenant.alerts_generated} "
            f"created={tenant.alerts_created} failed_components={len(tenant.failed_components)} "
            f"timed_out={tenant.timed_out}"
        )
    return 1 if cycle.failed_tenants else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = create_parser().parse_args(argv)
    try:
        config = build_config(args)
    except ValidationError as e:
        setup_logging()
        logger.error(f"Configuration error: {e}")
        return 2
    setup_logging(config.log_level, config.log_format)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        return 2

    configure_database(args.database_url)
    initialize_database()

    if args.mode == "api":
        logger.info(f"Starting alert API on {args.host}:{args.port}")
        uvicorn.run("maintenance_alerts.api:app", host=args.host, port=args.port, log_level="info")
        return 0

    if args.mode == "once":
        return asyncio.run(run_once(config))

    asyncio.run(run_scheduler(config))
    return 0


if __name__ == "__main__":
    sys.exit(main())
