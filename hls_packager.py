#!/usr/bin/env python3

import argparse
import dataclasses
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from hlspack.config import PipelineConfig
from hlspack.errors import ConfigurationError
from hlspack.monitoring import metrics
from hlspack.orchestrator import PipelineOrchestrator

# ------------------------------
# Timer decorator
# ------------------------------
def timer(func):
    def wrapper(*args, **kwargs):
        start = time.time()
        result = func(*args, **kwargs)
        end = time.time()
        logging.info(f"{func.__name__} took {end - start:.2f} seconds")
        return result
    return wrapper

# ------------------------------
# Logging
# ------------------------------
def configure_logging(log_level: str = "INFO") -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

# ------------------------------
# Entry points
# ------------------------------
def handler(event: Dict[str, Any], config: Optional[PipelineConfig] = None) -> Dict[str, Any]:
    """Package and publish the object named by ``event["s3Key"]``."""
    config = config or PipelineConfig.from_env()
    source_key = (event or {}).get("s3Key")
    if not source_key:
        raise ConfigurationError("s3Key not provided")
    result = PipelineOrchestrator(config).run(source_key)
    return result.to_response()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Transcode one stored video into an HLS ladder and publish it back to S3."
    )
    parser.add_argument("--event", default=os.getenv("EVENT"),
                       help='JSON event, e.g. {"s3Key": "videos/clip.mp4"} (default: $EVENT)')
    parser.add_argument("--s3-key", default=None,
                       help="Source object key; overrides the key in --event")
    parser.add_argument("--workspace", default=None,
                       help="Local scratch directory (default: $HLS_WORKSPACE or /tmp/output)")
    parser.add_argument("--batch-size", type=int, default=None,
                       help="Concurrent segment uploads per batch (default: 40)")
    parser.add_argument("--log-level", type=str, default="INFO",
                       choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                       help="Logging level")
    parser.add_argument("--metrics-port", type=int, default=None,
                       help="Expose Prometheus metrics on this port")
    return parser.parse_args(argv)


def build_event(args: argparse.Namespace) -> Dict[str, Any]:
    event: Dict[str, Any] = {}
    if args.event:
        try:
            event = json.loads(args.event)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"EVENT is not valid JSON: {e}") from e
    if args.s3_key:
        event["s3Key"] = args.s3_key
    if not event:
        raise ConfigurationError("EVENT environment variable is required")
    return event


# ------------------------------
# Main
# ------------------------------
@timer
def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        event = build_event(args)
        config = PipelineConfig.from_env()
        overrides: Dict[str, Any] = {}
        if args.workspace:
            overrides["workspace_dir"] = Path(args.workspace).expanduser().resolve()
        if args.batch_size is not None:
            overrides["upload_batch_size"] = args.batch_size
        if overrides:
            config = dataclasses.replace(config, **overrides)
        if args.metrics_port:
            metrics.start_server(args.metrics_port)

        logging.info("Starting video processor...")
        response = handler(event, config)
    except ConfigurationError as e:
        logging.error("Fatal error: %s", e)
        return 1

    logging.info("Processing result: %s", response)
    return 0 if response["statusCode"] == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
