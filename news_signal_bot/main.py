"""Entry points for News Signal Bot: command line and AWS Lambda."""

import argparse
import json
import os
import sys
from typing import Any

from .analyze import NewsAnalyzer
from .config import Config, ConfigError, load_config
from .logging_config import (
    create_execution_logger,
    new_execution_id,
    setup_structured_logging,
)
from .pipeline import Pipeline
from .telegram import TelegramPublisher


def build_pipeline(
    config: Config, execution_id: str, dry_run: bool = False
) -> Pipeline:
    """Wire the analyzer and publisher for one run."""
    analyzer = NewsAnalyzer(config.analysis, execution_id=execution_id)
    publisher = TelegramPublisher(config.telegram, execution_id=execution_id)
    return Pipeline(
        config, analyzer, publisher, execution_id=execution_id, dry_run=dry_run
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="news-signal-bot",
        description="Fetch RSS news, pick the globally significant story with an "
        "LLM and post its summary to Telegram.",
    )
    parser.add_argument(
        "--env-file",
        help="Path to a .env file (default: ./.env if present)",
    )
    parser.add_argument(
        "--source",
        action="append",
        dest="sources",
        metavar="NAME",
        help="Only process this source (repeatable)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Analyze but don't post to target channels",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """
    Run one pass over the configured sources.

    Returns:
        1 on configuration errors, 0 otherwise
    """
    args = parse_args(argv)
    setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))

    execution_id = new_execution_id("run")
    main_logger = create_execution_logger("main", execution_id)

    try:
        config = load_config(args.env_file)
    except ConfigError as e:
        main_logger.error(f"Configuration error: {e}", error=str(e))
        return 1

    # LOG_LEVEL may have come from the .env file
    setup_structured_logging(config.log_level)
    main_logger.log_execution_start(
        sources=list(config.news_sources), dry_run=args.dry_run
    )

    pipeline = build_pipeline(config, execution_id, dry_run=args.dry_run)
    metrics = pipeline.run(args.sources)

    main_logger.log_execution_end(success=not metrics["errors"], metrics=metrics)
    return 0


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Lambda handler for scheduled (EventBridge cron) invocation.

    The event may carry {"sources": [...], "dry_run": true}.

    Returns:
        Response dictionary with status and metrics
    """
    setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))
    execution_id = new_execution_id("lambda")
    main_logger = create_execution_logger("main", execution_id)
    main_logger.log_execution_start(
        lambda_request_id=getattr(context, "aws_request_id", "unknown"),
        lambda_function_name=getattr(context, "function_name", "unknown"),
    )

    event = event or {}
    try:
        config = load_config()
    except ConfigError as e:
        error_msg = f"Configuration error: {e}"
        main_logger.error(error_msg, error=str(e))
        main_logger.log_execution_end(success=False, error=error_msg)
        return {
            "statusCode": 500,
            "body": json.dumps(
                {
                    "message": "News Signal Bot execution failed",
                    "execution_id": execution_id,
                    "error": error_msg,
                }
            ),
        }

    pipeline = build_pipeline(
        config, execution_id, dry_run=bool(event.get("dry_run", False))
    )
    metrics = pipeline.run(event.get("sources"))

    main_logger.log_execution_end(success=not metrics["errors"], metrics=metrics)
    return {
        "statusCode": 200,
        "body": json.dumps(
            {
                "message": "News Signal Bot execution completed",
                "execution_id": execution_id,
                "metrics": metrics,
            }
        ),
    }


if __name__ == "__main__":
    sys.exit(main())
