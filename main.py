"""HN-Sort-Validator entry point.

Bootstrap and orchestration only - all functional code resides in /src.

Responsibilities:
    1. Load and validate configuration
    2. Initialize logging infrastructure (fail-fast on error)
    3. Run one validation pass, or serve the HTTP API
    4. Handle top-level exceptions with graceful shutdown

Usage:
    python main.py                 # one run, summary + reports
    python main.py --target 30     # override the article count
    python main.py --serve         # start the HTTP API
"""

import argparse
import asyncio
import sys
from typing import NoReturn

from loguru import logger

from config.settings import GlobalConfig, get_config
from src.exceptions import (
    ConfigValidationError,
    LoggingInitializationError,
    SortValidatorError,
)
from src.logger import configure_logging

EXIT_UNSORTED = 3


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Validate that the newest listing is sorted newest-first."
    )
    parser.add_argument("--target", type=int, default=None, help="Articles to collect")
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API")
    return parser.parse_args(argv)


def _validate_startup_requirements(config: GlobalConfig, target: int | None) -> None:
    """Pre-flight checks before any browser is launched.

    Raises:
        ConfigValidationError: If the requested target count is not positive.
        SystemExit: If the output directory cannot be created.
    """
    if target is not None and target < 1:
        raise ConfigValidationError(field="target", value=target, reason="must be positive")

    try:
        config.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.critical(
            "Failed to create output directory",
            output_dir=str(config.output_dir),
            error=str(exc),
        )
        sys.exit(1)

    logger.debug(
        "Startup validation complete",
        output_dir=str(config.output_dir),
        base_url=config.base_url,
    )


def _log_summary(result) -> None:
    """Log the run summary, every issue and a preview of the first articles."""
    validation = result.validation
    logger.info(
        "Validation results",
        total_articles=validation.total_articles,
        valid_transitions=validation.valid_transitions,
        issues=len(validation.issues),
        total_pages=result.total_pages,
    )

    if validation.is_valid:
        logger.info("SUCCESS: all articles are sorted from newest to oldest")
    else:
        for issue in validation.issues:
            logger.warning(
                "Next article is newer than current article",
                position=issue.position,
                current=f"#{issue.current.rank} - {issue.current.time} - {issue.current.title_snippet}",
                next=f"#{issue.next.rank} - {issue.next.time} - {issue.next.title_snippet}",
            )

    for index, article in enumerate(result.articles[:10], start=1):
        logger.info(
            "Preview",
            index=index,
            time=article.raw_time,
            title=article.title[:60],
        )


async def _run_pipeline(config: GlobalConfig, target: int | None = None) -> int:
    """Execute one run and write its reports.

    Returns:
        0 when the listing is sorted, EXIT_UNSORTED when violations were found.
    """
    from src.coordinator import RunCoordinator
    from src.reporter import ReportGenerator

    logger.info(
        "Pipeline execution started",
        app_name=config.app_name,
        environment=config.environment,
        base_url=config.base_url,
        target_count=target or config.target_count,
    )

    coordinator = RunCoordinator(config)
    result = await coordinator.run(target)

    _log_summary(result)

    reports = ReportGenerator(config).generate_all(result)
    logger.info(
        "Reports generated successfully",
        **{name: str(path) for name, path in reports.items()},
    )

    return 0 if result.validation.is_valid else EXIT_UNSORTED


def _serve(config: GlobalConfig) -> int:
    import uvicorn

    from src.api import create_app

    logger.info("Starting HTTP API", host=config.api_host, port=config.api_port)
    uvicorn.run(create_app(config), host=config.api_host, port=config.api_port)
    return 0


def _handle_fatal_error(exc: Exception) -> NoReturn:
    """Log a fatal error with as much context as is available and exit."""
    if isinstance(exc, SortValidatorError):
        logger.critical(
            "Fatal application error",
            error_type=type(exc).__name__,
            message=exc.message,
            context=exc.context,
        )
        sys.exit(1)

    logger.exception("Unexpected fatal error", error=str(exc))
    sys.exit(1)


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Returns:
        Exit code (0 sorted, 3 unsorted, 1 failure, 130 interrupted).
    """
    args = _parse_args(argv)

    try:
        config = get_config()
    except Exception as exc:
        # Cannot log yet - print to stderr
        print(f"FATAL: Configuration loading failed: {exc}", file=sys.stderr)
        return 1

    try:
        configure_logging(config)
    except LoggingInitializationError as exc:
        print(f"FATAL: {exc}", file=sys.stderr)
        return 1

    try:
        _validate_startup_requirements(config, args.target)
    except SystemExit:
        raise
    except ConfigValidationError as exc:
        logger.critical("Invalid arguments", message=exc.message)
        return 1

    if args.serve:
        return _serve(config)

    try:
        return asyncio.run(_run_pipeline(config, args.target))
    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user (Ctrl+C)")
        return 130
    except Exception as exc:
        _handle_fatal_error(exc)


if __name__ == "__main__":
    sys.exit(main())
