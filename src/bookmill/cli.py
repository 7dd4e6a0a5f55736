"""Command-line interface for bookmill."""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

import yaml

from bookmill import __version__
from bookmill.exceptions import BookmillError, ConfigError, ProviderError, QualityCheckError
from bookmill.logging_config import get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_QUALITY = 2


def _provider_settings(config_path: Path | None, name: str):
    from bookmill.config import ProviderSettings, load_job

    if config_path:
        return load_job(config_path).providers.get(name) or ProviderSettings(name=name)
    return ProviderSettings(name=name)


def cmd_list_products(provider_name: str, config_path: Path | None = None) -> int:
    """List a provider's catalogue."""
    from bookmill.providers import get_provider

    try:
        provider = get_provider(provider_name, _provider_settings(config_path, provider_name))
        products = provider.list_products()
    except (BookmillError, FileNotFoundError) as e:
        logger.error("%s", e)
        return EXIT_ERROR

    if not products:
        logger.info("No products found.")
        return EXIT_OK
    logger.info("%s products:", provider_name)
    for product in products:
        product_id = product.get("id") or product.get("uid") or product.get("productUid", "?")
        title = product.get("name") or product.get("title", "")
        logger.info("  %s  %s", product_id, title)
    return EXIT_OK


def cmd_track(order_id: str, provider_name: str, config_path: Path | None = None) -> int:
    """Show the current status of an order."""
    from bookmill.providers import get_provider

    try:
        provider = get_provider(provider_name, _provider_settings(config_path, provider_name))
        order = provider.get_order(order_id)
    except (BookmillError, FileNotFoundError) as e:
        logger.error("%s", e)
        return EXIT_ERROR

    logger.info("Order %s (%s): %s", order.id, order.provider, order.status.value)
    logger.info("  Total: %.2f %s", order.cost.total, order.cost.currency)
    if order.tracking:
        logger.info("  Carrier: %s", order.tracking.carrier)
        logger.info("  Tracking: %s %s", order.tracking.tracking_number, order.tracking.tracking_url)
    return EXIT_OK


def cmd_validate(config_path: Path) -> int:
    """Load a job file and run pre-flight validation."""
    from bookmill.config import load_job
    from bookmill.validation import ValidationContext, validate_job

    try:
        job_file = load_job(config_path)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_ERROR
    except FileNotFoundError:
        logger.error("Job file not found: %s", config_path)
        return EXIT_ERROR

    job = job_file.job
    logger.info("Job file syntax is valid: %s", config_path)
    logger.info("  Project: %s, %d page(s)", job.project_id, len(job.pages))

    configured = [name for name, s in job_file.providers.items() if s.resolve_api_key()]
    result = validate_job(job, ValidationContext(configured_providers=configured))
    for warning in result.warnings:
        logger.warning("  %s", warning)
    for error in result.errors:
        logger.error("  %s", error)

    if not result.valid:
        logger.error("Validation failed with %d error(s)", len(result.errors))
        return EXIT_ERROR
    logger.info("Validation passed with %d warning(s)", len(result.warnings))
    return EXIT_OK


def _load_recipient(path: Path):
    from bookmill.models import Recipient

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ConfigError("Recipient file must contain a mapping", field="recipient")
    return Recipient.from_dict(data)


def cmd_produce(parsed: argparse.Namespace) -> int:
    """Produce the print file and optionally submit it."""
    from bookmill.config import load_job
    from bookmill.logging_config import set_job_context
    from bookmill.orchestrator import PrintOrchestrator
    from bookmill.providers import build_providers, get_provider

    try:
        job_file = load_job(parsed.config)
        job = job_file.job
        set_job_context(job.project_id)

        overrides = {}
        if parsed.output:
            overrides["output_path"] = str(parsed.output)
        elif not job.output_path:
            overrides["output_path"] = f"{job.project_id}.pdf"
        if parsed.no_quality_checks:
            overrides["quality_checks"] = False
        if parsed.auto_fix:
            overrides["auto_fix"] = True
        if overrides:
            job = replace(job, **overrides)

        recipient = _load_recipient(parsed.recipient) if parsed.recipient else None
        providers = build_providers(job_file.providers)
        if parsed.submit == "mock":
            providers.setdefault("mock", get_provider("mock"))
        orchestrator = PrintOrchestrator(job, providers=providers)
        result = orchestrator.run(
            provider=parsed.submit,
            recipient=recipient,
            pdf_url=parsed.pdf_url or "",
        )
    except QualityCheckError as e:
        logger.error("%s", e)
        logger.error("Quality report: %s", e.report.summary())
        return EXIT_QUALITY
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_ERROR
    except FileNotFoundError as e:
        logger.error("File not found: %s", e)
        return EXIT_ERROR
    except BookmillError as e:
        logger.error("%s", e)
        return EXIT_ERROR

    for fix in result.fixes:
        logger.info("Fixed page %d: %s", fix.page_number, fix.description)
    for warning in result.quality_check.warnings:
        logger.warning("Page %s: %s", warning.page_number, warning.message)

    if result.submission_error is not None:
        error = result.submission_error
        if isinstance(error, ProviderError) and error.raw_message:
            logger.error("Provider said: %s", error.raw_message)
        return EXIT_ERROR
    if result.order is not None:
        logger.info("Order %s submitted to %s (%s)", result.order.id, result.order.provider, result.order.status.value)
    return EXIT_OK


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bookm",
        description="Print production pipeline: quality-check, render and order photobooks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  bookm -c job.yaml                             Check and render the print PDF
  bookm -c job.yaml -o out/book.pdf --auto-fix  Fix what can be fixed, then render
  bookm -c job.yaml --validate                  Validate the job file only
  bookm -c job.yaml --submit printful --recipient to.yaml --pdf-url https://...
                                                Render and order
  bookm --track 12345 --provider printful       Show order status
  bookm --list-products gelato                  List a provider's catalogue

Exit codes: 0 ok, 1 error, 2 quality check failed.
""",
    )

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version information and exit",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to YAML job file",
    )

    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output PDF path (overrides job file)",
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate job file and exit",
    )

    parser.add_argument(
        "--no-quality-checks",
        action="store_true",
        help="Skip print quality checks",
    )

    parser.add_argument(
        "--auto-fix",
        action="store_true",
        help="Automatically fix auto-fixable warnings (bleed, colour gamut)",
    )

    # Ordering
    parser.add_argument(
        "--submit",
        metavar="PROVIDER",
        choices=["printful", "gelato", "mock"],
        help="Submit the rendered book to a provider",
    )

    parser.add_argument(
        "--recipient",
        type=Path,
        help="YAML/JSON file with the shipping recipient (used with --submit)",
    )

    parser.add_argument(
        "--pdf-url",
        help="Public URL of the uploaded print PDF (used with --submit)",
    )

    parser.add_argument(
        "--track",
        metavar="ORDER_ID",
        help="Show the status of an order and exit",
    )

    parser.add_argument(
        "--provider",
        choices=["printful", "gelato"],
        help="Provider for --track",
    )

    parser.add_argument(
        "--list-products",
        metavar="PROVIDER",
        choices=["printful", "gelato"],
        help="List a provider's products and exit",
    )

    # Logging options
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for verbose, -vv for debug)",
    )

    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress all output except errors",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write logs to file (includes all levels)",
    )

    return parser


def main(args: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    from bookmill.logging_config import setup_logging

    setup_logging(
        verbosity=parsed.verbose,
        quiet=parsed.quiet,
        log_file=parsed.log_file,
    )

    if parsed.version:
        logger.info("bookmill %s", __version__)
        return EXIT_OK

    if parsed.list_products:
        return cmd_list_products(parsed.list_products, parsed.config)

    if parsed.track:
        if not parsed.provider:
            logger.error("--track requires --provider")
            return EXIT_ERROR
        return cmd_track(parsed.track, parsed.provider, parsed.config)

    # Require a job file for other operations
    if not parsed.config:
        parser.print_help()
        return EXIT_ERROR

    if parsed.validate:
        return cmd_validate(parsed.config)

    if parsed.submit and not (parsed.recipient and parsed.pdf_url):
        logger.error("--submit requires --recipient and --pdf-url")
        return EXIT_ERROR

    return cmd_produce(parsed)


if __name__ == "__main__":
    sys.exit(main())
