"""Estimate Logger for CWICR estimation.

Configures structlog and provides highly visible, formatted summaries
of assembled estimates that stand out in log streams.
"""

import logging
import structlog

from cwicr_estimation.models.estimate import Estimate

logger = structlog.get_logger()

# Visual markers
BANNER_WIDTH = 80
ESTIMATE_BANNER_CHAR = "█"
SKIPPED_BANNER_CHAR = "░"


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with level filtering, ISO timestamps and console output."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def log_estimate_summary(estimate: Estimate) -> None:
    """Log an assembled estimate with a prominent banner."""
    breakdown = estimate.cost_breakdown

    print("\n")
    print(ESTIMATE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(ESTIMATE_BANNER_CHAR, "ESTIMATE ASSEMBLED"))
    print(ESTIMATE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Project ID   : {estimate.project_id}")
    print(f"║ Created At   : {estimate.created_at.isoformat()}")
    print(f"║ Catalog      : {estimate.language} / {estimate.region}")
    print(f"║ Line Items   : {estimate.item_count}")
    print(f"║ Skipped      : {len(estimate.failures)}")
    print(f"║ Labor        : {breakdown.labor:,.2f}")
    print(f"║ Materials    : {breakdown.materials:,.2f}")
    print(f"║ Total        : {breakdown.total:,.2f}")
    for phase, amount in breakdown.by_phase.items():
        print(f"║   {phase:<20}: {amount:,.2f}")

    if estimate.failures:
        print(SKIPPED_BANNER_CHAR * BANNER_WIDTH)
        for failure in estimate.failures:
            print(f"║ ✗ {failure.element_id} {failure.element_name} [{failure.code}] {failure.reason}")

    print(ESTIMATE_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "estimate_summary_logged",
        project_id=estimate.project_id,
        item_count=estimate.item_count,
        skipped_count=len(estimate.failures),
        total=breakdown.total
    )
