# =============================================================================
# main.py - CLI entry point
# =============================================================================

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from core.ad_client import ActiveDirectoryClient
from core.models import RunContext
from core.retry import RetryPolicy
from core.roster_builder import RosterBuilder
from utils.config import Config, DATE_MODES


def setup_logging(level: str = "INFO") -> str:
    """Setup logging configuration with both console and file output"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = log_dir / f"org_roster_builder_{timestamp}.log"

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Always log DEBUG to file
    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Console: {level.upper()}, File: DEBUG")
    logger.info(f"Log file: {log_filename}")

    return str(log_filename)


def build_parser(config: Config) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Organization Roster Builder")
    parser.add_argument('--output', default=config.roster_output,
                        help='Roster CSV file (created or resumed)')
    parser.add_argument('--cache', default=config.candidate_cache,
                        help='Candidate cache CSV file')
    parser.add_argument('--date-mode', choices=DATE_MODES, default=None,
                        help='Effective date for a new roster (default from DATE_MODE)')
    parser.add_argument('--include-optional', action='store_true',
                        help='Add Office, City, Title and Country columns')
    parser.add_argument('--verify-direct-reports', action='store_true',
                        help='Compare report counts with directReports in AD')
    parser.add_argument('--inject-faults', action='store_true',
                        help='Debug: fail the first call of each directory operation once')
    parser.add_argument('--flush-threshold', type=int, default=None,
                        help='Records per batch flush and checkpoint')
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    return parser


def run_build(args, config: Config) -> None:
    logger = logging.getLogger(__name__)

    context = RunContext(
        include_optional=args.include_optional or config.include_optional_properties,
        flush_threshold=args.flush_threshold or config.flush_threshold,
    )
    retry_policy = RetryPolicy(
        max_attempts=config.retry_attempts,
        delay_seconds=config.retry_delay_seconds,
        inject_faults=args.inject_faults or config.inject_faults,
        stats=context.stats,
    )

    with ActiveDirectoryClient(
            config.ad_server, config.ad_username,
            config.ad_password, config.base_dn
    ) as ad_client:
        if ad_client.connection is None:
            logger.error("No Active Directory session; aborting")
            sys.exit(1)

        builder = RosterBuilder(
            ad_client, context, args.output, args.cache, retry_policy,
            date_mode=args.date_mode or config.date_mode,
            verify_direct_reports=args.verify_direct_reports or config.verify_direct_reports,
        )
        summary = builder.build()

    logger.info("Roster build completed successfully!")
    logger.info(f"{summary.total_records} records in {args.output}")


def main():
    """Main CLI entry point"""
    config = Config()
    parser = build_parser(config)
    args = parser.parse_args()
    if args.flush_threshold is not None and args.flush_threshold < 1:
        parser.error("--flush-threshold must be at least 1")

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    if not config.validate_ad_config():
        missing_vars = config.get_missing_ad_vars()
        logger.error(f"Missing required environment variables: {missing_vars}")
        sys.exit(1)

    try:
        run_build(args, config)
    except Exception as e:
        logger.error(f"Roster build failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
