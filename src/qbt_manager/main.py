#!/usr/bin/env python3
"""Main entry point for qBittorrent manager."""

import argparse
import logging
import signal
import sys
import time
from threading import Event
from datetime import datetime, timedelta

from . import __version__
from .config import Config, SettingsError
from .constants import SECONDS_PER_HOUR
from .manager import QbtManager


class PrettyFormatter(logging.Formatter):
    """Log formatter with level colours and symbols for console output."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    SYMBOLS = {
        'DEBUG': '·',
        'INFO': '✔',
        'WARNING': '⚠',
        'ERROR': '✗',
        'CRITICAL': '‼',
    }

    def __init__(self, use_colors=True, use_symbols=True):
        self.use_colors = use_colors and sys.stdout.isatty()
        self.use_symbols = use_symbols
        super().__init__()

    def format(self, record):
        levelname = record.levelname
        symbol = self.SYMBOLS.get(levelname, '•') if self.use_symbols else ''
        time_str = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        message = record.getMessage()

        if not self.use_colors:
            formatted = f"{time_str} {symbol} {levelname:8} {message}"
        else:
            color = self.COLORS.get(levelname, '')
            stamp = f"{self.DIM}{time_str}{self.RESET}"
            if record.levelno >= logging.WARNING:
                formatted = f"{stamp} {color}{symbol} {levelname:8}{self.RESET} {message}"
            elif record.name == '__main__':
                formatted = f"{stamp} {color}{symbol}{self.RESET} {self.BOLD}{message}{self.RESET}"
            else:
                formatted = f"{stamp} {color}{symbol}{self.RESET} {message}"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


# Configure logging with pretty formatter
def setup_logging(debug=False):
    """Set up logging with pretty formatting."""
    # Remove all existing handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    
    # Create console handler with pretty formatter
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(PrettyFormatter(use_colors=True, use_symbols=True))
    
    # Set levels
    if debug:
        root_logger.setLevel(logging.DEBUG)
        console_handler.setLevel(logging.DEBUG)
    else:
        root_logger.setLevel(logging.INFO)
        console_handler.setLevel(logging.INFO)
        # Suppress some noisy loggers
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('qbittorrentapi').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
    
    root_logger.addHandler(console_handler)


# Global event for manual run triggering
manual_run_event = Event()


def signal_handler(signum, frame):
    """Handle manual run trigger signal."""
    logger.info("Manual run triggered via signal")
    manual_run_event.set()


def print_banner():
    """Print a nice startup banner."""
    print("═" * 60)
    print(f"  qBittorrent Manager v{__version__}")
    print("═" * 60)


def run_cycle(config: Config) -> bool:
    """
    Run a single management pass.

    Args:
        config: Application configuration

    Returns:
        True if successful
    """
    try:
        logger.info("Starting run...")
        result = QbtManager(config).run()
        if result:
            logger.info("Run completed successfully")
        else:
            logger.warning("Run completed with issues")
        return result
    except Exception as e:
        logger.error(f"Run failed: {e}", exc_info=True)
        return False


# Set up module logger
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="qbt-manager",
        description="Prune, limit and feed torrents in qBittorrent according to tracker policy",
    )
    parser.add_argument("settings", nargs="?", help="Path to the JSON settings file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--dry-run", action="store_true", help="Log planned changes without applying them")
    parser.add_argument("--once", action="store_true", help="Run a single pass even if a schedule is configured")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    # Set up pretty logging
    setup_logging(debug=args.debug)

    # Print banner
    print_banner()

    # Load configuration
    try:
        config = Config.from_file(args.settings)
    except SettingsError as e:
        logger.error(str(e))
        sys.exit(1)

    if args.dry_run:
        config.behavior.dry_run = True
    if args.once:
        config.schedule.run_once = True

    # Log startup information
    if config.schedule.run_once:
        logger.info("Mode: Single run")
    else:
        signal.signal(signal.SIGUSR1, signal_handler)
        logger.info(f"Mode: Scheduled (every {config.schedule.interval_hours}h)")
        logger.info("Manual trigger: kill -USR1 <pid>")

    print("─" * 60)

    # Run once mode
    if config.schedule.run_once:
        success = run_cycle(config)
        if success:
            logger.info("Exiting successfully")
        else:
            logger.error("Exiting with errors")
        sys.exit(0 if success else 1)

    # Scheduled mode
    while True:
        try:
            run_cycle(config)

            # Calculate next run time
            next_run_seconds = config.schedule.interval_hours * SECONDS_PER_HOUR
            next_run_time = datetime.now() + timedelta(seconds=next_run_seconds)
            logger.info(f"Next run: {next_run_time.strftime('%H:%M:%S')} ({config.schedule.interval_hours}h)")
            print("─" * 60)

            # Wait for next run or manual trigger
            manual_run_event.clear()
            triggered = manual_run_event.wait(timeout=next_run_seconds)

            if triggered:
                logger.info("Manual run requested")
                print("─" * 60)

        except KeyboardInterrupt:
            logger.info("Shutdown requested - goodbye!")
            sys.exit(0)
        except Exception as e:
            logger.error(f"Unexpected error: {e}", exc_info=True)
            logger.info("Retrying in 60 seconds...")
            time.sleep(60)


if __name__ == "__main__":
    main()
