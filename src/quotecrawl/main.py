"""
Entry point for running the crawler.
Handles argument parsing, config loading, logging setup, and starting a run.
"""

import argparse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .crawler import crawl
from .errors import CrawlError
from .models import DEFAULT_CONFIG_PATH, Config
from .settings import load_config
from .sink import JsonlSink

LOG_FILE = Path("logs/crawl.log")
LOG_MAX_SIZE_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3
NOISY_LOGGERS = ("urllib3", "asyncio")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Crawl quote listings by topic, author, or start URL.")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to JSON input/config file (default: config/config.json)",
    )
    args = parser.parse_args(argv)

    config: Config = load_config(args.config)

    setup_logging(config.log_level)
    logging.debug("Loaded config from %s", args.config)
    logging.info(
        "Starting crawl: topics=%s author=%s maxPages=%s maxItems=%s",
        config.topics,
        config.author,
        config.max_pages,
        config.max_items,
    )

    try:
        stats = crawl(config, sink=JsonlSink(config.output_path))
    except CrawlError as exc:
        logging.error("Crawl aborted: %s", exc)
        return 1

    logging.info("Wrote %s quotes to %s", stats.accepted, config.output_path)
    return 0


def setup_logging(log_level: str, log_file: Path = LOG_FILE) -> logging.Logger:
    """Route crawler logs to a rotating file and errors to the console.

    Args:
        log_level: Minimum level written to the log file (DEBUG/INFO/WARNING/ERROR).
        log_file: Rotating log destination; parent directories are created.
    Returns:
        The configured root logger.
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter("%(asctime)s [%(levelname)-8s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    # stdout belongs to the progress bar
    console = logging.StreamHandler()
    console.setLevel(logging.ERROR)
    console.setFormatter(formatter)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_MAX_SIZE_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    file_handler.setFormatter(formatter)

    root = logging.getLogger()
    if root.hasHandlers():
        root.handlers.clear()
    root.setLevel(logging.DEBUG)
    root.addHandler(console)
    root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root


if __name__ == "__main__":
    raise SystemExit(main())
