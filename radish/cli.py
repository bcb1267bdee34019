from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .config import Settings, find_config
from .events import EventCalendar
from .prompt_io import ConsolePromptIO, PromptIO
from .prompting import collect_decisions
from .scanner import SourceScanner
from .session import NormalizationSession
from .sort_order import ConsoleSortOrderPrompter, SortOrderRegistry

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}

logger = logging.getLogger(__name__)


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def configure_logging(level_name: str, warn_log_path: Path) -> WarningBufferHandler:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level_name.upper(), logging.INFO))

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(warn_buffer)

    file_handler = logging.FileHandler(warn_log_path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(file_handler)

    logging.getLogger("mutagen").setLevel(logging.WARNING)
    return warn_buffer


def tag_sources(settings: Settings, sources: list[Path], prompt_io: PromptIO) -> int:
    registry = SortOrderRegistry(settings.sort_order.path, ConsoleSortOrderPrompter(prompt_io))
    session = NormalizationSession(registry, artist_remap=settings.session.artist_remap)
    scanner = SourceScanner(settings.library)
    calendar = EventCalendar.load(settings.session.events_file)
    failures = 0
    for source in sources:
        source = source.expanduser().absolute()
        prompt_io.print("-" * 80)
        batch = scanner.collect(source)
        if batch is None:
            logger.error("File/folder does not exist or has no audio files: %s", source)
            failures += 1
            continue
        logger.info("Processing: %s (%d audio file(s))", source, len(batch.files))
        read = session.read_batch(batch)
        try:
            decisions = collect_decisions(prompt_io, read, settings.session, calendar)
        except BaseException:
            registry.persist()
            raise
        report = session.process(batch, read, decisions)
        for path, pending in report.pending.items():
            prompt_io.print(f"Apply manually to {path}: {pending}")
        failures += len(report.failed)
    return failures


def show_sort_orders(settings: Settings, artist: str | None, prompt_io: PromptIO) -> int:
    registry = SortOrderRegistry(settings.sort_order.path)
    artists = [artist] if artist else sorted(registry.entries)
    missing = 0
    for name in artists:
        entry = registry.get(name)
        if entry is None:
            prompt_io.print(f"{name}: no sort order stored")
            missing += 1
            continue
        rejected = ", ".join(entry.rejected) if entry.rejected else "-"
        prompt_io.print(f"{name}: {entry.primary} (rejected: {rejected})")
    return missing


def main() -> None:
    parser = argparse.ArgumentParser(description="Audio library metadata normalization")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    subparsers = parser.add_subparsers(dest="command", required=True)
    tag_parser = subparsers.add_parser("tag", help="Normalize the tags of album folders or files")
    tag_parser.add_argument("sources", nargs="+", type=Path, help="Album folders or audio files")
    sort_parser = subparsers.add_parser("sort-order", help="Show stored artist sort orders")
    sort_parser.add_argument("artist", nargs="?", default=None, help="Only show this artist")
    args = parser.parse_args()

    settings = Settings.load(find_config(args.config))
    warn_log_path = Path.cwd() / "radish-warnings.log"
    warn_buffer = configure_logging(args.log_level, warn_log_path)
    prompt_io = ConsolePromptIO()
    try:
        match args.command:
            case "tag":
                failures = tag_sources(settings, args.sources, prompt_io)
            case "sort-order":
                failures = show_sort_orders(settings, args.artist, prompt_io)
            case _:
                parser.error("Unknown command")
    finally:
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
            print(f"\nFull warning log: {warn_log_path}")
    if failures:
        raise SystemExit(1)
