"""
Crawl orchestration: walk planned tasks, pick a fetch strategy per page, parse, dedupe,
enforce the item quota and hand accepted records to the sink.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Sequence, Set, Tuple

from tqdm import tqdm

from .envelope import unwrap_envelope
from .errors import ContentNotFoundError, FetchError, HttpStatusError, ParseError, PlanningError, SinkError
from .fetchers import Fetcher, build_fetchers
from .models import Config, CrawlStats, FetchMode, Origin, ParseContext, Record, Task
from .parser import QuotePageParser
from .planner import plan
from .sink import JsonlSink, Sink
from .tracking import Deduplicator, QuotaTracker
from .utils import build_identity_key, build_page_url

MARKUP_MODES = (FetchMode.HTML, FetchMode.RENDERED)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CrawlOrchestrator:
    """Runs one crawl. Deduplicator, quota and stop flag live for exactly one run.

    With max_concurrency == 1 tasks are processed one at a time in planner order. With more,
    distinct page sequences (one topic, the author, each start URL) run on a thread pool while
    pages inside a sequence stay in order, so an empty page still ends its own sequence.
    Every record is checked against the quota under a single lock, so the quota is never
    exceeded in either mode.
    """

    def __init__(
        self,
        config: Config,
        fetchers: Mapping[FetchMode, Fetcher],
        parser: Any = None,
        sink: Sink | None = None,
        deduplicator: Deduplicator | None = None,
        quota: QuotaTracker | None = None,
    ) -> None:
        self.config = config
        self.fetchers = dict(fetchers)
        self.parser = parser or QuotePageParser()
        self.sink = sink or JsonlSink(config.output_path)
        self.deduplicator = deduplicator or Deduplicator()
        self.quota = quota or QuotaTracker(config.max_items)
        self.markup_mode = self._resolve_markup_mode()
        self.stats = CrawlStats()
        self.stop_event = threading.Event()
        self._accept_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._ended: Set[Tuple[str, str]] = set()
        self._progress: tqdm | None = None

    def _resolve_markup_mode(self) -> FetchMode:
        if self.config.markup_mode in self.fetchers:
            return self.config.markup_mode
        for mode in MARKUP_MODES:
            if mode in self.fetchers:
                logging.warning("No %s fetcher configured; using %s pages instead", self.config.markup_mode.value, mode.value)
                return mode
        raise PlanningError("At least one markup fetcher (html or rendered) is required")

    def _count(self, name: str, amount: int = 1) -> None:
        with self._stats_lock:
            setattr(self.stats, name, getattr(self.stats, name) + amount)

    def _halt(self, reason: str) -> None:
        if not self.stop_event.is_set():
            logging.info("Stopping crawl: %s", reason)
        self.stop_event.set()
        if self.quota.is_exhausted():
            self.stats.halted = True

    def _should_stop(self) -> bool:
        if self.stop_event.is_set():
            return True
        if self.quota.is_exhausted():
            self._halt(f"quota reached ({self.quota.accepted_count}/{self.quota.max_items})")
            return True
        return False

    def modes_for(self, task: Task) -> List[FetchMode]:
        """Fetch modes to try for a task, in order. Only topic pages have an API shape."""
        if task.origin is Origin.TOPIC and self.config.prefer_api and FetchMode.API in self.fetchers:
            return [FetchMode.API, self.markup_mode]
        return [self.markup_mode]

    def _parse(self, markup: str, context: ParseContext) -> List[Dict[str, Any]]:
        """Run the page parser; a parser that raises yields an empty page instead."""
        try:
            return list(self.parser.parse(markup, context))
        except Exception as exc:  # any parser failure ends only this page's sequence
            failure = exc if isinstance(exc, ParseError) else ParseError(f"Parser failed on {context.source_url}: {exc}")
            self._count("parse_failures")
            logging.warning("%s (page %s)", failure, context.page)
            return []

    def _fetch_and_parse(self, task: Task) -> Tuple[List[Dict[str, Any]], ParseContext | None] | None:
        """Fetch a task's page (API first, one markup fallback) and parse it.

        Returns:
            (candidates, context) where candidates may be empty and context describes the page
            actually parsed (None when the rendered page never showed quotes), or None when
            every mode failed.
        """
        modes = self.modes_for(task)
        for index, mode in enumerate(modes):
            url = build_page_url(task, mode)
            try:
                body = self.fetchers[mode].fetch(url, mode)
            except ContentNotFoundError:
                logging.warning("No quotes found: %s", url)
                return [], None
            except FetchError as exc:
                if index + 1 < len(modes):
                    self._count("fallbacks")
                    logging.warning("%s fetch failed for %s (%s); falling back to %s", mode.value, url, exc, modes[index + 1].value)
                    continue
                if isinstance(exc, HttpStatusError) and exc.status_code == 403:
                    logging.warning("Blocked (403): %s - skipping", url)
                else:
                    logging.error("Failed: %s (page %s): %s", url, task.page, exc)
                return None

            self._count("pages_fetched")
            context = ParseContext(topic=task.topic or task.author, page=task.page, mode=mode, source_url=url)
            return self._parse(unwrap_envelope(body), context), context
        return None

    def _accept(self, candidates: Sequence[Dict[str, Any]], context: ParseContext) -> int:
        """Dedupe candidates in extraction order and push the new ones; returns how many were accepted."""
        with self._accept_lock:
            batch: List[Record] = []
            for candidate in candidates:
                if self.stop_event.is_set() or self.quota.is_exhausted():
                    break
                try:
                    record = Record.from_candidate(
                        candidate,
                        scraped_at=utc_now(),
                        source_mode=context.mode,
                        source_url=context.source_url,
                    )
                except (TypeError, ValueError) as exc:
                    logging.debug("Dropping invalid candidate %r: %s", candidate, exc)
                    continue
                key = build_identity_key(record.quote_url, record.quote, record.author)
                if not self.deduplicator.accept(key):
                    self._count("duplicates")
                    continue
                if not self.quota.try_acquire():
                    break
                batch.append(record)

            if batch:
                try:
                    self.sink.push(batch)
                except SinkError:
                    self.stop_event.set()
                    raise
                self._count("accepted", len(batch))
                if self._progress is not None:
                    self._progress.update(len(batch))
                logging.info("Progress: %s/%s quotes saved", self.quota.accepted_count, self.quota.max_items)
            return len(batch)

    def process_task(self, task: Task) -> None:
        if self._should_stop():
            return
        with self._stats_lock:
            ended = task.sequence_key in self._ended
        if ended:
            self._count("skipped_tasks")
            logging.debug("Skipping %s; pagination already ended for %s", task.url, task.sequence_key)
            return

        logging.info("Processing: %s (page: %s)", task.url, task.page)
        fetched = self._fetch_and_parse(task)
        if fetched is None:
            self._count("failed_tasks")
            return
        if self.stop_event.is_set():
            return
        candidates, context = fetched
        if not candidates or context is None:
            self._count("empty_pages")
            with self._stats_lock:
                self._ended.add(task.sequence_key)
            logging.info("No quotes extracted from %s; ending pagination for %s", task.url, task.sequence_key)
            return

        logging.info("Found %s quotes on page %s", len(candidates), task.page)
        self._accept(candidates, context)
        if self.quota.is_exhausted():
            self._halt(f"quota filled ({self.quota.accepted_count}/{self.quota.max_items})")

    def _run_sequence(self, tasks: Sequence[Task]) -> None:
        for task in tasks:
            if self._should_stop():
                return
            self.process_task(task)

    def run(self, tasks: Sequence[Task]) -> CrawlStats:
        """Process planned tasks until they run out, the quota fills, or the sink fails.

        Raises:
            SinkError: if accepted records cannot be delivered; records pushed earlier stay.
        """
        self._progress = tqdm(total=self.quota.max_items, desc="Collecting", unit="quote", disable=not self.config.show_progress)
        try:
            if self.config.max_concurrency <= 1:
                self._run_sequence(tasks)
            else:
                self._run_parallel(tasks)
        finally:
            self._progress.close()
            self._progress = None
        self.stats.halted = self.stats.halted or self.quota.is_exhausted()
        logging.info(
            "Completed: %s quotes saved, %s duplicates, %s pages fetched, %s failed tasks",
            self.stats.accepted,
            self.stats.duplicates,
            self.stats.pages_fetched,
            self.stats.failed_tasks,
        )
        return self.stats

    def _run_parallel(self, tasks: Sequence[Task]) -> None:
        sequences: Dict[Tuple[str, str], List[Task]] = {}
        for task in tasks:
            sequences.setdefault(task.sequence_key, []).append(task)
        if not sequences:
            return
        workers = min(self.config.max_concurrency, len(sequences))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._run_sequence, sequence) for sequence in sequences.values()]
            for future in as_completed(futures):
                try:
                    future.result()
                except Exception:
                    self.stop_event.set()
                    raise


def crawl(
    config: Config,
    fetchers: Mapping[FetchMode, Fetcher] | None = None,
    parser: Any = None,
    sink: Sink | None = None,
) -> CrawlStats:
    """Plan and run a crawl for the given config."""
    tasks = plan(config)
    orchestrator = CrawlOrchestrator(config, fetchers or build_fetchers(config), parser=parser, sink=sink)
    return orchestrator.run(tasks)
