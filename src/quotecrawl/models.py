from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

DEFAULT_CONFIG_PATH = Path("config/config.json")
DEFAULT_TOPIC = "motivational"


class Origin(str, Enum):
    TOPIC = "topic"
    AUTHOR = "author"
    START_URL = "start_url"


class FetchMode(str, Enum):
    RENDERED = "rendered"
    API = "api"
    HTML = "html"


@dataclass
class Config:
    topics: List[str] = field(default_factory=lambda: [DEFAULT_TOPIC])
    author: str | None = None
    start_urls: List[str] = field(default_factory=list)
    max_pages: int = 5
    max_items: int = 200
    prefer_api: bool = True
    proxy_configuration: Any = None
    markup_mode: FetchMode = FetchMode.HTML
    max_concurrency: int = 1
    http_timeout: int = 20
    max_retries: int = 1
    render_wait_seconds: float = 12.0
    log_level: str = "INFO"
    output_path: Path = Path("output/quotes.jsonl")
    show_progress: bool = True


@dataclass(frozen=True)
class Task:
    """One page to fetch. A following page is always a new Task."""

    url: str
    topic: str | None
    author: str | None
    page: int
    origin: Origin

    @property
    def sequence_key(self) -> Tuple[str, str]:
        return (self.origin.value, self.topic or self.author or self.url)


@dataclass(frozen=True)
class ParseContext:
    topic: str | None
    page: int
    mode: FetchMode
    source_url: str | None


def unique_tags(tags: Iterable[str], topic: str | None = None) -> List[str]:
    """Drop blanks and repeats keeping first-seen order; fall back to [topic] when empty."""
    seen: List[str] = []
    for tag in tags:
        cleaned = (tag or "").strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    if not seen and topic:
        return [topic]
    return seen


@dataclass(frozen=True)
class Record:
    quote: str
    author: str | None
    topic: str | None
    tags: Tuple[str, ...]
    quote_url: str | None
    page: int
    position: int
    source_mode: FetchMode
    source_url: str | None
    scraped_at: str
    author_url: str | None = None
    language: str = "en"

    @classmethod
    def from_candidate(
        cls,
        candidate: Dict[str, Any],
        scraped_at: str,
        source_mode: FetchMode | None = None,
        source_url: str | None = None,
    ) -> "Record":
        """Freeze a parser candidate into a Record stamped with its acceptance time.

        Args:
            candidate: Record-shaped dict produced by a page parser (no scraped_at).
            scraped_at: ISO-8601 timestamp assigned at acceptance.
            source_mode: Mode that fetched the page; overrides whatever the candidate claims.
            source_url: URL actually fetched; overrides the candidate's source_url.
        Returns:
            Validated Record with deduplicated tags (falling back to [topic]).
        Raises:
            ValueError: if the quote is empty, page/position are not positive, or no
                fetch mode is known.
        """
        quote = str(candidate.get("quote") or "").strip()
        if not quote:
            raise ValueError("Candidate quote is empty")
        page = int(candidate.get("page") or 0)
        position = int(candidate.get("position") or 0)
        if page < 1 or position < 1:
            raise ValueError(f"Candidate page/position must be >= 1 (got {page}/{position})")
        mode = source_mode or candidate.get("source_mode")
        if not mode:
            raise ValueError("Candidate has no source mode")
        topic = candidate.get("topic") or None
        return cls(
            quote=quote,
            author=candidate.get("author") or None,
            topic=topic,
            tags=tuple(unique_tags(candidate.get("tags") or (), topic)),
            quote_url=candidate.get("quote_url") or None,
            page=page,
            position=position,
            source_mode=FetchMode(mode),
            source_url=source_url or candidate.get("source_url") or None,
            scraped_at=scraped_at,
            author_url=candidate.get("author_url") or None,
            language=candidate.get("language") or "en",
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["tags"] = list(self.tags)
        payload["source_mode"] = self.source_mode.value
        return payload


@dataclass
class CrawlStats:
    """Counters for a single run, returned by the orchestrator."""

    accepted: int = 0
    duplicates: int = 0
    pages_fetched: int = 0
    empty_pages: int = 0
    failed_tasks: int = 0
    fallbacks: int = 0
    skipped_tasks: int = 0
    parse_failures: int = 0
    halted: bool = False
