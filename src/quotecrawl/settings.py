"""
Config loading utilities.
Accepts the crawler's input object (camelCase keys) as well as snake_case aliases.
"""
import json
from pathlib import Path
from typing import Any, List, Mapping

from .errors import PlanningError
from .models import DEFAULT_CONFIG_PATH, DEFAULT_TOPIC, Config, FetchMode

MAX_CONCURRENCY_LIMIT = 8


def _pick(data: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return default


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise PlanningError(f"Config {name} must be an integer") from exc
    if number < 1:
        raise PlanningError(f"Config {name} must be a positive integer")
    return number


def _topics(raw: Any) -> List[str]:
    if raw is None:
        return [DEFAULT_TOPIC]
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raise PlanningError("Config topic(s) must be a string or a list of strings")
    topics = [str(item).strip() for item in raw if item is not None and str(item).strip()]
    return topics or [DEFAULT_TOPIC]


def _start_urls(raw: Any) -> List[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise PlanningError("Config startUrls must be a list of URLs or {url} objects")
    urls: List[str] = []
    for item in raw:
        if isinstance(item, str):
            url = item
        elif isinstance(item, Mapping):
            url = item.get("url") or ""
        else:
            raise PlanningError(f"Unsupported startUrls entry: {item!r}")
        if str(url).strip():
            urls.append(str(url).strip())
    return urls


def config_from_mapping(data: Mapping[str, Any]) -> Config:
    """Validate an input mapping and build a Config.

    Args:
        data: Input object. Recognized keys:
        - topic / topics: string or list of strings (default topic when absent/empty)
        - author: optional author name
        - startUrls / start_urls: list of URLs or {"url": ...} objects
        - maxPages / max_pages: int >= 1 (default 5)
        - maxItems / max_items: int >= 1 (default 200)
        - preferApi / prefer_api: bool (default true)
        - proxyConfiguration / proxy_configuration: passed through to fetchers untouched
        - markupMode / markup_mode: "html" or "rendered"
        - maxConcurrency / max_concurrency: 1..8 page sequences in flight
        - httpTimeout, maxRetries, renderWaitSeconds, logLevel, outputPath, showProgress
    Returns:
        Config with every value normalized.
    Raises:
        PlanningError: for malformed or invalid values.
    """
    if not isinstance(data, Mapping):
        raise PlanningError("Config must be a JSON object")

    topics = _topics(_pick(data, "topics", "topic"))

    author_raw = _pick(data, "author")
    if author_raw is not None and not isinstance(author_raw, str):
        raise PlanningError("Config author must be a string")
    author = author_raw.strip() if author_raw and author_raw.strip() else None

    start_urls = _start_urls(_pick(data, "startUrls", "start_urls"))
    max_pages = _positive_int(_pick(data, "maxPages", "max_pages", default=5), "maxPages")
    max_items = _positive_int(_pick(data, "maxItems", "max_items", default=200), "maxItems")

    max_concurrency = _positive_int(_pick(data, "maxConcurrency", "max_concurrency", default=1), "maxConcurrency")
    if max_concurrency > MAX_CONCURRENCY_LIMIT:
        raise PlanningError(f"Config maxConcurrency must not exceed {MAX_CONCURRENCY_LIMIT}")

    try:
        markup_mode = FetchMode(str(_pick(data, "markupMode", "markup_mode", default="html")).lower())
    except ValueError as exc:
        raise PlanningError("Config markupMode must be 'html' or 'rendered'") from exc
    if markup_mode is FetchMode.API:
        raise PlanningError("Config markupMode must be 'html' or 'rendered'")

    http_timeout = _positive_int(_pick(data, "httpTimeout", "http_timeout", default=20), "httpTimeout")

    try:
        max_retries = int(_pick(data, "maxRetries", "max_retries", default=1))
    except (TypeError, ValueError) as exc:
        raise PlanningError("Config maxRetries must be an integer") from exc
    if max_retries < 0:
        raise PlanningError("Config maxRetries must be zero or a positive integer")

    try:
        render_wait_seconds = float(_pick(data, "renderWaitSeconds", "render_wait_seconds", default=12))
    except (TypeError, ValueError) as exc:
        raise PlanningError("Config renderWaitSeconds must be a number") from exc
    if render_wait_seconds <= 0:
        raise PlanningError("Config renderWaitSeconds must be positive")

    log_level = str(_pick(data, "logLevel", "log_level", default="INFO")).upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
        raise PlanningError("Config log_level must be one of: DEBUG, INFO, WARNING, ERROR")

    output_path = Path(_pick(data, "outputPath", "output_path", default="output/quotes.jsonl")).expanduser()

    return Config(
        topics=topics,
        author=author,
        start_urls=start_urls,
        max_pages=max_pages,
        max_items=max_items,
        prefer_api=bool(_pick(data, "preferApi", "prefer_api", default=True)),
        proxy_configuration=_pick(data, "proxyConfiguration", "proxy_configuration"),
        markup_mode=markup_mode,
        max_concurrency=max_concurrency,
        http_timeout=http_timeout,
        max_retries=max_retries,
        render_wait_seconds=render_wait_seconds,
        log_level=log_level,
        output_path=output_path,
        show_progress=bool(_pick(data, "showProgress", "show_progress", default=True)),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> Config:
    """Load crawler configuration from a JSON file.

    Raises:
        FileNotFoundError: if the config file is missing.
        PlanningError: for malformed JSON or invalid values.
    """
    config_path = path.expanduser()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found at {config_path}")

    with config_path.open(encoding="utf-8") as config:
        try:
            data = json.load(config)
        except json.JSONDecodeError as exc:
            raise PlanningError(f"Config file {config_path} is not valid JSON") from exc

    return config_from_mapping(data)
