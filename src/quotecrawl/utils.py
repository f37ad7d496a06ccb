import hashlib
import re
from urllib.parse import urlencode, urlsplit, urlunsplit

from .models import DEFAULT_TOPIC, FetchMode, Origin, Task

BASE_URL = "https://www.brainyquote.com"


def normalize_topic(value: str | None) -> str:
    """Turn a user-supplied topic into the site's topic slug.

    Args:
        value: Raw topic such as "Motivation" or "life-quotes".
    Returns:
        Lowercased slug with whitespace runs joined by "-" and any trailing
        "-quotes"/"_quotes" removed; the default topic when nothing is left.
    """
    trimmed = str(value or "").strip().lower()
    slug = re.sub(r"\s+", "-", trimmed)
    slug = re.sub(r"[-_]quotes$", "", slug)
    return slug or DEFAULT_TOPIC


def normalize_author(value: str | None) -> str:
    """Turn an author name into the site's author slug ("Mark Twain" -> "mark_twain")."""
    trimmed = str(value or "").strip().lower()
    slug = re.sub(r"\s+", "_", trimmed)
    return re.sub(r"[^a-z0-9_]", "", slug)


def build_topic_url(topic: str, page: int = 1) -> str:
    base = f"{BASE_URL}/topics/{topic}-quotes"
    return f"{base}_{page}" if page > 1 else base


def build_author_url(author: str, page: int = 1) -> str:
    base = f"{BASE_URL}/authors/{author}-quotes"
    return f"{base}_{page}" if page > 1 else base


def build_api_url(topic: str, page: int = 1) -> str:
    base = f"{BASE_URL}/api/topics/{topic}"
    return f"{base}?{urlencode({'pg': page})}" if page > 1 else base


def build_page_url(task: Task, mode: FetchMode) -> str:
    """URL to fetch for a task in the given mode; start URLs are fetched as given."""
    if task.origin is Origin.START_URL:
        return task.url
    if task.origin is Origin.AUTHOR:
        return build_author_url(task.author or "", task.page)
    if mode is FetchMode.API:
        return build_api_url(task.topic or DEFAULT_TOPIC, task.page)
    return build_topic_url(task.topic or DEFAULT_TOPIC, task.page)


def clean_start_url(url: str) -> str:
    """Canonical form of a start URL, or "" when it is not an absolute http(s) URL.

    The host is lowercased, the fragment dropped and a trailing slash trimmed from
    non-root paths, so "https://Example.com/a/#top" and "https://example.com/a" match.
    """
    parsed = urlsplit(url.strip())
    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        return ""
    path = parsed.path.rstrip("/") or "/"
    return urlunsplit(parsed._replace(scheme=parsed.scheme.lower(), netloc=parsed.netloc.lower(), path=path, fragment=""))


def normalize_text(text: str) -> str:
    return " ".join(text.split()).lower()


def build_identity_key(quote_url: str | None, quote: str, author: str | None) -> str:
    """Run-wide identity of a quote.

    Args:
        quote_url: Permalink of the quote, when the page exposed one.
        quote: Quote text as extracted.
        author: Author name, if any.
    Returns:
        The stripped quote_url when present; otherwise a SHA-1 of the whitespace-collapsed,
        lowercased text and author so the same quote without a link still matches.
    """
    if quote_url and quote_url.strip():
        return quote_url.strip()
    composite = f"{normalize_text(quote)}::{(author or '').strip().lower()}"
    return hashlib.sha1(composite.encode("utf-8")).hexdigest()
