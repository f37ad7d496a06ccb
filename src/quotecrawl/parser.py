"""
Default page parser: pulls quote candidates out of listing markup with BeautifulSoup.
"""
import logging
from typing import Any, Dict, List
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from .models import ParseContext, unique_tags
from .utils import BASE_URL

CONTAINER_CLASSES = {"grid-item", "m-brick"}


def _text(node: Tag | None) -> str:
    return node.get_text(" ", strip=True) if node is not None else ""


def _absolute(href: str | None, base: str) -> str | None:
    if not href:
        return None
    return urljoin(base, href)


def _find_container(anchor: Tag) -> Tag | None:
    """Nearest enclosing quote card (grid item, masonry brick or article)."""
    for parent in anchor.parents:
        if parent.name == "article" or CONTAINER_CLASSES.intersection(parent.get("class") or []):
            return parent
    return None


class QuotePageParser:
    """Extract ordered candidate dicts from a listing page; never raises on bad markup."""

    def parse(self, markup: str, context: ParseContext) -> List[Dict[str, Any]]:
        if not markup or not markup.strip():
            return []
        try:
            soup = BeautifulSoup(markup, "html.parser")
            candidates = self._parse_cards(soup, context)
            if not candidates:
                candidates = self._parse_quote_blocks(soup, context)
        except Exception as exc:  # parser contract: malformed markup yields nothing
            logging.warning("Failed to parse %s (page %s): %s", context.source_url, context.page, exc)
            return []
        return candidates

    def _candidate(
        self,
        context: ParseContext,
        position: int,
        quote: str,
        author: str,
        author_url: str | None,
        quote_url: str | None,
        tags: List[str],
    ) -> Dict[str, Any]:
        return {
            "quote": quote,
            "author": author or None,
            "author_url": author_url,
            "quote_url": quote_url,
            "topic": context.topic,
            "tags": unique_tags(tags, context.topic),
            "page": context.page,
            "position": position,
            "source_mode": context.mode.value,
            "source_url": context.source_url,
            "language": "en",
        }

    def _parse_cards(self, soup: BeautifulSoup, context: ParseContext) -> List[Dict[str, Any]]:
        base = context.source_url or BASE_URL
        candidates: List[Dict[str, Any]] = []
        for anchor in soup.select("a.b-qt"):
            quote = _text(anchor)
            if not quote:
                continue
            author_el = anchor.parent.select_one("a.bq-aut") if anchor.parent is not None else None
            if author_el is None:
                author_el = anchor.find_next_sibling()
            container = _find_container(anchor)
            tag_links = container.select('a[href*="/topics/"]') if container is not None else []
            candidates.append(
                self._candidate(
                    context,
                    position=len(candidates) + 1,
                    quote=quote,
                    author=_text(author_el),
                    author_url=_absolute(author_el.get("href"), base) if author_el is not None else None,
                    quote_url=_absolute(anchor.get("href"), base),
                    tags=[_text(link) for link in tag_links],
                )
            )
        return candidates

    def _parse_quote_blocks(self, soup: BeautifulSoup, context: ParseContext) -> List[Dict[str, Any]]:
        """Fallback for plain `div.quote` listings."""
        base = context.source_url or BASE_URL
        candidates: List[Dict[str, Any]] = []
        for block in soup.find_all("div", class_="quote"):
            quote = _text(block.find("span", class_="text") or block.find("blockquote"))
            if not quote:
                continue
            author_el = block.find("small", class_="author") or block.find(class_="author")
            about = author_el.find_next_sibling("a") if author_el is not None else None
            permalink = block.find("a", class_="quote-link")
            candidates.append(
                self._candidate(
                    context,
                    position=len(candidates) + 1,
                    quote=quote,
                    author=_text(author_el),
                    author_url=_absolute(about.get("href"), base) if about is not None else None,
                    quote_url=_absolute(permalink.get("href"), base) if permalink is not None else None,
                    tags=[_text(tag) for tag in block.find_all("a", class_="tag")],
                )
            )
        return candidates
