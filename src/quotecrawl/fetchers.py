"""
Page fetchers. Each one turns (url, mode) into a raw body or raises a FetchError subclass.
Retries for transient HTTP failures live here, never in the crawl loop.
"""
from __future__ import annotations

import contextlib
import json
import logging
import random
import threading
from typing import Any, Dict, Iterator, Protocol

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .envelope import looks_like_json
from .errors import ContentNotFoundError, FetchTimeoutError, HttpStatusError, MalformedBodyError, NetworkError
from .models import Config, FetchMode

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14.2; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
]

QUOTE_SELECTOR = "a.b-qt"
BLOCKED_RESOURCE_TYPES = {"image", "font", "media", "stylesheet"}
BLOCKED_HOSTS = ("google-analytics", "googletagmanager", "facebook", "doubleclick", "adsense")


class Fetcher(Protocol):
    def fetch(self, url: str, mode: FetchMode) -> str:
        ...


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def pick_proxy_url(proxy_configuration: Any) -> str | None:
    """Choose one proxy URL from an opaque proxy configuration, if it names any.

    Understands a plain URL string, {"proxyUrl": ...} and {"proxyUrls": [...]};
    anything else means no proxy.
    """
    if not proxy_configuration:
        return None
    if isinstance(proxy_configuration, str):
        return proxy_configuration
    if isinstance(proxy_configuration, dict):
        urls = proxy_configuration.get("proxyUrls") or []
        if isinstance(urls, list) and urls:
            return str(random.choice(urls))
        if proxy_configuration.get("proxyUrl"):
            return str(proxy_configuration["proxyUrl"])
    return None


class HttpFetcher:
    """Static and API fetches over a requests Session with urllib3 retries."""

    def __init__(self, timeout: int = 20, max_retries: int = 1, proxy_configuration: Any = None) -> None:
        self.timeout = timeout
        self.proxy_configuration = proxy_configuration
        self._local = threading.local()
        self._retries = Retry(
            total=max_retries,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )

    @property
    def session(self) -> requests.Session:
        # Sessions are not thread-safe; one per worker thread.
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=self._retries)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
            self._local.session = session
        return session

    def _headers(self, mode: FetchMode) -> Dict[str, str]:
        headers = {"User-Agent": random_user_agent(), "Accept-Language": "en-US,en;q=0.9"}
        if mode is FetchMode.API:
            headers["Accept"] = "application/json, text/javascript, */*; q=0.01"
            headers["X-Requested-With"] = "XMLHttpRequest"
        else:
            headers["Accept"] = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"
        return headers

    def fetch(self, url: str, mode: FetchMode) -> str:
        """GET the URL and return its body.

        Raises:
            FetchTimeoutError: on connect/read timeouts.
            HttpStatusError: on a non-2xx response.
            NetworkError: on any other transport failure.
            MalformedBodyError: in API mode when the body is not JSON.
        """
        proxy = pick_proxy_url(self.proxy_configuration)
        proxies = {"http": proxy, "https": proxy} if proxy else None
        try:
            response = self.session.get(url, headers=self._headers(mode), timeout=self.timeout, proxies=proxies)
        except requests.Timeout as exc:
            raise FetchTimeoutError(url, f"Timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise NetworkError(url, f"Request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise HttpStatusError(url, response.status_code)

        body = response.text
        if mode is FetchMode.API:
            if not looks_like_json(body):
                raise MalformedBodyError(url, "API response is not JSON")
            try:
                json.loads(body)
            except ValueError as exc:
                raise MalformedBodyError(url, "API response is not valid JSON") from exc
        logging.debug("Fetched %s (%s, %s bytes)", url, mode.value, len(body))
        return body


class RenderedFetcher:
    """Browser fetches through Playwright (headless Firefox).

    Playwright's sync API is bound to the thread that started it, so every fetch runs in
    its own short-lived browser; that keeps the fetcher usable from worker threads.
    """

    def __init__(
        self,
        wait_seconds: float = 12.0,
        navigation_timeout_seconds: float = 30.0,
        proxy_configuration: Any = None,
        headless: bool = True,
    ) -> None:
        self.wait_seconds = wait_seconds
        self.navigation_timeout_seconds = navigation_timeout_seconds
        self.proxy_configuration = proxy_configuration
        self.headless = headless

    @staticmethod
    def _block_resources(route) -> None:
        request = route.request
        if request.resource_type in BLOCKED_RESOURCE_TYPES or any(host in request.url for host in BLOCKED_HOSTS):
            route.abort()
        else:
            route.continue_()

    @contextlib.contextmanager
    def _browser_page(self) -> Iterator[Any]:
        with sync_playwright() as playwright:
            launch_options: Dict[str, Any] = {"headless": self.headless}
            proxy = pick_proxy_url(self.proxy_configuration)
            if proxy:
                launch_options["proxy"] = {"server": proxy}
            browser = playwright.firefox.launch(**launch_options)
            try:
                context = browser.new_context(user_agent=random_user_agent())
                context.route("**/*", self._block_resources)
                yield context.new_page()
            finally:
                browser.close()

    def fetch(self, url: str, mode: FetchMode) -> str:
        """Render the page and return its HTML once the quote list is present.

        Raises:
            ContentNotFoundError: if the quote list does not appear within wait_seconds.
            FetchTimeoutError, HttpStatusError, NetworkError: on navigation failures.
        """
        try:
            with self._browser_page() as page:
                try:
                    response = page.goto(url, timeout=self.navigation_timeout_seconds * 1000, wait_until="domcontentloaded")
                except PlaywrightTimeoutError as exc:
                    raise FetchTimeoutError(url, f"Navigation timed out after {self.navigation_timeout_seconds}s") from exc
                if response is not None and response.status >= 400:
                    raise HttpStatusError(url, response.status)
                try:
                    page.wait_for_selector(QUOTE_SELECTOR, timeout=self.wait_seconds * 1000)
                except PlaywrightTimeoutError as exc:
                    raise ContentNotFoundError(url) from exc
                page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
                html = page.content()
        except PlaywrightError as exc:
            raise NetworkError(url, f"Browser error: {exc}") from exc
        logging.debug("Rendered %s (%s bytes)", url, len(html))
        return html


def build_fetchers(config: Config) -> Dict[FetchMode, Fetcher]:
    """Fetchers for every mode the config can use."""
    http = HttpFetcher(
        timeout=config.http_timeout,
        max_retries=config.max_retries,
        proxy_configuration=config.proxy_configuration,
    )
    fetchers: Dict[FetchMode, Fetcher] = {FetchMode.HTML: http}
    if config.prefer_api:
        fetchers[FetchMode.API] = http
    if config.markup_mode is FetchMode.RENDERED:
        fetchers[FetchMode.RENDERED] = RenderedFetcher(
            wait_seconds=config.render_wait_seconds,
            proxy_configuration=config.proxy_configuration,
        )
    return fetchers
