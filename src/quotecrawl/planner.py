"""
Source planning: expand a Config into the ordered list of page tasks.
Pure function of its input; performs no I/O.
"""
import logging
from typing import List

from .errors import PlanningError
from .models import Config, Origin, Task
from .utils import build_author_url, build_topic_url, clean_start_url, normalize_author, normalize_topic


def plan(config: Config) -> List[Task]:
    """Build tasks in crawl order: topic pages, then author pages, then start URLs.

    Args:
        config: Validated crawl configuration.
    Returns:
        Tasks for pages 1..max_pages of every distinct topic, the same page range for the
        author when one is given, and one page-1 task per distinct start URL.
    Raises:
        PlanningError: if max_pages is not positive or a start URL is not http(s).
    """
    if config.max_pages < 1:
        raise PlanningError("max_pages must be a positive integer")

    tasks: List[Task] = []

    topics: List[str] = []
    for raw_topic in config.topics or [None]:
        topic = normalize_topic(raw_topic)
        if topic not in topics:
            topics.append(topic)

    for topic in topics:
        for page in range(1, config.max_pages + 1):
            tasks.append(Task(url=build_topic_url(topic, page), topic=topic, author=None, page=page, origin=Origin.TOPIC))

    if config.author:
        author = normalize_author(config.author)
        if author:
            for page in range(1, config.max_pages + 1):
                tasks.append(
                    Task(url=build_author_url(author, page), topic=None, author=author, page=page, origin=Origin.AUTHOR)
                )
        else:
            logging.warning("Author %r normalizes to an empty slug; skipping author pages", config.author)

    start_urls: List[str] = []
    for raw_url in config.start_urls:
        url = clean_start_url(raw_url)
        if not url:
            raise PlanningError(f"Start URL must be http(s) and valid: {raw_url!r}")
        if url in start_urls:
            logging.debug("Dropping repeated start URL %s", raw_url)
            continue
        start_urls.append(url)
        tasks.append(Task(url=url, topic=None, author=None, page=1, origin=Origin.START_URL))

    logging.info("Planned %s tasks (%s topics, author=%s, %s start URLs)", len(tasks), len(topics), bool(config.author), len(start_urls))
    return tasks
