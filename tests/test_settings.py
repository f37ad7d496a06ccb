import json
from pathlib import Path

import pytest

from quotecrawl.errors import PlanningError
from quotecrawl.models import FetchMode
from quotecrawl.settings import config_from_mapping, load_config


def test_load_config_with_all_fields(tmp_path: Path) -> None:
    cfg = {
        "topic": ["Motivation", "  ", "life"],
        "author": "  Mark Twain ",
        "startUrls": ["https://example.com/a", {"url": "https://example.com/b"}, {"url": ""}],
        "maxPages": 3,
        "maxItems": 40,
        "preferApi": False,
        "proxyConfiguration": {"proxyUrls": ["http://proxy:8000"]},
        "markupMode": "rendered",
        "maxConcurrency": 3,
        "httpTimeout": 5,
        "maxRetries": 0,
        "renderWaitSeconds": 10,
        "logLevel": "debug",
        "outputPath": "out/quotes.jsonl",
        "showProgress": False,
    }
    cfg_path = tmp_path / "config.json"
    cfg_path.write_text(json.dumps(cfg), encoding="utf-8")

    loaded = load_config(cfg_path)

    assert loaded.topics == ["Motivation", "life"]
    assert loaded.author == "Mark Twain"
    assert loaded.start_urls == ["https://example.com/a", "https://example.com/b"]
    assert loaded.max_pages == 3
    assert loaded.max_items == 40
    assert loaded.prefer_api is False
    assert loaded.proxy_configuration == {"proxyUrls": ["http://proxy:8000"]}
    assert loaded.markup_mode is FetchMode.RENDERED
    assert loaded.max_concurrency == 3
    assert loaded.http_timeout == 5
    assert loaded.max_retries == 0
    assert loaded.render_wait_seconds == 10.0
    assert loaded.log_level == "DEBUG"
    assert loaded.output_path.name == "quotes.jsonl"
    assert loaded.show_progress is False


def test_load_config_defaults(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.json"
    cfg_path.write_text(json.dumps({}), encoding="utf-8")

    loaded = load_config(cfg_path)

    assert loaded.topics == ["motivational"]
    assert loaded.author is None
    assert loaded.start_urls == []
    assert loaded.max_pages == 5
    assert loaded.max_items == 200
    assert loaded.prefer_api is True
    assert loaded.markup_mode is FetchMode.HTML
    assert loaded.max_concurrency == 1


def test_snake_case_aliases_and_single_topic():
    loaded = config_from_mapping({"topics": "Love", "max_pages": 2, "start_urls": ["https://x.test/"]})
    assert loaded.topics == ["Love"]
    assert loaded.max_pages == 2
    assert loaded.start_urls == ["https://x.test/"]


@pytest.mark.parametrize(
    "data",
    [
        {"maxPages": 0},
        {"maxItems": "many"},
        {"topic": 5},
        {"author": ["a"]},
        {"startUrls": "https://example.com"},
        {"startUrls": [42]},
        {"markupMode": "api"},
        {"markupMode": "pdf"},
        {"maxConcurrency": 99},
        {"maxRetries": -1},
        {"renderWaitSeconds": 0},
        {"logLevel": "LOUD"},
    ],
)
def test_invalid_values_raise_planning_error(data):
    with pytest.raises(PlanningError):
        config_from_mapping(data)


def test_load_config_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(PlanningError):
        load_config(broken)

    listing = tmp_path / "list.json"
    listing.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(listing)
