import json

import pytest

from quotecrawl.envelope import unwrap_envelope
from quotecrawl.models import FetchMode, ParseContext, Record
from quotecrawl.parser import QuotePageParser


CARDS_HTML = """
<div class="grid-item">
  <div>
    <a class="b-qt" href="/quotes/walt_disney_131640">The way to get started is to quit talking and begin doing.</a>
    <a class="bq-aut" href="/authors/walt-disney-quotes">Walt Disney</a>
  </div>
  <div class="kw-box">
    <a href="/topics/motivational-quotes">Motivational</a>
    <a href="/topics/success-quotes">Success</a>
    <a href="/topics/motivational-quotes">Motivational</a>
  </div>
</div>
<div class="grid-item">
  <a class="b-qt" href="/quotes/empty">   </a>
  <a class="bq-aut" href="/authors/nobody-quotes">Nobody</a>
</div>
<article>
  <a class="b-qt" href="https://www.brainyquote.com/quotes/eleanor_roosevelt_100940">Do one thing every day that scares you.</a>
  <a class="bq-aut" href="/authors/eleanor-roosevelt-quotes">Eleanor Roosevelt</a>
</article>
"""


def _context(topic="motivation", page=2, mode=FetchMode.HTML):
    return ParseContext(topic=topic, page=page, mode=mode, source_url="https://www.brainyquote.com/topics/motivation-quotes_2")


def test_parse_quote_cards():
    candidates = QuotePageParser().parse(CARDS_HTML, _context())
    assert len(candidates) == 2

    first, second = candidates
    assert first["quote"] == "The way to get started is to quit talking and begin doing."
    assert first["author"] == "Walt Disney"
    assert first["author_url"] == "https://www.brainyquote.com/authors/walt-disney-quotes"
    assert first["quote_url"] == "https://www.brainyquote.com/quotes/walt_disney_131640"
    assert first["tags"] == ["Motivational", "Success"]
    assert first["page"] == 2
    assert first["source_mode"] == "html"
    assert first["topic"] == "motivation"

    # Blank quotes are skipped without leaving a gap in positions.
    assert [c["position"] for c in candidates] == [1, 2]
    assert second["author"] == "Eleanor Roosevelt"
    assert second["tags"] == ["motivation"]


def test_parse_quote_block_fallback():
    html = """
    <div class="quote">
      <span class="text">“Quote one.”</span>
      <small class="author">Author One</small> <a href="/author/Author-One">(about)</a>
      <div class="tags"><a class="tag">life</a><a class="tag">life</a><a class="tag">happy</a></div>
    </div>
    <div class="quote">
      <blockquote>“Quote two.”</blockquote>
      <span class="author">Author Two</span>
    </div>
    """
    context = ParseContext(topic=None, page=1, mode=FetchMode.RENDERED, source_url="https://quotes.example.com/")
    candidates = QuotePageParser().parse(html, context)

    assert [c["quote"] for c in candidates] == ["“Quote one.”", "“Quote two.”"]
    assert candidates[0]["tags"] == ["life", "happy"]
    assert candidates[0]["author_url"] == "https://quotes.example.com/author/Author-One"
    assert candidates[0]["quote_url"] is None
    assert candidates[1]["tags"] == []
    assert candidates[1]["source_mode"] == "rendered"


def test_parse_never_raises_on_junk():
    parser = QuotePageParser()
    assert parser.parse("", _context()) == []
    assert parser.parse("<<<>>> not really html", _context()) == []
    assert parser.parse('{"content": 1}', _context()) == []


def test_unwrap_envelope_shapes():
    markup = "<div class='grid-item'></div>"
    assert unwrap_envelope(markup) == markup
    assert unwrap_envelope(json.dumps({"content": markup})) == markup
    assert unwrap_envelope(json.dumps({"html": ["<a>1</a>", "<a>2</a>"]})) == "<a>1</a>\n<a>2</a>"
    assert unwrap_envelope(json.dumps(["<a>1</a>", "<a>2</a>"])) == "<a>1</a>\n<a>2</a>"
    # Unrecognized or broken envelopes fall back to the raw body.
    assert unwrap_envelope('{"status": "ok"}') == '{"status": "ok"}'
    assert unwrap_envelope("{not json") == "{not json"
    assert unwrap_envelope("") == ""


def test_record_from_candidate():
    candidate = QuotePageParser().parse(CARDS_HTML, _context())[0]
    record = Record.from_candidate(candidate, scraped_at="2024-01-01T00:00:00+00:00")
    payload = record.to_dict()
    assert payload["scraped_at"] == "2024-01-01T00:00:00+00:00"
    assert payload["tags"] == ["Motivational", "Success"]
    assert payload["source_mode"] == "html"
    assert payload["position"] == 1

    with pytest.raises(ValueError):
        Record.from_candidate({**candidate, "quote": "  "}, scraped_at="now")
    with pytest.raises(ValueError):
        Record.from_candidate({**candidate, "position": 0}, scraped_at="now")


def test_record_from_candidate_cleans_tags_and_needs_a_mode():
    bare = {"quote": "Keep going", "topic": "life", "tags": ["Grit", "Grit", ""], "page": 2, "position": 1}

    record = Record.from_candidate(bare, scraped_at="now", source_mode=FetchMode.API, source_url="https://x/api")
    assert record.tags == ("Grit",)
    assert record.source_mode is FetchMode.API
    assert record.source_url == "https://x/api"

    untagged = Record.from_candidate({**bare, "tags": []}, scraped_at="now", source_mode=FetchMode.HTML)
    assert untagged.tags == ("life",)

    # The fetch mode wins over whatever the candidate claims.
    claimed = Record.from_candidate({**bare, "source_mode": "html"}, scraped_at="now", source_mode=FetchMode.RENDERED)
    assert claimed.source_mode is FetchMode.RENDERED

    with pytest.raises(ValueError):
        Record.from_candidate(bare, scraped_at="now")
