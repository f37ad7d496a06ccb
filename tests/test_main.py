import logging
from logging.handlers import RotatingFileHandler

import pytest

from quotecrawl.main import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_writes_rotating_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "crawl.log"

    root = setup_logging("info", log_file=log_file)

    file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].level == logging.INFO
    consoles = [h for h in root.handlers if not isinstance(h, RotatingFileHandler)]
    assert [h.level for h in consoles] == [logging.ERROR]
    assert logging.getLogger("urllib3").level == logging.WARNING

    logging.debug("hidden detail")
    logging.info("Processing: %s (page: %s)", "https://example.com", 1)
    file_handlers[0].flush()
    text = log_file.read_text(encoding="utf-8")
    assert "[INFO    ] Processing: https://example.com (page: 1)" in text
    assert "hidden detail" not in text
