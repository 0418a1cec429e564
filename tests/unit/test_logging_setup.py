import logging

import pytest

from mcs import logging_setup


@pytest.fixture
def clean_root():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield root
    for h in list(root.handlers):
        if h not in before:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
    logging_setup._ATTACHED_LOG_PATHS.clear()


@pytest.mark.unit
def test_file_handler_in_requested_dir(tmp_path, clean_root):
    path = logging_setup.setup_logging(level="WARNING", log_dir=tmp_path / "logs")

    assert path == tmp_path / "logs" / "mcs.log"
    logging.getLogger("mcs.test").warning("hello from test")
    for h in clean_root.handlers:
        h.flush()
    assert "hello from test" in path.read_text()
    assert logging.getLogger("mcs").level == logging.WARNING


@pytest.mark.unit
def test_repeated_setup_does_not_duplicate_handlers(tmp_path, clean_root):
    logging_setup.setup_logging(log_dir=tmp_path)
    count = len(clean_root.handlers)
    logging_setup.setup_logging(log_dir=tmp_path)
    assert len(clean_root.handlers) == count


@pytest.mark.unit
def test_explicit_log_file_wins(tmp_path, clean_root, monkeypatch):
    target = tmp_path / "custom" / "out.log"
    monkeypatch.setenv("MCS_LOG_FILE", str(target))
    assert logging_setup.setup_logging(log_dir=tmp_path / "ignored") == target


@pytest.mark.unit
def test_third_party_loggers_are_quieter():
    logging_setup.configure_third_party_loggers(logging.DEBUG)
    assert logging.getLogger("urllib3").level >= logging.INFO
