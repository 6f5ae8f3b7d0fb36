from __future__ import annotations

import logging

from vinotree.logging_utils import get_logger


def test_get_logger_attaches_one_handler_and_stops_propagation() -> None:
    name = "vinotree.tests.logging"
    first = get_logger(name)
    second = get_logger(name)

    assert first is second
    assert len(first.handlers) == 1
    assert first.propagate is False
    assert first.level == logging.INFO


def test_get_logger_emits_once_when_root_is_configured(capsys) -> None:
    root = logging.getLogger()
    root_handler = logging.StreamHandler()
    root.addHandler(root_handler)
    try:
        get_logger("vinotree.tests.emit").info("split ready")
    finally:
        root.removeHandler(root_handler)

    captured = capsys.readouterr()
    assert captured.err.count("split ready") == 1
