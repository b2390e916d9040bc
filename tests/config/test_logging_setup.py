"""Tests for structlog-backed logging configuration."""

from __future__ import annotations

import json
import logging

import pytest

from memctl.config.logging import configure_logging


class TestConfigureLogging:
    def test_default_level_is_warning(self) -> None:
        configure_logging()
        assert logging.getLogger("memctl").level == logging.WARNING

    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("memctl").level == logging.DEBUG

    def test_json_lines_on_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        logging.getLogger("memctl.tests").warning("tracker lock busy: %s", "x")
        captured = capsys.readouterr()
        assert captured.out == ""
        record = json.loads(captured.err.strip().splitlines()[-1])
        assert record["event"] == "tracker lock busy: x"
        assert record["level"] == "warning"
        assert record["logger"] == "memctl.tests"

    def test_debug_suppressed_without_verbose(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        logging.getLogger("memctl.tests").debug("hidden")
        assert "hidden" not in capsys.readouterr().err
