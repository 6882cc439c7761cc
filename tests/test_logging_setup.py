"""
Tests for the logging setup helpers.
"""

from __future__ import annotations

import logging

from statement_ingest.logging_setup import ROOT_LOGGER_NAME, configure_logging, get_logger


class TestConfigureLogging:
    def test_repeated_calls_do_not_stack_handlers(self) -> None:
        root = configure_logging(logging.WARNING)
        count = len(root.handlers)
        configure_logging(logging.WARNING)
        assert len(root.handlers) == count
        assert root.propagate is False

    def test_level_follows_latest_call(self) -> None:
        root = configure_logging(logging.DEBUG)
        assert root.level == logging.DEBUG
        configure_logging(logging.WARNING)
        assert root.level == logging.WARNING

    def test_file_sink(self, tmp_path) -> None:
        path = tmp_path / "import.log"
        root = configure_logging(logging.INFO, log_file=str(path))
        try:
            configure_logging(logging.INFO, log_file=str(path))
            file_handlers = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
            assert len(file_handlers) == 1

            get_logger("pipeline").info("Stored %d transaction(s)", 3)
            file_handlers[0].flush()
            text = path.read_text(encoding="utf-8")
            assert "statement_ingest.pipeline" in text
            assert "Stored 3 transaction(s)" in text
        finally:
            for handler in [h for h in root.handlers if isinstance(h, logging.FileHandler)]:
                root.removeHandler(handler)
                handler.close()
            configure_logging(logging.WARNING)


def test_get_logger_namespace() -> None:
    assert get_logger("dedup").name == f"{ROOT_LOGGER_NAME}.dedup"
