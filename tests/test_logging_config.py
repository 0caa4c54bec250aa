"""Tests for collapsi/core/logging_config.py."""

import logging

import pytest

from collapsi.core.logging_config import (
    COMPACT_FORMAT,
    DEFAULT_FORMAT,
    DETAILED_FORMAT,
    STRUCTURED_FORMAT,
    LogContext,
    configure_third_party_loggers,
    get_logger,
    resolve_format,
    setup_logging,
)


@pytest.fixture
def fresh_logger_name(request):
    """A logger name unique to the test; its handlers are closed afterwards."""
    name = f"logcfg.{request.node.name}"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


class TestSetupLogging:
    def test_defaults(self, fresh_logger_name):
        logger = setup_logging(fresh_logger_name)
        assert isinstance(logger, logging.Logger)
        assert logger.name == fresh_logger_name
        assert logger.level == logging.INFO
        assert logger.propagate is False
        assert any(type(h) is logging.StreamHandler for h in logger.handlers)

    @pytest.mark.parametrize(
        "level, expected",
        [(logging.DEBUG, logging.DEBUG), ("warning", logging.WARNING), ("ERROR", logging.ERROR)],
    )
    def test_level_as_int_or_name(self, fresh_logger_name, level, expected):
        assert setup_logging(fresh_logger_name, level=level).level == expected

    def test_repeat_calls_do_not_stack_handlers(self, fresh_logger_name, tmp_path):
        log_file = tmp_path / "engine.log"
        first = setup_logging(fresh_logger_name, log_file=log_file)
        count = len(first.handlers)
        second = setup_logging(fresh_logger_name, log_file=log_file)
        assert first is second
        assert len(second.handlers) == count == 2

    def test_console_can_be_disabled(self, fresh_logger_name):
        logger = setup_logging(fresh_logger_name, console=False)
        assert logger.handlers == []

    def test_log_file_receives_records(self, fresh_logger_name, tmp_path):
        log_file = tmp_path / "nested" / "moves.log"
        logger = setup_logging(
            fresh_logger_name, log_file=log_file, console=False, format_style="compact"
        )
        logger.info("red moved 0,0 -> 0,1")
        for handler in logger.handlers:
            handler.flush()
        assert "red moved 0,0 -> 0,1" in log_file.read_text()

    def test_log_dir_names_the_file_after_the_logger(self, fresh_logger_name, tmp_path):
        setup_logging(fresh_logger_name, log_dir=tmp_path, console=False)
        assert (tmp_path / f"{fresh_logger_name}.log").exists()

    def test_propagate_can_be_enabled(self, fresh_logger_name):
        assert setup_logging(fresh_logger_name, propagate=True).propagate is True


class TestFormats:
    @pytest.mark.parametrize(
        "style, expected",
        [
            ("default", DEFAULT_FORMAT),
            ("compact", COMPACT_FORMAT),
            ("detailed", DETAILED_FORMAT),
            ("structured", STRUCTURED_FORMAT),
            ("nonexistent", DEFAULT_FORMAT),
        ],
    )
    def test_resolve_format(self, style, expected):
        assert resolve_format(style) == expected

    def test_detailed_format_has_location(self):
        assert "%(filename)s" in DETAILED_FORMAT
        assert "%(lineno)d" in DETAILED_FORMAT

    def test_compact_is_shorter_than_default(self):
        assert len(COMPACT_FORMAT) < len(DEFAULT_FORMAT)

    def test_structured_format_is_json_like(self):
        assert STRUCTURED_FORMAT.startswith("{")
        assert STRUCTURED_FORMAT.endswith("}")
        assert '"message"' in STRUCTURED_FORMAT


class TestHelpers:
    def test_get_logger_is_stable(self):
        assert get_logger("collapsi.rules") is get_logger("collapsi.rules")

    def test_quiets_noisy_packages(self):
        logging.getLogger("urllib3").setLevel(logging.NOTSET)
        configure_third_party_loggers(quiet=True)
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_verbose_packages_are_left_alone(self):
        logging.getLogger("urllib3").setLevel(logging.INFO)
        configure_third_party_loggers(quiet=True, verbose_packages=["urllib3"])
        assert logging.getLogger("urllib3").level == logging.INFO

    def test_quiet_false_changes_nothing(self):
        logging.getLogger("httpx").setLevel(logging.DEBUG)
        configure_third_party_loggers(quiet=False)
        assert logging.getLogger("httpx").level == logging.DEBUG


class TestLogContext:
    def test_restores_level(self, fresh_logger_name):
        logger = setup_logging(fresh_logger_name, level=logging.INFO)
        with LogContext(logger, logging.DEBUG) as inner:
            assert inner is logger
            assert logger.level == logging.DEBUG
        assert logger.level == logging.INFO

    def test_restores_level_on_exception(self, fresh_logger_name):
        logger = setup_logging(fresh_logger_name, level=logging.WARNING)
        with pytest.raises(RuntimeError):
            with LogContext(logger, logging.DEBUG):
                raise RuntimeError("boom")
        assert logger.level == logging.WARNING
