"""Unit tests for logging setup."""

import logging
import logging.handlers
from argparse import Namespace
from collections.abc import Iterator
from pathlib import Path

import pytest

from eventseries.config.settings import EventSeriesSettings
from eventseries.utils.logging import (
    VERBOSE,
    AutoColoredFormatter,
    apply_command_line_overrides,
    get_log_level,
    get_logger,
    setup_logging,
)


@pytest.fixture
def settings(tmp_path: Path) -> EventSeriesSettings:
    return EventSeriesSettings(data_dir=tmp_path, config_file=tmp_path / "absent.yaml")


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    logger = logging.getLogger("eventseries")
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


class TestLogLevels:
    def test_get_log_level_when_verbose_then_custom_level(self) -> None:
        assert get_log_level("verbose") == VERBOSE == 15

    def test_get_log_level_when_standard_name_then_logging_constant(self) -> None:
        assert get_log_level("warning") == logging.WARNING

    def test_get_log_level_when_unknown_then_attribute_error(self) -> None:
        with pytest.raises(AttributeError):
            get_log_level("LOUD")


class TestSetupLogging:
    def test_setup_logging_when_console_only_then_single_stream_handler(
        self, settings: EventSeriesSettings
    ) -> None:
        logger = setup_logging(settings)

        assert logger.name == "eventseries"
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, AutoColoredFormatter)
        assert logger.level == logging.INFO

    def test_setup_logging_when_file_enabled_then_rotating_file_in_log_directory(
        self, settings: EventSeriesSettings
    ) -> None:
        settings.logging.file_enabled = True
        settings.logging.max_log_files = 3

        logger = setup_logging(settings)

        file_handlers = [
            h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].backupCount == 3
        assert Path(file_handlers[0].baseFilename).parent == settings.log_directory
        assert logger.level == logging.DEBUG

    def test_setup_logging_when_called_twice_then_handlers_not_duplicated(
        self, settings: EventSeriesSettings
    ) -> None:
        setup_logging(settings)
        logger = setup_logging(settings)

        assert len(logger.handlers) == 1

    def test_get_logger_when_short_name_then_namespaced(self) -> None:
        assert get_logger("cli").name == "eventseries.cli"
        assert get_logger("eventseries.store").name == "eventseries.store"


class TestCommandLineOverrides:
    def test_apply_overrides_when_quiet_then_console_errors_only(
        self, settings: EventSeriesSettings
    ) -> None:
        args = Namespace(log_level=None, verbose=False, quiet=True, log_dir=None, no_log_colors=True)

        apply_command_line_overrides(settings, args)

        assert settings.logging.console_level == "ERROR"
        assert settings.logging.console_colors is False

    def test_apply_overrides_when_log_dir_then_file_logging_enabled(
        self, settings: EventSeriesSettings, tmp_path: Path
    ) -> None:
        args = Namespace(log_level="DEBUG", log_dir=tmp_path / "logs")

        apply_command_line_overrides(settings, args)

        assert settings.logging.file_enabled is True
        assert settings.log_directory == tmp_path / "logs"
        assert settings.logging.file_level == "DEBUG"


class TestAutoColoredFormatter:
    def test_format_when_colors_disabled_then_plain_text(self) -> None:
        formatter = AutoColoredFormatter("%(levelname)s %(message)s", enable_colors=False)
        record = logging.LogRecord("eventseries", logging.ERROR, __file__, 1, "boom", None, None)

        assert formatter.format(record) == "ERROR boom"
