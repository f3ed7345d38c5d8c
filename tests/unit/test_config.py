"""Unit tests for settings, logging configuration and exceptions."""

import json
import logging

import pytest
from pydantic import ValidationError

from seacan.common.config.logging_config import (
    CustomJsonFormatter,
    configure_logging,
    get_build_logger,
    get_logging_config,
)
from seacan.common.config.settings import Settings
from seacan.common.exceptions import (
    BuildFailedException,
    ErrorCode,
    MalformedMessageException,
    ValidationException,
)
from seacan.common.dto.selection import NameSpec


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.cargo_path == "cargo"
        assert settings.message_format == "json-diagnostic-rendered-ansi"
        assert settings.max_parallel_listings >= 1

    def test_environment_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SEACAN_CARGO_PATH", "/opt/rust/bin/cargo")
        monkeypatch.setenv("SEACAN_MAX_PARALLEL_LISTINGS", "8")
        monkeypatch.setenv("SEACAN_LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.cargo_path == "/opt/rust/bin/cargo"
        assert settings.max_parallel_listings == 8
        assert settings.log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_message_format_must_be_json(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, message_format="human")

    def test_debug_forbidden_in_production(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="production", debug=True)


class TestLogging:
    """Tests for the JSON log formatter and build logger."""

    def test_json_formatter_adds_context(self) -> None:
        formatter = CustomJsonFormatter("%(message)s")
        record = logging.LogRecord("seacan.build", logging.INFO, __file__, 10, "built %s", ("demo",), None)
        record.package = "demo"
        record.target = "tool"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "built demo"
        assert payload["level"] == "INFO"
        assert payload["package"] == "demo"
        assert payload["target"] == "tool"

    def test_logging_config_file_handler(self, tmp_path) -> None:
        config = get_logging_config(log_dir=str(tmp_path / "logs"), json_format=False)

        assert config["handlers"]["file"]["filename"].endswith("seacan.log")
        assert config["loggers"]["seacan"]["handlers"] == ["console", "file"]
        assert (tmp_path / "logs").is_dir()

    def test_configure_logging_from_settings(self) -> None:
        seacan_logger = logging.getLogger("seacan")
        saved = (seacan_logger.level, seacan_logger.propagate, list(seacan_logger.handlers))
        try:
            configure_logging(Settings(_env_file=None, log_level="WARNING", log_json=False))

            assert seacan_logger.level == logging.WARNING
            assert not seacan_logger.propagate
            assert len(seacan_logger.handlers) == 1
        finally:
            seacan_logger.setLevel(saved[0])
            seacan_logger.propagate = saved[1]
            seacan_logger.handlers[:] = saved[2]

    def test_build_logger_stamps_context(self, caplog: pytest.LogCaptureFixture) -> None:
        adapter = get_build_logger(package="demo", build_mode="test", target="frob_a")

        with caplog.at_level(logging.INFO, logger="seacan.build"):
            adapter.info("starting")

        record = caplog.records[-1]
        assert record.package == "demo"
        assert record.build_mode == "test"
        assert record.target == "frob_a"


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_to_dict(self) -> None:
        error = MalformedMessageException(message="bad line", line_number=4, line="{")

        data = error.to_dict()

        assert data["error_code"] == ErrorCode.PROTOCOL_MALFORMED_MESSAGE.value
        assert data["details"]["line_number"] == 4
        assert data["exception_type"] == "MalformedMessageException"
        assert str(error) == "[E2001] bad line"

    def test_build_failed_details(self) -> None:
        error = BuildFailedException(message="failed", exit_code=101, stderr="error: x", command=["cargo", "build"])

        assert error.details["exit_code"] == 101
        assert error.details["command"] == "cargo build"
        assert error.details["error_count"] == 0
        assert error.errors == []

    def test_with_context_adds_details(self) -> None:
        error = BuildFailedException(message="failed").with_context(profile="release")

        assert error.details["profile"] == "release"
        assert error.to_dict()["details"]["profile"] == "release"

    def test_from_validation_error(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            NameSpec.exact("")

        error = ValidationException.from_validation_error(exc_info.value, "name spec")

        assert error.error_code == ErrorCode.VALIDATION_ERROR
        assert error.message.startswith("Invalid name spec:")
        assert error.details["error_count"] >= 1
        assert error.cause is exc_info.value
