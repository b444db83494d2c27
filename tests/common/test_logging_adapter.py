import json
import logging
from io import StringIO
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from common.logging_adapter import KeyValContextLogger, get_configured_logger

LOGGING_CONFIG = Path(__file__).parents[2] / "config" / "logging_dict_config.json"


@pytest.fixture
def log_config():
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(message)s"
            }
        },
        "handlers": {
            "default": {
                "level": "INFO",
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout"
            }
        },
        "loggers": {
            "test": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False
            }
        }
    }


def test_simple_log(log_stream, string_logger):
    string_logger.extra = {"correlation_id": 1234}
    string_logger.info("log 1", key=2)
    expected = "level=INFO logger=string_logger event=\"log 1\" key=\"2\" correlation_id=\"1234\"\n"
    assert log_stream.getvalue() == expected


def test_bind_merges_context_without_touching_parent(log_stream, string_logger):
    string_logger.extra = {"correlation_id": "c1"}
    child = string_logger.bind(step=3)
    assert isinstance(child, KeyValContextLogger)
    assert child.logger is string_logger.logger
    child.warning("bound")
    string_logger.info("parent")
    assert log_stream.getvalue() == (
        'level=WARNING logger=string_logger event="bound" correlation_id="c1" step="3"\n'
        'level=INFO logger=string_logger event="parent" correlation_id="c1"\n')


def test_error_log(log_stream, string_logger):
    string_logger.extra = dict()
    try:
        try:
            raise KeyError("inner error")
        except KeyError as e:
            raise ValueError("outer error") from e
    except ValueError:
        string_logger.error("found errors", nesting=2)
    actual = log_stream.getvalue()
    assert actual.startswith(
        'level=ERROR logger=string_logger event="found errors" nesting="2" error_type="ValueError" '
        'error_message="outer error"\nTraceback (most recent call last):')
    assert ' raise KeyError("inner error")' in actual
    assert ' raise ValueError("outer error") from e' in actual
    assert '\nKeyError: \'inner error\'\n' in actual
    assert '\nValueError: outer error\n' in actual


def test_error_log_outside_except(log_stream, string_logger):
    string_logger.exception("no active exception", code=7)
    assert log_stream.getvalue() == 'level=ERROR logger=string_logger event="no active exception" code="7"\n'


def test_get_configured_logger_failure(log_config, mocker: MockerFixture):
    mocker.patch("builtins.open").return_value = StringIO(json.dumps(log_config))
    with pytest.raises(ValueError) as e_info:
        get_configured_logger("any_logger", "any/path.json")
    assert e_info.value.args[0] == 'Logger not configured in any/path.json: any_logger'


def test_get_configured_logger_success(log_config, mocker: MockerFixture):
    mocker.patch("builtins.open").return_value = StringIO(json.dumps(log_config))
    config_patch = mocker.patch("common.logging_adapter.logging.config.dictConfig")
    logger_patch = mocker.patch("common.logging_adapter.logging.getLogger")
    logger_patch.return_value = mocker.MagicMock()

    actual = get_configured_logger("test", "any/path.json")
    assert config_patch.called
    assert config_patch.call_args[0][0] == log_config
    assert isinstance(actual, KeyValContextLogger)
    assert actual.logger is logger_patch.return_value


@pytest.mark.parametrize("name", ["NotificationHub", "RatesScenario", "PaymentConsole"])
def test_shipped_config_has_component_loggers(name, mocker: MockerFixture):
    mocker.patch("common.logging_adapter.logging.config.dictConfig")
    actual = get_configured_logger(name, str(LOGGING_CONFIG))
    assert actual.logger is logging.getLogger(name)
