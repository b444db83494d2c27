"""This module contains KeyValContextLogger - a LoggerAdapter emitting key-value records - and its factory"""

import json
import logging
import logging.config
import sys
from typing import Any, Tuple

DEFAULT_LOGGING_CONFIG = "config/logging_dict_config.json"


class KeyValContextLogger(logging.LoggerAdapter):
    """
    LoggerAdapter that renders every record as a series of key-value pairs.
    Context bound to the adapter (e.g. correlation id of a scenario step) is appended to every record.
    """

    def __init__(self, logger, **kwargs):
        super(KeyValContextLogger, self).__init__(logger, extra=kwargs)

    def bind(self, **kwargs) -> "KeyValContextLogger":
        """
        Create a sibling adapter on the same logger with context merged from self and kwargs

        :param kwargs: additional context
        :returns: new KeyValContextLogger; self is left untouched

        """
        return KeyValContextLogger(self.logger, **{**(self.extra or {}), **kwargs})

    def process(self, message, kwargs) -> Tuple[str, dict[str, Any]]:
        """
        Format the log message as key-value pairs, keeping reserved logging kwargs aside

        :param message: logging message
        :param kwargs: keyword arguments
        :returns: tuple of key-value formatted message and dict of reserved kwargs
        """
        reserved_keys = ["exc_info", "extra", "stack_info", "stacklevel"]
        reserved_kwargs = {k: kwargs.pop(k) for k in reserved_keys if k in kwargs}
        log_params = dict(event=message)
        log_params.update(kwargs)
        log_params.update(self.extra or {})
        kv_msg = " ".join([f'{k}="{v}"' for (k, v) in log_params.items()])
        return kv_msg, reserved_kwargs

    def error(self, msg, *args, **kwargs) -> None:
        """
        Log an error; when called while an exception is being handled, attach its type, message and traceback

        :param msg: error log message
        :param args: additional positional arguments to be delegated to super
        :param kwargs: keyword arguments to be delegated to super

        """
        _type, _value, _traceback = sys.exc_info()
        if _type is not None:
            kwargs["error_type"] = _type.__name__
            kwargs["error_message"] = _value
            super(KeyValContextLogger, self).exception(msg, *args, **kwargs)
        else:
            super(KeyValContextLogger, self).error(msg, *args, **kwargs)

    def exception(self, msg, *args, exc_info=False, **kwargs):
        """
        Delegates to method error of self

        :param msg: log message
        :param args: additional positional arguments to be delegated
        :param exc_info:  (Default value = False) Ignored
        :param kwargs: keyword arguments to be delegated

        """
        self.error(msg, *args, **kwargs)


def get_configured_logger(name: str, config_path: str = DEFAULT_LOGGING_CONFIG) -> KeyValContextLogger:
    """
    Create a KeyValContextLogger instance using given logger if configured in dict config JSON file

    :param name: str: name of logger in dict config
    :param config_path: str: path to JSON file containing dict config
    :returns: Instance of KeyValContextLogger
    :raises: ValueError: if given logger name is not configured in logging dict config

    """
    with open(config_path, encoding='utf-8') as fp:
        config_json = json.load(fp)
    if name not in config_json["loggers"]:
        raise ValueError(f"Logger not configured in {config_path}: {name}")
    logging.config.dictConfig(config_json)
    return KeyValContextLogger(logger=logging.getLogger(name))
