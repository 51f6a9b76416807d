"""
Plugin configuration.

Options are read, highest priority first, from:
1. Keyword arguments to OpenAPI(app, ...) / init_app(app, ...)
2. Flask config: OPENAPI_URL, OPENAPI_COERCE, OPENAPI_LOG_LEVEL
3. Defaults below

OPENAPI_LOG_LEVEL in the environment overrides the log level from any of them.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from flask import Blueprint, Flask
from pydantic import BaseModel, ConfigDict, Field


LOG_LEVEL_ENV = "OPENAPI_LOG_LEVEL"


class LogLevel(str, Enum):
    """Level used when logging invalid requests and responses."""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    FATAL = "fatal"

    @property
    def level(self) -> int:
        return {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warn": logging.WARNING,
            "warning": logging.WARNING,
            "error": logging.ERROR,
            "critical": logging.CRITICAL,
            "fatal": logging.CRITICAL,
        }[self.value]


class OpenAPIConfig(BaseModel):
    """Validated registration options."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    url: Union[Dict[str, Any], Path, str] = Field(description="Contract source")
    coerce: bool = True
    log_level: LogLevel = LogLevel.WARN
    route: Optional[Blueprint] = None

    @classmethod
    def from_app(cls, app: Flask, **options) -> "OpenAPIConfig":
        values = {
            "url": app.config.get("OPENAPI_URL"),
            "coerce": app.config.get("OPENAPI_COERCE"),
            "log_level": app.config.get("OPENAPI_LOG_LEVEL"),
        }
        values.update(options)

        env_level = os.environ.get(LOG_LEVEL_ENV)
        if env_level:
            values["log_level"] = env_level.lower()

        return cls(**{k: v for k, v in values.items() if v is not None})
