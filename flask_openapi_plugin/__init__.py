"""
OpenAPI / Swagger plugin for Flask.

Provides route synthesis from a contract, request/response validation and
uniform error documents.
"""

from .plugin import OpenAPI
from .config import OpenAPIConfig, LogLevel
from .errors import (
    ContractError,
    ValidationError,
    EXCEPTION,
    NOT_IMPLEMENTED,
    make_error_document,
)
from .routing import RouteBinding, RouteSynthesizer, compile_path
from .validation import (
    ValidationOrchestrator,
    invalid_input,
    reply,
    op_spec,
    get_param,
)

__version__ = "0.2.0"

__all__ = [
    'OpenAPI',
    'OpenAPIConfig',
    'LogLevel',
    'ContractError',
    'ValidationError',
    'EXCEPTION',
    'NOT_IMPLEMENTED',
    'make_error_document',
    'RouteBinding',
    'RouteSynthesizer',
    'compile_path',
    'ValidationOrchestrator',
    'invalid_input',
    'reply',
    'op_spec',
    'get_param',
]
