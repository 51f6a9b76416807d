"""
Contract package.

Provides the contract model, the loader and the schema validator.
"""

from .model import (
    ContractModel,
    PathItem,
    OperationSpec,
    Parameter,
    CONTRACT_URI,
    MISSING,
    X_NAME,
    X_PLACEHOLDER,
    X_TO,
    is_extension,
)
from .loader import load_contract, read_document, validate_document
from .validator import SchemaValidator, RequestInput, coerce_value

__all__ = [
    'ContractModel',
    'PathItem',
    'OperationSpec',
    'Parameter',
    'CONTRACT_URI',
    'MISSING',
    'X_NAME',
    'X_PLACEHOLDER',
    'X_TO',
    'is_extension',
    'load_contract',
    'read_document',
    'validate_document',
    'SchemaValidator',
    'RequestInput',
    'coerce_value',
]
