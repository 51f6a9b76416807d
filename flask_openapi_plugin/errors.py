"""
Error types and the uniform error document.

Every failure the plugin renders uses one shape:
{
    "errors": [{"path": "/age", "message": "Missing property."}],
    "status": 400
}
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class ValidationError:
    """One validation problem, located by a JSON-pointer-like path."""
    path: str
    message: str

    def __str__(self):
        return f"{self.path}: {self.message}"

    def to_dict(self) -> Dict[str, str]:
        """Convert to dict for JSON serialization."""
        return {"path": self.path, "message": self.message}


class ContractError(Exception):
    """Raised when the contract cannot be loaded or turned into routes.

    Always fatal: the application must not start serving.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


EXCEPTION = {
    "errors": [{"message": "Internal server error.", "path": "/"}],
    "status": 500,
}

NOT_IMPLEMENTED = {
    "errors": [{"message": "Not implemented.", "path": "/"}],
    "status": 501,
}


def make_error_document(errors: Iterable[Any], status: int) -> Dict[str, Any]:
    """
    Build an error document.

    Args:
        errors: ValidationError objects or plain {path, message} dicts
        status: HTTP status code echoed in the body

    Returns:
        Dict ready for rendering
    """
    return {
        "errors": [
            e.to_dict() if isinstance(e, ValidationError) else dict(e)
            for e in errors
        ],
        "status": status,
    }


def canned_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """Return a private copy of EXCEPTION or NOT_IMPLEMENTED."""
    return copy.deepcopy(document)
