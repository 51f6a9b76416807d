"""
Validation orchestration around contract routes.

Handlers call into the orchestrator twice:

    @some_view
    def add_pet():
        if invalid_input():          # aborts with a 400 document by default
            return
        pet = create(get_param("body"))
        return reply(200, pet)       # 500 document if pet breaks the contract

Both calls use the operation bound to the matched route (g.openapi_binding,
set by the ErrorRenderer stage).
"""

import json
import logging
from typing import Any, List, Optional

from flask import abort, g, request

from .contracts.validator import RequestInput, SchemaValidator
from .errors import ValidationError, make_error_document
from .rendering import negotiated_format, render


logger = logging.getLogger("openapi.validation")

INBOUND = "inbound"
OUTBOUND = "outbound"


class ValidationOrchestrator:
    """Runs request/response validation and renders failures."""

    def __init__(self, validator: SchemaValidator, log_level: int = logging.WARNING):
        self.validator = validator
        self.log_level = log_level

    def spec(self) -> Optional[dict]:
        """Raw operation object of the current route, or None off-contract."""
        binding = g.get("openapi_binding")
        return binding.operation.spec if binding is not None else None

    def invalid_input(self, auto_render: bool = True) -> List[ValidationError]:
        """
        Validate the current request.

        Args:
            auto_render: Abort with a 400 error document on failure. Pass
                False to inspect the returned errors and respond yourself.

        Returns:
            List of ValidationError, empty when the request is valid. Valid,
            coerced values are available through get_param().
        """
        operation = _current_binding().operation
        errors, values = self.validator.validate_request(operation, request_input())

        if errors:
            self._log(INBOUND, errors)
            if auto_render:
                abort(render("json", make_error_document(errors, 400), 400))
            return errors

        g.openapi_params = values
        return errors

    def reply(self, status: int, output: Any):
        """
        Validate output and render it.

        A payload that breaks the contract is never sent: the response becomes
        a 500 error document, whatever status was asked for.
        """
        operation = _current_binding().operation
        errors = self.validator.validate_response(operation, status, output)

        if not errors:
            return render(negotiated_format(), output, status)

        self._log(OUTBOUND, errors)
        return render("json", make_error_document(errors, 500), 500)

    def _log(self, direction: str, errors: List[ValidationError]) -> None:
        logger.log(
            self.log_level,
            "OpenAPI %s %s %s %s",
            direction,
            request.method,
            request.path,
            json.dumps([e.to_dict() for e in errors]),
        )


def request_input() -> RequestInput:
    """Collect the current Flask request into a RequestInput."""
    body = request.get_json(silent=True)
    return RequestInput(
        path=request.view_args or {},
        query=request.args,
        headers=request.headers,
        form=request.form,
        cookies=request.cookies,
        body=body,
        has_body=body is not None,
    )


def _current_binding():
    binding = g.get("openapi_binding")
    if binding is None:
        raise RuntimeError("No OpenAPI operation is bound to this request")
    return binding


def _current_orchestrator() -> ValidationOrchestrator:
    orchestrator = g.get("openapi_orchestrator")
    if orchestrator is None:
        raise RuntimeError("No OpenAPI operation is bound to this request")
    return orchestrator


def invalid_input(auto_render: bool = True) -> List[ValidationError]:
    """Validate the current request, see ValidationOrchestrator.invalid_input."""
    return _current_orchestrator().invalid_input(auto_render=auto_render)


def reply(status: int, output: Any):
    """Validate and render a response, see ValidationOrchestrator.reply."""
    return _current_orchestrator().reply(status, output)


def op_spec() -> Optional[dict]:
    """Raw operation object of the current route."""
    binding = g.get("openapi_binding")
    return binding.operation.spec if binding is not None else None


def get_param(name: str, default: Any = None) -> Any:
    """Validated value of a declared parameter."""
    return g.get("openapi_params", {}).get(name, default)
