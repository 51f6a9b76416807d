"""
Rendering - format negotiation, the render primitive and the error stage.

Every view bound to a contract operation runs inside an ErrorRenderer dispatcher:

    handler raised HTTPException   -> propagates (abort() responses included)
    handler raised anything else   -> "Internal server error." (500)
    handler returned None          -> "Not implemented." (501)
    handler returned something     -> returned untouched

Views that are not bound to an operation never go through a dispatcher, so the rest of
the application keeps Flask's default behaviour.
"""

import logging
from typing import Any, Callable, Dict, Optional

import yaml
from flask import abort, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from .errors import EXCEPTION, NOT_IMPLEMENTED, canned_document


logger = logging.getLogger("openapi.render")

DEFAULT_FORMAT = "json"

MIMETYPES = {
    "json": "application/json",
    "yaml": "application/x-yaml",
}


def negotiated_format() -> str:
    """
    Pick the output format for the current request.

    An explicit g.format set by the application wins, then the Accept header,
    then "json".
    """
    fmt = g.get("format")
    if fmt in MIMETYPES:
        return fmt

    best = request.accept_mimetypes.best_match(
        list(MIMETYPES.values()), default=MIMETYPES[DEFAULT_FORMAT]
    )
    for name, mimetype in MIMETYPES.items():
        if mimetype == best:
            return name
    return DEFAULT_FORMAT


def render(fmt: str, data: Any, status: int = 200):
    """Render data in the given format with the given status."""
    if fmt == "yaml":
        return current_app.response_class(
            yaml.safe_dump(data, sort_keys=False, allow_unicode=True),
            status=status,
            mimetype=MIMETYPES["yaml"],
        )

    response = jsonify(data)
    response.status_code = status
    return response


def intercept(output: Any, exception: Optional[BaseException] = None) -> Optional[Dict[str, Any]]:
    """
    Decide whether a handler outcome needs a canned error document.

    Returns:
        The error document to render, or None when the handler output stands
    """
    if exception is not None:
        return canned_document(EXCEPTION)
    if output is None:
        return canned_document(NOT_IMPLEMENTED)
    return None


class ErrorRenderer:
    """Post-handler stage for views bound to contract operations.

    One dispatcher is registered per endpoint. It looks up the binding of
    the matched method, so operations sharing a name can still run
    different views.
    """

    def __init__(self, binding_for: Callable, orchestrator):
        self.binding_for = binding_for
        self.orchestrator = orchestrator
        self._dispatchers: Dict[str, Callable] = {}

    def dispatcher(self, endpoint: str, fallback: Optional[Callable] = None) -> Callable:
        """
        Return the view function to register for a qualified endpoint.

        fallback serves methods the contract does not declare, for handlers
        that had their own route before the contract annotated them.
        """
        if endpoint in self._dispatchers:
            return self._dispatchers[endpoint]

        def dispatch(*args, **kwargs):
            binding = self.binding_for(request.url_rule.endpoint, request.method)
            if binding is None:
                if fallback is not None:
                    return fallback(*args, **kwargs)
                abort(405)

            g.openapi_binding = binding
            g.openapi_orchestrator = self.orchestrator

            try:
                output = binding.target(*args, **kwargs)
            except HTTPException:
                raise
            except Exception as e:
                logger.exception(
                    "OpenAPI unhandled error %s %s", request.method, request.path
                )
                return self.render_document(intercept(None, e))

            document = intercept(output)
            if document is not None:
                return self.render_document(document)
            return output

        dispatch.__name__ = endpoint.rsplit(".", 1)[-1]
        dispatch.openapi_endpoint = endpoint
        self._dispatchers[endpoint] = dispatch
        return dispatch

    def render_document(self, document: Dict[str, Any]):
        return render(negotiated_format(), document, document["status"])
