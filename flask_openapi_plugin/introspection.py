"""Serve the loaded contract at the mount root of the API."""

import copy

from flask import jsonify, request

from .contracts.model import ContractModel


HIDDEN_FIELDS = ("id",)


def make_spec_view(contract: ContractModel):
    """
    Build the view returning the contract.

    The shared document is never modified: each request gets its own copy
    with "host" set to the host:port the client used and internal fields
    removed.
    """

    def openapi_spec():
        spec = copy.deepcopy(contract.data)
        for key in HIDDEN_FIELDS:
            spec.pop(key, None)
        spec["host"] = request.host
        return jsonify(spec)

    return openapi_spec
