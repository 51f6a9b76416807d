"""
Schema validation for requests and responses.

Checks:
- Required parameters are present
- Parameter values match their declared schema (after optional coercion)
- Request bodies match their schema
- Response payloads match the schema declared for their status code

Every violation of one call is returned together; a validation call never
stops at the first problem. Structural problems (a broken $ref, an invalid
schema) raise instead of being reported as violations.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from jsonschema import Draft4Validator
from openapi_schema_validator import OAS30Validator, OAS31Validator

from ..errors import ValidationError
from .model import CONTRACT_URI, ContractModel, OperationSpec, Parameter


COLLECTION_SEPARATORS = {
    "csv": ",",
    "ssv": " ",
    "tsv": "\t",
    "pipes": "|",
}

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")

# OpenAPI 3.x schemas carry keywords of their own (nullable, discriminator)
SCHEMA_VALIDATORS = {
    "2.0": Draft4Validator,
    "3.0": OAS30Validator,
    "3.1": OAS31Validator,
}


@dataclass
class RequestInput:
    """Raw request data, independent of the web framework."""
    path: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, Any] = field(default_factory=dict)
    form: Mapping[str, Any] = field(default_factory=dict)
    cookies: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    has_body: bool = False


class SchemaValidator:
    """Validates requests/responses of one contract."""

    def __init__(self, contract: ContractModel, coerce: bool = True):
        self.contract = contract
        self.coerce = coerce
        self._validator_cls = SCHEMA_VALIDATORS[contract.version]
        self._validators: Dict[int, Any] = {}

    def validate_request(
        self,
        operation: OperationSpec,
        raw_input: RequestInput,
    ) -> Tuple[List[ValidationError], Dict[str, Any]]:
        """
        Validate all parameters of an operation.

        Returns:
            (errors, values) where values maps parameter name to the
            validated, possibly coerced value
        """
        errors: List[ValidationError] = []
        values: Dict[str, Any] = {}

        for param in operation.parameters:
            found, value = self._read(param, raw_input)

            if not found:
                if param.required:
                    errors.append(ValidationError(f"/{param.name}", "Missing property."))
                elif param.has_default:
                    values[param.name] = param.default
                continue

            if self.coerce and param.location != "body":
                value = coerce_value(
                    value, self.contract.resolve(param.schema), param.collection_format
                )

            errors.extend(self._check(value, param.schema, f"/{param.name}"))
            values[param.name] = value

        return errors, values

    def validate_response(
        self,
        operation: OperationSpec,
        status: int,
        payload: Any,
    ) -> List[ValidationError]:
        """Validate an outgoing payload against the schema for its status."""
        response = operation.responses.get(str(status)) or operation.responses.get("default")
        if response is None:
            return [ValidationError("/", f"No responses rules defined for status {status}.")]

        if self.contract.is_swagger2:
            schema = response.get("schema")
        else:
            content = response.get("content") or {}
            media = content.get("application/json") or next(iter(content.values()), None) or {}
            schema = media.get("schema")

        if not schema:
            return []
        return self._check(payload, schema, "")

    def _check(self, value: Any, schema: Dict[str, Any], prefix: str) -> List[ValidationError]:
        validator = self._validator_for(schema)
        errors = sorted(validator.iter_errors(value), key=lambda e: e.json_path)
        return [
            ValidationError(_pointer(prefix, e.absolute_path), e.message)
            for e in errors
        ]

    def _validator_for(self, schema: Dict[str, Any]):
        key = id(schema)
        validator = self._validators.get(key)
        if validator is None:
            # Schemas found in the document are entered through the registry,
            # so their local refs ("#/definitions/Pet") resolve against it
            pointer = self.contract.pointer(schema)
            root = {"$ref": f"{CONTRACT_URI}#{pointer}"} if pointer is not None else schema
            validator = self._validator_cls(root, registry=self.contract.registry)
            self._validators[key] = validator
        return validator

    def _read(self, param: Parameter, raw_input: RequestInput) -> Tuple[bool, Any]:
        """Return (found, value) for a parameter."""
        location = param.location
        if location == "body":
            return raw_input.has_body, raw_input.body

        source = {
            "path": raw_input.path,
            "query": raw_input.query,
            "header": raw_input.headers,
            "formData": raw_input.form,
            "cookie": raw_input.cookies,
        }.get(location)
        if source is None or param.name not in source:
            return False, None

        schema = self.contract.resolve(param.schema)
        if schema.get("type") == "array" and _is_multi(param) and hasattr(source, "getlist"):
            return True, source.getlist(param.name)
        return True, source[param.name]


def coerce_value(value: Any, schema: Dict[str, Any], collection_format: Optional[str] = None) -> Any:
    """
    Coerce a string value to the type its schema declares.

    Values that cannot be converted are returned unchanged so the schema
    check reports them.

    Examples:
        "42", {"type": "integer"}             -> 42
        "1.5", {"type": "number"}             -> 1.5
        "yes", {"type": "boolean"}            -> True
        "a,b", {"type": "array", ...}         -> ["a", "b"]
    """
    schema_type = schema.get("type")

    if schema_type == "array":
        if isinstance(value, str):
            separator = COLLECTION_SEPARATORS.get(
                collection_format or schema.get("collectionFormat") or "csv", ","
            )
            value = value.split(separator) if value != "" else []
        if isinstance(value, (list, tuple)):
            items = schema.get("items") or {}
            return [coerce_value(item, items) for item in value]
        return value

    if not isinstance(value, str):
        return value

    if schema_type == "integer":
        try:
            return int(value)
        except ValueError:
            return value
    if schema_type == "number":
        try:
            return float(value) if any(c in value for c in ".eE") else int(value)
        except ValueError:
            return value
    if schema_type == "boolean":
        lowered = value.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    return value


def _is_multi(param: Parameter) -> bool:
    if param.collection_format == "multi":
        return True
    # OpenAPI 3: query arrays explode by default
    if param.collection_format is None and param.location in ("query", "cookie"):
        return param.explode is not False and "schema" in param.raw
    return False


def _pointer(prefix: str, path) -> str:
    parts = [str(p).replace("~", "~0").replace("/", "~1") for p in path]
    pointer = prefix + "".join(f"/{p}" for p in parts)
    return pointer or "/"
