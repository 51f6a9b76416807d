"""
Contract model - read-only view of a loaded, meta-valid OpenAPI document.

ContractModel
  └── PathItem          one per path template ("/pets/{petId}")
        └── OperationSpec   one per HTTP method
              └── Parameter

The raw document is kept by reference. OperationSpec.spec is the very dict
found under paths/<path>/<method>, so whatever the route carries is the
same object the introspection endpoint serves.

Recognised extension keys:
  x-flask-to           routing directive (view import path, mapping or list)
  x-flask-name         route/endpoint name, takes priority over operationId
  x-flask-placeholder  Werkzeug converter for a path parameter ("int", "path", ...)

Any other "x-" key is carried along as inert data.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT4, DRAFT202012

from ..errors import ContractError


# Base URI the whole document is registered under for $ref resolution
CONTRACT_URI = "urn:openapi:contract"

X_PREFIX = "x-"
X_TO = "x-flask-to"
X_NAME = "x-flask-name"
X_PLACEHOLDER = "x-flask-placeholder"

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

# Swagger 2.0 keeps schema keywords inline on non-body parameters
_INLINE_SCHEMA_KEYS = (
    "type", "format", "items", "default", "maximum", "exclusiveMaximum",
    "minimum", "exclusiveMinimum", "maxLength", "minLength", "pattern",
    "maxItems", "minItems", "uniqueItems", "enum", "multipleOf",
)


class _Missing:
    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING = _Missing()


def is_extension(key: Any) -> bool:
    return isinstance(key, str) and key.startswith(X_PREFIX)


@dataclass
class Parameter:
    """A single operation parameter."""
    name: str
    location: str                       # path / query / header / formData / cookie / body
    required: bool = False
    schema: Dict[str, Any] = field(default_factory=dict)
    default: Any = MISSING
    placeholder: Optional[str] = None
    collection_format: Optional[str] = None
    explode: Optional[bool] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING


@dataclass
class OperationSpec:
    """One method + path operation."""
    method: str
    path: str
    spec: Dict[str, Any]
    parameters: List[Parameter] = field(default_factory=list)
    responses: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def routing_directive(self) -> Any:
        return self.spec.get(X_TO)

    @property
    def routing_name(self) -> Optional[str]:
        return self.spec.get(X_NAME)

    @property
    def operation_id(self) -> Optional[str]:
        return self.spec.get("operationId")

    @property
    def name(self) -> Optional[str]:
        """Explicit routing name first, operationId second."""
        return self.routing_name or self.operation_id

    @property
    def extensions(self) -> Dict[str, Any]:
        return {k: v for k, v in self.spec.items() if is_extension(k)}

    def parameter(self, name: str, location: Optional[str] = None) -> Optional[Parameter]:
        for param in self.parameters:
            if param.name == name and (location is None or param.location == location):
                return param
        return None

    @property
    def path_parameters(self) -> Dict[str, Parameter]:
        return {p.name: p for p in self.parameters if p.location == "path"}


@dataclass
class PathItem:
    """All operations declared for one path template."""
    path: str
    operations: Dict[str, OperationSpec] = field(default_factory=dict)
    extensions: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ContractModel:
    """The whole contract. Built once at startup, read concurrently afterwards."""
    data: Dict[str, Any]
    version: str
    base_path: str
    paths: Dict[str, PathItem]
    registry: Registry
    _pointers: Dict[int, str] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractModel":
        version = detect_version(data)
        specification = DRAFT202012 if version == "3.1" else DRAFT4
        registry = Registry().with_resource(
            CONTRACT_URI, Resource.from_contents(data, default_specification=specification)
        )
        model = cls(
            data=data,
            version=version,
            base_path=_base_path(data, version),
            paths={},
            registry=registry,
        )
        _index(data, "", model._pointers)

        for path, path_spec in (data.get("paths") or {}).items():
            if is_extension(path):
                continue
            model.paths[path] = model._build_path_item(path, path_spec or {})

        return model

    @property
    def is_swagger2(self) -> bool:
        return self.version == "2.0"

    def resolve(self, node: Any) -> Any:
        """Follow local $ref chains ("#/parameters/limit") until a real node."""
        resolver = self.registry.resolver(base_uri=CONTRACT_URI)
        seen = set()
        while isinstance(node, dict) and "$ref" in node:
            ref = node["$ref"]
            if ref in seen:
                raise ContractError(f"Circular $ref: {ref}")
            seen.add(ref)
            try:
                node = resolver.lookup(ref).contents
            except Unresolvable as e:
                raise ContractError(f"Unresolvable $ref: {ref}") from e
        return node

    def pointer(self, node: Any) -> Optional[str]:
        """JSON pointer of a dict found in the document, None for nodes built elsewhere."""
        return self._pointers.get(id(node))

    def _build_path_item(self, path: str, path_spec: Dict[str, Any]) -> PathItem:
        path_spec = self.resolve(path_spec)
        item = PathItem(
            path=path,
            extensions={k: v for k, v in path_spec.items() if is_extension(k)},
        )
        shared = [self._build_parameter(p) for p in path_spec.get("parameters") or []]

        for method, op_spec in path_spec.items():
            if is_extension(method) or method.lower() not in HTTP_METHODS:
                continue
            own = [self._build_parameter(p) for p in op_spec.get("parameters") or []]
            own_keys = {(p.name, p.location) for p in own}
            parameters = [p for p in shared if (p.name, p.location) not in own_keys] + own

            body = self._build_request_body(op_spec.get("requestBody"))
            if body is not None:
                parameters.append(body)

            item.operations[method.lower()] = OperationSpec(
                method=method.lower(),
                path=path,
                spec=op_spec,
                parameters=parameters,
                responses={
                    str(status): self.resolve(response)
                    for status, response in (op_spec.get("responses") or {}).items()
                    if not is_extension(status)
                },
            )

        return item

    def _build_parameter(self, raw: Dict[str, Any]) -> Parameter:
        raw = self.resolve(raw)
        location = raw.get("in", "query")

        if location == "body":
            schema = raw.get("schema") or {}
        elif self.is_swagger2:
            schema = {k: raw[k] for k in _INLINE_SCHEMA_KEYS if k in raw}
        elif "schema" in raw:
            schema = raw["schema"]
        else:
            schema = _first_content_schema(raw.get("content"))

        default = raw.get("default", MISSING)
        if default is MISSING and isinstance(schema, dict):
            default = self.resolve(schema).get("default", MISSING)

        return Parameter(
            name=raw["name"],
            location=location,
            required=bool(raw.get("required", location == "path")),
            schema=schema,
            default=default,
            placeholder=raw.get(X_PLACEHOLDER),
            collection_format=raw.get("collectionFormat"),
            explode=raw.get("explode"),
            raw=raw,
        )

    def _build_request_body(self, raw: Optional[Dict[str, Any]]) -> Optional[Parameter]:
        if raw is None:
            return None
        raw = self.resolve(raw)
        return Parameter(
            name="body",
            location="body",
            required=bool(raw.get("required", False)),
            schema=_first_content_schema(raw.get("content")),
            raw=raw,
        )


def detect_version(data: Dict[str, Any]) -> str:
    """Return "2.0", "3.0" or "3.1"."""
    if str(data.get("swagger", "")) == "2.0":
        return "2.0"
    openapi = str(data.get("openapi", ""))
    if openapi.startswith("3.0"):
        return "3.0"
    if openapi.startswith("3.1"):
        return "3.1"
    raise ContractError("Unsupported or missing OpenAPI version (expected swagger 2.0 or openapi 3.x)")


def _base_path(data: Dict[str, Any], version: str) -> str:
    if version == "2.0":
        return data.get("basePath") or "/"

    servers = data.get("servers") or []
    if not servers:
        return "/"
    path = urlparse(servers[0].get("url", "/")).path
    if not path or "{" in path:
        return "/"
    return path


def _index(node: Any, pointer: str, index: Dict[int, str]) -> None:
    if isinstance(node, dict):
        if id(node) in index:
            return
        index[id(node)] = pointer
        children = node.items()
    elif isinstance(node, list):
        children = enumerate(node)
    else:
        return
    for key, child in children:
        segment = str(key).replace("~", "~0").replace("/", "~1")
        _index(child, f"{pointer}/{segment}", index)


def _first_content_schema(content: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Pick the JSON schema of a content map, preferring application/json."""
    if not content:
        return {}
    if "application/json" in content:
        return content["application/json"].get("schema") or {}
    for media in content.values():
        return (media or {}).get("schema") or {}
    return {}
