"""
Route synthesis - turn a contract into Flask routes.

Usage:
    synthesizer = RouteSynthesizer(app, contract, orchestrator)
    blueprint = synthesizer.synthesize()           # fresh blueprint at basePath
    blueprint = synthesizer.synthesize(api_bp)     # mount under an existing one

For every operation:
1. Resolve identity: reuse a route found by name, or compile a new one
2. Apply the routing directive (x-flask-to)
3. Bind defaults of path parameters
4. Register the rule and remember the operation for dispatch
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from flask import Blueprint, Flask
from werkzeug.utils import import_string

from .contracts.model import ContractModel, OperationSpec
from .errors import ContractError
from .introspection import make_spec_view
from .rendering import ErrorRenderer


logger = logging.getLogger("openapi.routes")

SPEC_ENDPOINT = "openapi_spec"

_TEMPLATE_VAR = re.compile(r"\{([^{}]*)\}")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_TAIL_VAR = re.compile(r"/<(?:[^<>]*:)?([A-Za-z_][A-Za-z0-9_]*)>$")


@dataclass
class RouteBinding:
    """One registered route and the operation it serves."""
    operation: OperationSpec
    name: str                   # endpoint inside the scope
    rule: str                   # pattern relative to the scope
    method: str                 # upper case
    view: Optional[Callable] = None     # dispatcher registered with Flask
    target: Optional[Callable] = None   # handler the dispatcher calls
    defaults: Dict[str, Any] = field(default_factory=dict)
    path_defaults: Dict[str, Any] = field(default_factory=dict)
    grafted: bool = False
    endpoint: str = ""          # qualified "<blueprint>.<name>"
    path: str = ""              # full pattern including the mount prefix


def compile_path(path: str, operation: OperationSpec, converters: Optional[Dict] = None) -> str:
    """
    Convert an OpenAPI path template into a Werkzeug rule.

    Examples:
        "/pets/{petId}"                       -> "/pets/<petId>"
        "/pets/{petId}" + x-flask-placeholder -> "/pets/<int:petId>"

    Raises:
        ContractError: On unbalanced braces, bad names or unknown converters
    """
    params = operation.path_parameters

    def substitute(match):
        name = match.group(1)
        if not _IDENTIFIER.match(name):
            raise ContractError(f"Invalid path parameter name {name!r} in {path}")
        param = params.get(name)
        kind = param.placeholder if param is not None else None
        if not kind:
            return f"<{name}>"
        converter = kind.split("(", 1)[0]
        if converters is not None and converter not in converters:
            raise ContractError(f"Unknown placeholder kind {kind!r} for {name} in {path}")
        return f"<{kind}:{name}>"

    rule = _TEMPLATE_VAR.sub(substitute, path)
    if "{" in rule or "}" in rule:
        raise ContractError(f"Unparsable path template {path}")
    if not rule.startswith("/"):
        raise ContractError(f"Path template must start with '/': {path}")
    return rule


def import_view(target: str) -> Callable:
    """Import a view from "package.module:function" or "package.module.function"."""
    try:
        view = import_string(target)
    except ImportError as e:
        raise ContractError(f"Cannot import view {target}: {e}") from e
    if not callable(view):
        raise ContractError(f"Routing directive {target} is not callable")
    return view


def endpoint_name(method: str, path: str) -> str:
    """Generated endpoint for unnamed operations: GET /pets/{id} -> get_pets_id."""
    slug = re.sub(r"[^A-Za-z0-9_]+", "_", path).strip("_")
    return f"{method.lower()}_{slug}" if slug else method.lower()


def _not_implemented(**kwargs):
    return None


class RouteSynthesizer:
    """Builds the route table of one contract."""

    def __init__(self, app: Flask, contract: ContractModel, orchestrator=None):
        self.app = app
        self.contract = contract
        self.renderer = ErrorRenderer(self.binding_for, orchestrator)
        self.bindings: Dict[Tuple[str, str], RouteBinding] = {}
        self.routes: List[RouteBinding] = []
        self.prefix = ""
        self._named: Dict[str, RouteBinding] = {}
        self._taken: Dict[str, str] = {}
        self._scope_views: Dict[str, Tuple[Callable, str]] = {}
        self._adopted = set()

    def binding_for(self, endpoint: str, method: str) -> Optional[RouteBinding]:
        """Find the binding for a matched endpoint and request method."""
        binding = self.bindings.get((endpoint, method))
        if binding is None and method == "HEAD":
            binding = self.bindings.get((endpoint, "GET"))
        return binding

    def synthesize(self, scope: Optional[Blueprint] = None) -> Blueprint:
        """
        Register every operation of the contract.

        Args:
            scope: Optional unregistered blueprint to mount the routes under,
                e.g. one with a before_request hook protecting the API

        Returns:
            The blueprint holding the routes, registered on the app
        """
        scope = self._mount(scope)
        self._scope_views = self._declared_views(scope)

        scope.add_url_rule(
            "",
            endpoint=SPEC_ENDPOINT,
            view_func=make_spec_view(self.contract),
            methods=["GET"],
            strict_slashes=False,
        )

        for path in sorted(self.contract.paths, key=len):
            for operation in self.contract.paths[path].operations.values():
                binding = self._resolve(operation)
                self._apply_directive(binding, operation.routing_directive)
                self._apply_path_defaults(binding, operation)
                self._register(scope, binding)

        self.app.register_blueprint(scope)

        # Handlers declared on the scope itself now run behind their dispatcher
        for name in self._adopted:
            endpoint = f"{scope.name}.{name}"
            self.app.view_functions[endpoint] = self.renderer.dispatcher(endpoint)
        return scope

    def _mount(self, scope: Optional[Blueprint]) -> Blueprint:
        base_path = self.contract.base_path or "/"

        if scope is None:
            scope = Blueprint(self._blueprint_name(), __name__, url_prefix=base_path)
        elif scope.url_prefix is None:
            scope.url_prefix = base_path

        mounted = scope.url_prefix or "/"
        self.contract.base_path = mounted
        if self.contract.is_swagger2:
            self.contract.data["basePath"] = mounted
        self.prefix = mounted.rstrip("/")
        return scope

    def _declared_views(self, scope: Blueprint) -> Dict[str, Tuple[Callable, str]]:
        """
        Routes already declared on an unregistered blueprint.

        A blueprint only records its rules until it is registered, so the
        recorded setup functions are replayed against a scratch application.

        Returns:
            Local endpoint -> (view, rule relative to the blueprint)
        """
        if not scope.deferred_functions:
            return {}

        scratch = Flask(scope.import_name)
        state = scope.make_setup_state(scratch, {"url_prefix": "/"}, first_registration=False)
        for deferred in scope.deferred_functions:
            deferred(state)

        found = {}
        qualifier = f"{scope.name}."
        for rule in scratch.url_map.iter_rules():
            if rule.endpoint.startswith(qualifier):
                local = rule.endpoint[len(qualifier):]
                view = scratch.view_functions.get(rule.endpoint)
                if view is not None:
                    found.setdefault(local, (view, rule.rule))
        return found

    def _blueprint_name(self) -> str:
        name, n = "openapi", 1
        while name in self.app.blueprints:
            n += 1
            name = f"openapi_{n}"
        return name

    def _resolve(self, operation: OperationSpec) -> RouteBinding:
        method = operation.method.upper()
        name = operation.name

        if name:
            own = self._named.get(name)
            if own is not None:
                return RouteBinding(
                    operation=operation,
                    name=own.name,
                    rule=own.rule,
                    method=method,
                    target=own.target,
                    defaults=dict(own.defaults),
                    grafted=True,
                )

            found = self._scope_views.get(_safe_endpoint(name)) or self._find_endpoint(name)
            if found is not None:
                view, rule = found
                return RouteBinding(
                    operation=operation,
                    name=_safe_endpoint(name),
                    rule=rule,
                    method=method,
                    target=view,
                    grafted=True,
                )

        rule = compile_path(operation.path, operation, self.app.url_map.converters)
        return RouteBinding(
            operation=operation,
            name=_safe_endpoint(name) if name else self._generated_name(method, operation.path),
            rule=rule,
            method=method,
        )

    def _generated_name(self, method: str, path: str) -> str:
        # "/a-b" and "/a_b" slug alike; later paths get a numeric suffix
        base = endpoint_name(method, path)
        name, n = base, 1
        while name in self._scope_views or self._taken.get(name, path) != path:
            n += 1
            name = f"{base}_{n}"
        return name

    def _find_endpoint(self, name: str) -> Optional[Tuple[Callable, str]]:
        """Look for a route registered elsewhere in the app under this name."""
        candidates = [name] + sorted(
            e for e in self.app.view_functions if e.endswith("." + name)
        )
        for endpoint in candidates:
            view = self.app.view_functions.get(endpoint)
            # routes made from another contract are not handlers to annotate
            if view is None or hasattr(view, "openapi_endpoint"):
                continue
            try:
                rule = next(iter(self.app.url_map.iter_rules(endpoint)), None)
            except KeyError:
                rule = None
            if rule is not None:
                return view, rule.rule
        return None

    def _apply_directive(self, binding: RouteBinding, directive: Any) -> None:
        if not directive:
            return

        for item in directive if isinstance(directive, list) else [directive]:
            if isinstance(item, str):
                binding.target = import_view(item)
            elif isinstance(item, dict):
                item = dict(item)
                view = item.pop("view", None)
                if view:
                    binding.target = import_view(view)
                binding.defaults.update(item)
            else:
                raise ContractError(
                    f"Unsupported routing directive for {binding.method} "
                    f"{binding.operation.path}: {item!r}"
                )

    def _apply_path_defaults(self, binding: RouteBinding, operation: OperationSpec) -> None:
        for param in operation.path_parameters.values():
            if param.has_default:
                binding.path_defaults[param.name] = param.default

    def _register(self, scope: Blueprint, binding: RouteBinding) -> None:
        binding.target = binding.target or _not_implemented
        binding.endpoint = f"{scope.name}.{binding.name}"
        binding.path = self.prefix + binding.rule if binding.rule != "/" else self.prefix or "/"

        key = (binding.endpoint, binding.method)
        if key in self.bindings:
            other = self.bindings[key].operation
            raise ContractError(
                f"{binding.method} {binding.operation.path} and {other.method.upper()} "
                f"{other.path} both resolve to endpoint {binding.endpoint}"
            )

        # A handler declared on the scope keeps its own registration; the
        # dispatcher takes its place once the blueprint is registered
        declared = self._scope_views.get(binding.name)
        if declared is not None:
            self._adopted.add(binding.name)
        binding.view = self.renderer.dispatcher(
            binding.endpoint, fallback=declared[0] if declared else None
        )
        view_func = None if declared else binding.view

        self.bindings[key] = binding
        self.routes.append(binding)
        self._taken.setdefault(binding.name, binding.operation.path)
        if binding.operation.name and binding.operation.name not in self._named:
            self._named[binding.operation.name] = binding

        scope.add_url_rule(
            binding.rule,
            endpoint=binding.name,
            view_func=view_func,
            methods=[binding.method],
            defaults=dict(binding.defaults),
        )

        # A trailing placeholder with a default may be left out of the URL
        tail = _TAIL_VAR.search(binding.rule)
        if tail and tail.group(1) in binding.path_defaults:
            name = tail.group(1)
            scope.add_url_rule(
                binding.rule[:tail.start()] or "/",
                endpoint=binding.name,
                view_func=view_func,
                methods=[binding.method],
                defaults={**binding.defaults, name: binding.path_defaults[name]},
            )

        logger.debug("Add route %s %s", binding.method, binding.path)


def _safe_endpoint(name: str) -> str:
    # Blueprint endpoints may not contain dots
    return name.replace(".", "_")
