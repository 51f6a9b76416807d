"""
Flask extension wiring the contract into an application.

    app = Flask(__name__)
    api = OpenAPI(app, url="api.yaml")

    # or, with an application factory
    api = OpenAPI()
    api.init_app(app, url="api.yaml", route=protected_bp, log_level="info")

init_app loads and meta-validates the contract, builds the validator,
creates one route per operation and registers the `flask openapi` commands.
Any problem raises and stops the application from starting.
"""

import logging
from typing import Any, List, Optional

from flask import Flask

from .cli import openapi_cli
from .config import OpenAPIConfig
from .contracts.loader import load_contract
from .contracts.model import ContractModel
from .contracts.validator import SchemaValidator
from .errors import ValidationError
from .routing import RouteBinding, RouteSynthesizer
from .validation import ValidationOrchestrator


logger = logging.getLogger("openapi.routes")


class OpenAPI:
    """OpenAPI / Swagger plugin for Flask."""

    def __init__(self, app: Optional[Flask] = None, **options):
        self.config: Optional[OpenAPIConfig] = None
        self.contract: Optional[ContractModel] = None
        self.validator: Optional[SchemaValidator] = None
        self.orchestrator: Optional[ValidationOrchestrator] = None
        self.synthesizer: Optional[RouteSynthesizer] = None
        self.blueprint = None

        if app is not None:
            self.init_app(app, **options)

    def init_app(self, app: Flask, **options) -> None:
        self.config = OpenAPIConfig.from_app(app, **options)
        self.contract = load_contract(self.config.url)
        self.validator = SchemaValidator(self.contract, coerce=self.config.coerce)
        self.orchestrator = ValidationOrchestrator(self.validator, self.config.log_level.level)

        self.synthesizer = RouteSynthesizer(app, self.contract, self.orchestrator)
        self.blueprint = self.synthesizer.synthesize(self.config.route)

        app.extensions.setdefault("openapi", []).append(self)
        if "openapi" not in app.cli.commands:
            app.cli.add_command(openapi_cli)

        logger.info(
            "OpenAPI mounted %d route(s) at %s",
            len(self.synthesizer.routes),
            self.contract.base_path,
        )

    @property
    def routes(self) -> List[RouteBinding]:
        return self.synthesizer.routes if self.synthesizer else []

    def invalid_input(self, auto_render: bool = True) -> List[ValidationError]:
        return self.orchestrator.invalid_input(auto_render=auto_render)

    def reply(self, status: int, output: Any):
        return self.orchestrator.reply(status, output)

    def spec(self) -> Optional[dict]:
        return self.orchestrator.spec()
