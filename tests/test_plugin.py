"""
Plugin registration tests.

Covers:
- Option sources and their validation
- Swagger 2.0 and OpenAPI 3 contracts end to end
- Several contracts on one application

Run: pytest tests/test_plugin.py -v
"""

import pydantic
import pytest
from flask import Blueprint, Flask, abort, jsonify, request

import petstore_views
from conftest import petstore_spec
from flask_openapi_plugin import LogLevel, OpenAPI, OpenAPIConfig, get_param, invalid_input, op_spec, reply
from flask_openapi_plugin.errors import ContractError


# =============================================================================
# Configuration
# =============================================================================

class TestConfig:

    def test_defaults(self, app):
        config = OpenAPIConfig.from_app(app, url={"swagger": "2.0"})

        assert config.coerce is True
        assert config.log_level is LogLevel.WARN
        assert config.route is None

    def test_flask_config_keys(self, app, fixtures_dir):
        app.config["OPENAPI_URL"] = str(fixtures_dir / "petstore.json")
        app.config["OPENAPI_COERCE"] = False
        app.config["OPENAPI_LOG_LEVEL"] = "debug"

        config = OpenAPIConfig.from_app(app)

        assert config.url == str(fixtures_dir / "petstore.json")
        assert config.coerce is False
        assert config.log_level.level == 10

    def test_keyword_options_win(self, app):
        app.config["OPENAPI_LOG_LEVEL"] = "debug"
        config = OpenAPIConfig.from_app(app, url={}, log_level="error")

        assert config.log_level is LogLevel.ERROR

    def test_url_is_required(self, app):
        with pytest.raises(pydantic.ValidationError):
            OpenAPI(app)

    def test_unknown_log_level(self, app):
        with pytest.raises(pydantic.ValidationError):
            OpenAPI(app, url=petstore_spec(), log_level="loud")

    def test_invalid_contract_stops_startup(self, app, fixtures_dir):
        with pytest.raises(ContractError):
            OpenAPI(app, url=fixtures_dir / "invalid.yaml")


# =============================================================================
# Registration
# =============================================================================

class TestRegistration:

    def test_factory_style(self, fixtures_dir):
        api = OpenAPI()
        assert api.routes == []

        app = Flask(__name__)
        app.config["OPENAPI_URL"] = fixtures_dir / "petstore.json"
        api.init_app(app)

        assert app.extensions["openapi"] == [api]
        assert app.test_client().get("/api/pets").status_code == 200

    def test_protected_scope(self, app):
        scope = Blueprint("private", __name__)

        @scope.before_request
        def deny():
            abort(403)

        OpenAPI(app, url=petstore_spec(), route=scope)

        assert app.test_client().get("/api/pets").status_code == 403
        assert petstore_views.CALLS == []

    def test_several_contracts(self, app, fixtures_dir):
        pets = OpenAPI(app, url=petstore_spec())
        items = OpenAPI(app, url=fixtures_dir / "inventory.yaml")
        client = app.test_client()

        assert app.extensions["openapi"] == [pets, items]
        assert client.get("/api/pets").status_code == 200
        assert client.get("/v1/items/1").status_code == 501

    def test_spec_helpers_outside_requests(self, app, api):
        with pytest.raises(RuntimeError):
            api.invalid_input()

        with app.test_request_context("/api/pets"):
            assert api.spec() is None
            assert op_spec() is None

    def test_handler_declared_on_scope_is_annotated(self, app):
        scope = Blueprint("private", __name__)

        @scope.route("/echo", methods=["GET", "POST"])
        def echo():
            if request.method == "GET":
                return "plain"
            if invalid_input():
                return
            return reply(200, get_param("body"))

        data = petstore_spec()
        data["paths"]["/echo"] = {"post": {
            "x-flask-name": "echo",
            "parameters": [{"in": "body", "name": "body", "required": True, "schema": {"type": "object"}}],
            "responses": {"200": {"description": "Echo", "schema": {"type": "object"}}},
        }}
        api = OpenAPI(app, url=data, route=scope)
        client = app.test_client()

        binding = next(b for b in api.routes if b.name == "echo")
        assert binding.grafted is True
        assert binding.endpoint == "private.echo"
        assert binding.path == "/api/echo"

        assert client.post("/api/echo", json={"a": 1}).get_json() == {"a": 1}
        assert client.post("/api/echo", json=[1]).status_code == 400
        # methods the contract leaves out still reach the handler
        assert client.get("/api/echo").get_data(as_text=True) == "plain"


# =============================================================================
# Current operation
# =============================================================================

class TestOperationSpec:

    def test_op_spec_in_contract_view(self, app):
        data = petstore_spec()
        data["paths"]["/whoami"] = {"get": {
            "operationId": "whoAmI",
            "x-flask-to": "petstore_views:whoami",
            "responses": {"200": {"description": "Caller"}},
        }}
        OpenAPI(app, url=data)

        assert app.test_client().get("/api/whoami").get_json() == {"operationId": "whoAmI"}

    def test_plugin_spec_in_grafted_view(self, app):
        @app.get("/mine")
        def mine():
            return jsonify(api.spec())

        data = petstore_spec()
        data["paths"]["/mine"] = {"get": {
            "x-flask-name": "mine",
            "x-owner": "team-pets",
            "responses": {"200": {"description": "Mine"}},
        }}
        api = OpenAPI(app, url=data)

        body = app.test_client().get("/api/mine").get_json()
        assert body["x-flask-name"] == "mine"
        assert body["x-owner"] == "team-pets"


# =============================================================================
# OpenAPI 3
# =============================================================================

class TestOpenAPI3:

    @pytest.fixture
    def client(self, app, fixtures_dir):
        OpenAPI(app, url=fixtures_dir / "inventory.yaml")
        return app.test_client()

    def test_valid_request(self, client):
        response = client.post("/v1/items?age=3&tags=a&tags=b", json={"id": 1, "name": "Bolt"})

        assert response.status_code == 200
        assert response.get_json() == {"id": 1, "name": "Bolt"}

    def test_request_body_is_validated(self, client):
        response = client.post("/v1/items?age=3", json={"id": "one"})
        body = response.get_json()

        assert response.status_code == 400
        assert sorted(e["path"] for e in body["errors"]) == ["/body", "/body/id"]

    def test_missing_request_body(self, client):
        response = client.post("/v1/items?age=3")

        assert response.status_code == 400
        assert response.get_json()["errors"] == [{"path": "/body", "message": "Missing property."}]

    def test_operation_without_view(self, client):
        assert client.get("/v1/items/1").status_code == 501

    def test_nullable_property(self, client):
        response = client.post("/v1/items?age=3", json={"id": 1, "name": "Bolt", "note": None})

        assert response.status_code == 200
        assert response.get_json()["note"] is None

    def test_nullable_keeps_its_type(self, client):
        response = client.post("/v1/items?age=3", json={"id": 1, "name": "Bolt", "note": 5})

        assert response.status_code == 400
        assert [e["path"] for e in response.get_json()["errors"]] == ["/body/note"]
