"""
Pytest configuration for plugin tests.

Provides:
- petstore_spec(): a fresh Swagger 2.0 contract dict per call
- Shared fixtures (app, client, api)
"""

import copy
from pathlib import Path

import pytest
from flask import Flask

import petstore_views
from flask_openapi_plugin import OpenAPI


FIXTURES_DIR = Path(__file__).parent / "fixtures"

PET = {
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "integer"},
        "name": {"type": "string"},
    },
}

PETSTORE = {
    "swagger": "2.0",
    "info": {"version": "1.0", "title": "Pets"},
    "basePath": "/api",
    "paths": {
        "x-draft-paths": {"note": "ignored"},
        "/pets": {
            "x-owner": "team-pets",
            "get": {
                "operationId": "listPets",
                "x-flask-to": "petstore_views:list_pets",
                "parameters": [
                    {"in": "query", "name": "limit", "type": "integer", "minimum": 1},
                ],
                "responses": {
                    "200": {
                        "description": "Pet list",
                        "schema": {"type": "array", "items": {"$ref": "#/definitions/Pet"}},
                    },
                },
            },
            "post": {
                "operationId": "addPet",
                "x-flask-to": "petstore_views:add_pet",
                "parameters": [
                    {"in": "query", "name": "age", "type": "integer", "required": True},
                    {
                        "in": "body",
                        "name": "body",
                        "required": True,
                        "schema": {"$ref": "#/definitions/Pet"},
                    },
                ],
                "responses": {
                    "200": {"description": "Created", "schema": {"$ref": "#/definitions/Pet"}},
                },
            },
        },
        "/pets/{petId}": {
            "get": {
                "operationId": "showPetById",
                "x-flask-to": "petstore_views:show_pet",
                "parameters": [
                    {
                        "in": "path",
                        "name": "petId",
                        "type": "integer",
                        "required": True,
                        "x-flask-placeholder": "int",
                    },
                ],
                "responses": {
                    "200": {"description": "A pet", "schema": {"$ref": "#/definitions/Pet"}},
                },
            },
        },
        "/todo": {
            "get": {
                "operationId": "todo",
                "responses": {"200": {"description": "Not written yet"}},
            },
        },
        "/boom": {
            "get": {
                "operationId": "boom",
                "x-flask-to": "petstore_views:boom",
                "responses": {"200": {"description": "Never"}},
            },
        },
        "/lenient": {
            "post": {
                "operationId": "lenientAdd",
                "x-flask-to": "petstore_views:lenient_add",
                "parameters": [
                    {
                        "in": "body",
                        "name": "body",
                        "required": True,
                        "schema": {"$ref": "#/definitions/Pet"},
                    },
                ],
                "responses": {
                    "200": {"description": "Created", "schema": {"$ref": "#/definitions/Pet"}},
                },
            },
        },
    },
    "definitions": {"Pet": PET},
}


def petstore_spec():
    """Return a private copy of the petstore contract."""
    return copy.deepcopy(PETSTORE)


@pytest.fixture(autouse=True)
def reset_calls():
    petstore_views.CALLS.clear()
    yield
    petstore_views.CALLS.clear()


@pytest.fixture
def fixtures_dir():
    return FIXTURES_DIR


@pytest.fixture
def app():
    """Create test Flask application."""
    app = Flask(__name__)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def api(app):
    """Petstore contract mounted on the test app."""
    return OpenAPI(app, url=petstore_spec())


@pytest.fixture
def client(app, api):
    """Create test client."""
    return app.test_client()
