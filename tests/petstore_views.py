"""Views referenced from the test contracts through x-flask-to."""

from flask import jsonify

from flask_openapi_plugin import get_param, invalid_input, op_spec, reply


PETS = [
    {"id": 1, "name": "Rex"},
    {"id": 2, "name": "Tom"},
    {"id": 3, "name": "Kit"},
]

# Names of views whose business logic ran
CALLS = []


def list_pets():
    if invalid_input():
        return
    CALLS.append("list_pets")
    limit = get_param("limit")
    return reply(200, PETS[:limit] if limit else PETS)


def add_pet():
    if invalid_input():
        return
    CALLS.append("add_pet")
    return reply(200, get_param("body"))


def show_pet(petId):
    if invalid_input():
        return
    CALLS.append("show_pet")
    if petId == 666:
        return reply(200, {"id": "six-six-six", "name": "Imp"})
    return reply(200, {"id": petId, "name": "Rex"})


def not_a_list():
    CALLS.append("not_a_list")
    return reply(200, {"id": 1, "name": "Rex"})


def lenient_add():
    errors = invalid_input(auto_render=False)
    if errors:
        return jsonify({"custom": [e.path for e in errors]}), 422
    return reply(200, get_param("body"))


def boom():
    raise RuntimeError("boom")


def nothing():
    CALLS.append("nothing")


def greet(greeting="hello", name="world"):
    return jsonify({"greeting": greeting, "name": name})


def page(page):
    return jsonify({"page": page})


def whoami():
    return jsonify({"operationId": op_spec()["operationId"]})
