"""
CLI for inspecting contract routes.

Commands:
    flask openapi routes          - list synthesized routes in registration order
    flask openapi spec            - print the loaded contract
"""

import json

import click
import yaml
from flask import current_app
from flask.cli import AppGroup


openapi_cli = AppGroup("openapi", help="Inspect routes generated from OpenAPI contracts.")


def _plugins():
    return current_app.extensions.get("openapi", [])


@openapi_cli.command("routes")
def routes_command():
    """List routes generated from the contract(s)."""
    for plugin in _plugins():
        for binding in plugin.routes:
            click.echo(f"{binding.method:<8}{binding.path:<40}{binding.endpoint}")


@openapi_cli.command("spec")
@click.option("--format", "fmt", default="json", type=click.Choice(["json", "yaml"]), help="Output format.")
def spec_command(fmt):
    """Print the loaded contract(s)."""
    for plugin in _plugins():
        if fmt == "yaml":
            click.echo(yaml.safe_dump(plugin.contract.data, sort_keys=False))
        else:
            click.echo(json.dumps(plugin.contract.data, indent=2))
