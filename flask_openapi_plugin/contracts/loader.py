"""
Spec loader - fetch a contract and check it against the OpenAPI meta-schema.

Accepted sources:
  dict                        already parsed document
  "api.yaml", Path(...)       file on disk (.json, .yaml, .yml)
  "https://host/api.json"     remote document (requests)
  "data://mypackage/api.json" resource shipped inside an installed package
"""

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Union

import requests
import yaml
from openapi_spec_validator import (
    OpenAPIV2SpecValidator,
    OpenAPIV30SpecValidator,
    OpenAPIV31SpecValidator,
)

from ..errors import ContractError
from .model import ContractModel, detect_version


logger = logging.getLogger("openapi.routes")

REMOTE_TIMEOUT = 10

SPEC_VALIDATORS = {
    "2.0": OpenAPIV2SpecValidator,
    "3.0": OpenAPIV30SpecValidator,
    "3.1": OpenAPIV31SpecValidator,
}

Source = Union[str, Path, Dict[str, Any]]


def load_contract(url: Source) -> ContractModel:
    """
    Load, meta-validate and model a contract.

    Args:
        url: Any of the accepted sources (see module docstring)

    Returns:
        ContractModel

    Raises:
        ContractError: If the source cannot be read or the document is invalid
    """
    data = read_document(url)
    validate_document(data)
    logger.debug("Loaded %s", url if not isinstance(url, dict) else "<dict>")
    return ContractModel.from_dict(data)


def read_document(url: Source) -> Dict[str, Any]:
    """Read a source into a plain dict without validating it."""
    if isinstance(url, dict):
        return url

    source = str(url)
    if source.startswith(("http://", "https://")):
        text, suffix = _read_remote(source)
    elif source.startswith("data://"):
        text, suffix = _read_package_data(source)
    else:
        path = Path(source)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ContractError(f"Cannot read contract {source}: {e}") from e
        suffix = path.suffix.lower()

    data = _parse(text, suffix, source)
    if not isinstance(data, dict):
        raise ContractError(f"Contract {source} is not a mapping")
    return data


def validate_document(data: Dict[str, Any]) -> None:
    """
    Check the document against the OpenAPI meta-schema.

    All problems are collected so the startup error lists every one of them.
    """
    validator_cls = SPEC_VALIDATORS[detect_version(data)]
    errors = [str(e.message) for e in validator_cls(data).iter_errors()]
    if errors:
        raise ContractError(
            "\n".join(["Invalid Open API spec:", *errors]),
            errors=errors,
        )


def _read_remote(url: str):
    try:
        response = requests.get(url, timeout=REMOTE_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ContractError(f"Cannot fetch contract {url}: {e}") from e

    content_type = response.headers.get("Content-Type", "")
    suffix = ".json" if "json" in content_type else Path(url.split("?", 1)[0]).suffix.lower()
    return response.text, suffix


def _read_package_data(url: str):
    # data://package.name/relative/file.yaml
    location = url[len("data://"):]
    package, _, resource = location.partition("/")
    if not package or not resource:
        raise ContractError(f"Invalid data URL {url} (expected data://<package>/<file>)")
    try:
        text = resources.files(package).joinpath(resource).read_text(encoding="utf-8")
    except (ModuleNotFoundError, OSError) as e:
        raise ContractError(f"Cannot read contract {url}: {e}") from e
    return text, Path(resource).suffix.lower()


def _parse(text: str, suffix: str, source: str) -> Any:
    try:
        if suffix == ".json":
            return json.loads(text)
        # JSON is a subset of YAML, so unknown suffixes go through YAML
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ContractError(f"Cannot parse contract {source}: {e}") from e
