"""
Docker Compose parser for wompose.

Decodes compose text and loads compose and options files from disk.
"""

from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import MalformedInputError, MissingServicesError
from .types import ComposeDocument, ConvertOptions

COMPOSE_FILENAMES = [
    "docker-compose.yaml",
    "docker-compose.yml",
    "compose.yaml",
    "compose.yml",
]


def decode_compose(text: str) -> Dict[str, Any]:
    """
    Decode compose text (YAML or JSON) and check its top-level shape.

    Args:
        text: Raw compose document

    Returns:
        Decoded document mapping

    Raises:
        MalformedInputError: If the text is not valid YAML/JSON, or
            services / service bodies are not mappings
        MissingServicesError: If there is no non-empty services section
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise MalformedInputError(f"Invalid YAML: {e}") from e

    if not isinstance(data, dict) or not data.get("services"):
        raise MissingServicesError()

    services = data["services"]
    if not isinstance(services, dict):
        raise MalformedInputError(
            "Invalid compose file: services must be a mapping of name to service"
        )

    for name, body in services.items():
        if body is not None and not isinstance(body, dict):
            raise MalformedInputError(
                f"Invalid compose file: service {name!r} must be a mapping"
            )

    return data


def parse_compose_document(text: str) -> ComposeDocument:
    """Decode and normalize compose text."""
    return ComposeDocument.from_dict(decode_compose(text))


def find_compose_file(path: str) -> Path:
    """
    Resolve a compose file path.

    Args:
        path: A compose file, or a directory holding one

    Returns:
        Path to the compose file

    Raises:
        FileNotFoundError: If no compose file is found
    """
    compose_path = Path(path)
    if compose_path.is_file():
        return compose_path

    if compose_path.is_dir():
        for filename in COMPOSE_FILENAMES:
            candidate = compose_path / filename
            if candidate.exists():
                return candidate
        raise FileNotFoundError(
            f"No docker-compose file found in {path}. "
            f"Tried: {', '.join(COMPOSE_FILENAMES)}"
        )

    raise FileNotFoundError(f"Compose file not found: {path}")


def load_compose_file(path: str) -> str:
    """Read compose text from a file or a directory holding one."""
    with open(find_compose_file(path)) as f:
        return f.read()


def load_convert_options(path: str) -> ConvertOptions:
    """
    Load conversion options from a YAML or JSON file.

    Args:
        path: Path to the options file

    Returns:
        ConvertOptions with defaults for missing keys

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a mapping or holds invalid values
    """
    options_path = Path(path)
    if not options_path.exists():
        raise FileNotFoundError(f"Options file not found at {path}")

    with open(options_path) as f:
        data = yaml.safe_load(f)

    if data is not None and not isinstance(data, dict):
        raise ValueError(f"Options file {path} must contain a mapping")

    return ConvertOptions.from_dict(data)
