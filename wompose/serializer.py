"""
Manifest serialization.

Renders manifest dicts as YAML or JSON and derives output file names.
"""

import json
from typing import Any, Dict, List, Optional

import yaml


def to_yaml(manifest: Dict[str, Any]) -> str:
    """Render a manifest as block-style YAML, keys in insertion order, never wrapped."""
    return yaml.safe_dump(
        manifest,
        default_flow_style=False,
        sort_keys=False,
        indent=2,
        width=float("inf"),
        allow_unicode=True,
    )


def to_json(manifest: Dict[str, Any]) -> str:
    """Render a manifest as pretty-printed JSON."""
    return json.dumps(manifest, indent=2, ensure_ascii=False)


def serialize(manifest: Dict[str, Any], as_json: bool = False) -> str:
    """Render a manifest in the requested format."""
    return to_json(manifest) if as_json else to_yaml(manifest)


def file_extension(as_json: bool = False) -> str:
    return "json" if as_json else "yaml"


def output_filename(
    name: str,
    kind: str,
    as_json: bool = False,
    volume_index: Optional[int] = None,
) -> str:
    """
    Derive the output file name for a generated manifest.

    Args:
        name: Normalized service name
        kind: Kubernetes kind of the manifest
        as_json: Whether the file holds JSON
        volume_index: Volume position, for PersistentVolumeClaims

    Returns:
        `<name>-<kind>.<ext>`, or `<name>-vol<i>-pvc.<ext>` for claims
    """
    ext = file_extension(as_json)
    if kind == "PersistentVolumeClaim":
        return f"{name}-vol{volume_index or 0}-pvc.{ext}"
    return f"{name}-{kind.lower()}.{ext}"


def join_documents(contents: List[str], as_json: bool = False) -> str:
    """Combine serialized manifests into one YAML stream or JSON list."""
    if as_json:
        return "[\n" + ",\n".join(contents) + "\n]"
    return "---\n" + "---\n".join(contents)
