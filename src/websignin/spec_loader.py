"""Descriptor and request file loading.

SECURITY: File size is checked before reading. Only structure is checked
here; property validation stays in the reconciler so every entry point
reports the same errors.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from .config import MAX_DESCRIPTOR_FILE_SIZE_BYTES

logger = logging.getLogger(__name__)


class SpecLoadError(Exception):
    """Raised when a descriptor or request file cannot be loaded."""

    pass


def _read_mapping(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise SpecLoadError(f"File not found: {path}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat {path}: {e}") from e

    if file_size > MAX_DESCRIPTOR_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"File exceeds maximum size of {MAX_DESCRIPTOR_FILE_SIZE_BYTES} bytes: {path}"
        )

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read {path}: {e}") from e

    # JSON is a subset of YAML, but JSON files get JSON error messages
    if path.suffix.lower() == ".json":
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise SpecLoadError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise SpecLoadError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise SpecLoadError(f"File must contain a mapping: {path}")
    return data


def load_descriptor(path: Path) -> dict[str, Any]:
    """Load the desired properties of one resource.

    Accepts a flat mapping (objectId, hostName) or a Kubernetes-style
    wrapper with apiVersion/kind/metadata/spec, in which case the spec
    section is returned.

    Raises:
        SpecLoadError: If the file is missing, too large, unparsable or not a mapping.
    """
    data = _read_mapping(path)

    if "apiVersion" in data and "spec" in data:
        spec_data = data.get("spec", {})
        if not isinstance(spec_data, dict):
            raise SpecLoadError(f"Spec section must be a mapping: {path}")
    else:
        spec_data = data

    logger.info("Loaded descriptor from %s", path)
    return spec_data


def load_request(path: Path) -> dict[str, Any]:
    """Load one provider request (method, urn and property snapshots)."""
    data = _read_mapping(path)
    if "method" not in data:
        raise SpecLoadError(f"Request must name a method: {path}")
    return data
