"""Spec file loading with validation.

SECURITY: All file operations enforce size limits to prevent DoS attacks
via large files. Input validation is performed at the boundary.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .config import MAX_SPEC_DOCUMENTS_PER_FILE, MAX_SPEC_FILE_SIZE_BYTES
from .descriptors import ResourceRegistry
from .models import ResourceSpec

logger = logging.getLogger(__name__)

SPEC_FILE_SUFFIXES = (".yaml", ".yml")


class SpecLoadError(Exception):
    """Raised when spec loading or validation fails."""

    pass


def _format_validation_error(path: Path, index: int, error: ValidationError) -> str:
    errors = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        errors.append(f"  - {loc}: {item['msg']}")
    error_list = "\n".join(errors)
    return f"Validation failed for {path} (document {index}):\n{error_list}"


def load_spec_file(spec_path: Path, registry: ResourceRegistry) -> list[ResourceSpec]:
    """Load and validate every resource document in one YAML file.

    Args:
        spec_path: YAML file with one or more documents.
        registry: Known resource types; unknown types are rejected.

    Returns:
        Validated specs, in document order. Empty documents are skipped.

    Raises:
        SpecLoadError: If the file cannot be read or fails validation.
    """
    # SECURITY: Check file size before reading to prevent DoS
    try:
        file_size = spec_path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat spec file {spec_path}: {e}") from e

    if file_size > MAX_SPEC_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"Spec file exceeds maximum size of {MAX_SPEC_FILE_SIZE_BYTES} bytes: {spec_path}"
        )

    try:
        content = spec_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read spec file {spec_path}: {e}") from e

    try:
        documents = [doc for doc in yaml.safe_load_all(content) if doc is not None]
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {spec_path}: {e}") from e

    if len(documents) > MAX_SPEC_DOCUMENTS_PER_FILE:
        raise SpecLoadError(
            f"Spec file has more than {MAX_SPEC_DOCUMENTS_PER_FILE} documents: {spec_path}"
        )

    specs: list[ResourceSpec] = []
    for index, raw_data in enumerate(documents):
        if not isinstance(raw_data, dict):
            raise SpecLoadError(f"Document {index} in {spec_path} must be a YAML mapping")

        # Kubernetes-style wrapper: apiVersion, kind, metadata, spec
        if "apiVersion" in raw_data and "spec" in raw_data:
            spec_data = raw_data.get("spec")
            if not isinstance(spec_data, dict):
                raise SpecLoadError(f"Spec section must be a mapping: {spec_path}")
            metadata = raw_data.get("metadata") or {}
            if "name" not in spec_data and isinstance(metadata, dict) and "name" in metadata:
                spec_data = {**spec_data, "name": metadata["name"]}
        else:
            spec_data = raw_data

        try:
            spec = ResourceSpec.model_validate(spec_data)
        except ValidationError as e:
            raise SpecLoadError(_format_validation_error(spec_path, index, e)) from e

        if spec.type not in registry:
            raise SpecLoadError(
                f"Unknown resource type '{spec.type}' in {spec_path}. "
                f"Valid types: {registry.type_names}"
            )
        specs.append(spec)

    return specs


def load_specs(specs_dir: Path, registry: ResourceRegistry) -> list[ResourceSpec]:
    """Load every spec file in a directory, sorted by file name.

    Raises:
        SpecLoadError: If the directory is missing, a file is invalid, or two
            specs share a name.
    """
    if not specs_dir.is_dir():
        raise SpecLoadError(f"Specs directory not found: {specs_dir}")

    paths = sorted(p for p in specs_dir.iterdir() if p.is_file() and p.suffix in SPEC_FILE_SUFFIXES)

    specs: list[ResourceSpec] = []
    seen: dict[str, Path] = {}
    for path in paths:
        for spec in load_spec_file(path, registry):
            if spec.name in seen:
                raise SpecLoadError(
                    f"Duplicate resource name '{spec.name}' in {path} "
                    f"(first declared in {seen[spec.name]})"
                )
            seen[spec.name] = path
            specs.append(spec)

    logger.info(
        "Loaded resource specs",
        extra={"specs_dir": str(specs_dir), "files": len(paths), "resources": len(specs)},
    )
    return specs
