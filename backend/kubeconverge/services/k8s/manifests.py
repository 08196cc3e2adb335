"""
Manifest decoding and splitting.

Stateless helpers: every call parses its own input and returns a fresh
mapping, so callers may mutate the result freely.
"""
from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from typing import Any

import yaml

from kubeconverge.exceptions import DecodeError

DEFAULT_NAMESPACE = "default"

_SEPARATOR = re.compile(r"^---(?:[ \t].*)?$", re.MULTILINE)


def split_manifests(text: str) -> list[str]:
    """Split multi-document YAML text on ``---`` lines, dropping empty documents."""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    docs = []
    for chunk in _SEPARATOR.split(normalized):
        if _is_blank(chunk):
            continue
        docs.append(chunk.strip("\n"))
    return docs


def _is_blank(chunk: str) -> bool:
    for line in chunk.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            return False
    return True


def decode_manifest(document: str | Mapping[str, Any]) -> dict[str, Any]:
    """Parse a single resource document into a plain dict.

    Raises ``DecodeError`` unless the input holds exactly one mapping with
    ``apiVersion``, ``kind`` and ``metadata.name``.
    """
    if isinstance(document, Mapping):
        obj: Any = copy.deepcopy(dict(document))
    elif isinstance(document, str):
        try:
            loaded = [doc for doc in yaml.safe_load_all(document) if doc is not None]
        except yaml.YAMLError as exc:
            raise DecodeError(f"invalid YAML: {exc}") from exc
        if len(loaded) != 1:
            raise DecodeError(f"expected exactly one resource document, found {len(loaded)}")
        obj = loaded[0]
    else:
        raise DecodeError(f"unsupported manifest type {type(document).__name__}")

    if not isinstance(obj, dict):
        raise DecodeError("manifest is not a mapping")
    if not isinstance(obj.get("apiVersion"), str) or not obj["apiVersion"]:
        raise DecodeError("manifest is missing apiVersion")
    if not isinstance(obj.get("kind"), str) or not obj["kind"]:
        raise DecodeError("manifest is missing kind")
    metadata = obj.get("metadata")
    if not isinstance(metadata, dict) or not metadata.get("name"):
        raise DecodeError("manifest is missing metadata.name")
    return obj


def effective_namespace(obj: Mapping[str, Any], target_namespace: str | None) -> str:
    """Target namespace if given, else the document's, else ``default``."""
    if target_namespace:
        return target_namespace
    metadata = obj.get("metadata") or {}
    return metadata.get("namespace") or DEFAULT_NAMESPACE


def namespace_manifest(name: str) -> str:
    return f"kind: Namespace\napiVersion: v1\nmetadata:\n  name: {name}\n  labels:\n    name: {name}"
