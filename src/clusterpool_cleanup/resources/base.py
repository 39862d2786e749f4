"""Shared resource definitions for cluster pool cleanup."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class ResourceModel(BaseModel):
    """Shared base model for resource views parsed from API objects."""

    model_config = ConfigDict(populate_by_name=True)


@dataclass(frozen=True)
class ObjectKey:
    """Namespaced name identifying an object in the resource store."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


def ref_name(body: Optional[Dict[str, Any]], *path: str) -> Optional[str]:
    """Follow ``path`` through nested mappings and return the ``name`` found there.

    Empty names are reported as ``None``.
    """

    node: Any = body or {}
    for segment in path:
        if not isinstance(node, dict):
            return None
        node = node.get(segment)
    if not isinstance(node, dict):
        return None
    return node.get("name") or None
