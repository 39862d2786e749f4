"""Utility helpers shared across the cluster pool cleanup package."""
from __future__ import annotations

import copy
from typing import Any, Dict


def deep_merge(base: Dict[str, Any], new: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep merge of ``base`` with ``new`` without mutating the inputs."""

    merged: Dict[str, Any] = copy.deepcopy(base)
    for key, value in new.items():
        if isinstance(value, dict):
            base_sub = merged.get(key, {})
            if not isinstance(base_sub, dict):
                merged[key] = copy.deepcopy(value)
            else:
                merged[key] = deep_merge(base_sub, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def create_merge_patch(original: Dict[str, Any], modified: Dict[str, Any]) -> Dict[str, Any]:
    """Return the JSON merge patch (RFC 7386) that turns ``original`` into ``modified``.

    Keys dropped from ``modified`` are emitted as ``None`` so the server removes
    them. Lists are replaced wholesale, as merge patch semantics require.
    """

    patch: Dict[str, Any] = {}
    for key in original:
        if key not in modified:
            patch[key] = None
    for key, value in modified.items():
        if key not in original:
            patch[key] = copy.deepcopy(value)
            continue
        previous = original[key]
        if isinstance(value, dict) and isinstance(previous, dict):
            nested = create_merge_patch(previous, value)
            if nested:
                patch[key] = nested
        elif value != previous:
            patch[key] = copy.deepcopy(value)
    return patch
