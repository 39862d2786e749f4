"""Configuration models and helpers for the cluster pool cleanup controller."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

FINALIZER = "clusterpools-controller.open-cluster-management.io/cleanup"
LABEL_NAMESPACE = "open-cluster-management.io/managed-by"
CLUSTERPOOLS = "clusterpools"


class ControllerContext(BaseModel):
    """Connection context to interact with the hub cluster."""

    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    verify_ssl: bool = True
    namespaces: List[str] = Field(default_factory=list)

    @property
    def clusterwide(self) -> bool:
        return not self.namespaces


class CleanupConfig(BaseModel):
    """Controller settings: where to connect and how teardown is gated."""

    context: ControllerContext = Field(default_factory=ControllerContext)
    finalizer: str = FINALIZER
    managed_label_key: str = LABEL_NAMESPACE
    managed_label_value: str = CLUSTERPOOLS
    max_concurrent_reconciles: int = Field(default=1, ge=1)
    retry_delay: int = Field(default=60, ge=1)

    @classmethod
    def from_file(cls, path: str | Path) -> "CleanupConfig":
        document_path = Path(path)
        data = yaml.safe_load(document_path.read_text())
        if not isinstance(data, dict):
            raise ValueError("Configuration file must contain a mapping at the top level.")
        return cls.model_validate(data)
