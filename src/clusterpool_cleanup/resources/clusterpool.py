"""Hive ClusterPool view used by the cleanup controller."""
from __future__ import annotations

import copy
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..utils import deep_merge
from .base import ObjectKey, ResourceModel, ref_name

CLUSTERPOOL_API_VERSION = "hive.openshift.io/v1"
CLUSTERPOOL_KIND = "ClusterPool"


class PlatformKind(str, Enum):
    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"
    NONE = "none"


# Probe order when more than one platform block is set.
_SUPPORTED_PLATFORMS = (PlatformKind.AWS, PlatformKind.GCP, PlatformKind.AZURE)


class Platform(ResourceModel):
    """Platform a pool provisions on, with its provider credential secret."""

    kind: PlatformKind = PlatformKind.NONE
    credentials_secret_name: Optional[str] = Field(default=None, alias="credentialsSecretName")

    @classmethod
    def from_spec(cls, platform: Optional[Dict[str, Any]]) -> "Platform":
        platform = platform or {}
        for kind in _SUPPORTED_PLATFORMS:
            block = platform.get(kind.value)
            if block is not None:
                return cls(
                    kind=kind,
                    credentials_secret_name=ref_name(block, "credentialsSecretRef"),
                )
        return cls()

    def shares_credentials_with(self, other: "Platform") -> bool:
        """True when ``other`` is the same platform kind using the same credential secret."""

        if self.kind is PlatformKind.NONE or other.kind is not self.kind:
            return False
        return self.credentials_secret_name is not None and (
            self.credentials_secret_name == other.credentials_secret_name
        )


class ClusterPool(ResourceModel):
    """The fields of a ClusterPool that govern teardown of its shared resources."""

    name: str
    namespace: str
    deletion_timestamp: Optional[str] = Field(default=None, alias="deletionTimestamp")
    finalizers: List[str] = Field(default_factory=list)
    resource_version: Optional[str] = Field(default=None, alias="resourceVersion")
    platform: Platform = Field(default_factory=Platform)
    pull_secret_name: Optional[str] = Field(default=None, alias="pullSecretName")
    install_config_secret_name: Optional[str] = Field(default=None, alias="installConfigSecretName")
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, body: Dict[str, Any]) -> "ClusterPool":
        metadata = body.get("metadata") or {}
        spec = body.get("spec") or {}
        name = metadata.get("name")
        namespace = metadata.get("namespace")
        if not name or not namespace:
            raise ValueError("ClusterPool objects must carry metadata.name and metadata.namespace.")
        return cls(
            name=name,
            namespace=namespace,
            deletion_timestamp=metadata.get("deletionTimestamp"),
            finalizers=list(metadata.get("finalizers") or []),
            resource_version=metadata.get("resourceVersion"),
            platform=Platform.from_spec(spec.get("platform")),
            pull_secret_name=ref_name(spec, "pullSecretRef"),
            install_config_secret_name=ref_name(spec, "installConfigSecretTemplateRef"),
            raw=copy.deepcopy(body),
        )

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(namespace=self.namespace, name=self.name)

    @property
    def is_deleting(self) -> bool:
        return self.deletion_timestamp is not None

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.finalizers

    def with_finalizer(self, finalizer: str) -> "ClusterPool":
        if self.has_finalizer(finalizer):
            return self.model_copy(deep=True)
        return self.model_copy(update={"finalizers": [*self.finalizers, finalizer]}, deep=True)

    def without_finalizer(self, finalizer: str) -> "ClusterPool":
        remaining = [item for item in self.finalizers if item != finalizer]
        return self.model_copy(update={"finalizers": remaining}, deep=True)

    def to_dict(self) -> Dict[str, Any]:
        """Return the raw object with the controller-owned metadata applied."""

        metadata: Dict[str, Any] = {"finalizers": list(self.finalizers)}
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        body = deep_merge(self.raw, {"metadata": metadata})
        body.setdefault("apiVersion", CLUSTERPOOL_API_VERSION)
        body.setdefault("kind", CLUSTERPOOL_KIND)
        body["metadata"].setdefault("name", self.name)
        body["metadata"].setdefault("namespace", self.namespace)
        return body
