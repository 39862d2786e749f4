"""Secret references held by cluster pools."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SecretSlot(str, Enum):
    """The secret references a cluster pool carries, in teardown order."""

    INSTALL_CONFIG = "install-config"
    PULL = "pull"
    PROVIDER_CREDENTIALS = "provider-credentials"

    @property
    def label(self) -> str:
        return _SLOT_LABELS[self]


_SLOT_LABELS = {
    SecretSlot.INSTALL_CONFIG: "install-config secret",
    SecretSlot.PULL: "pull secret",
    SecretSlot.PROVIDER_CREDENTIALS: "provider credential secret",
}


@dataclass(frozen=True)
class SecretRef:
    """Pointer to a secret in the pool's namespace."""

    slot: SecretSlot
    namespace: str
    name: str
