"""Domain models for a provisioning run."""

from __future__ import annotations

from .models import (
    BackingStoreSpec,
    CompatibilityDecision,
    CompatibilityOutcome,
    MountDecision,
    MountSpec,
    PackageSet,
    PromptState,
    ServiceUnit,
    ShareStanza,
)


__all__ = [
    "BackingStoreSpec",
    "CompatibilityDecision",
    "CompatibilityOutcome",
    "MountDecision",
    "MountSpec",
    "PackageSet",
    "PromptState",
    "ServiceUnit",
    "ShareStanza",
]
