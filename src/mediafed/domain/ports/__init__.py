"""Domain port definitions for adapters."""

from __future__ import annotations

from .peers import PeerCatalogClient
from .settings import FederationSettingsSnapshot, SettingsRepository

__all__ = ["FederationSettingsSnapshot", "PeerCatalogClient", "SettingsRepository"]
