"""
Alert state store shared by the scheduled jobs.
"""

import threading
from typing import Iterable, Optional

from .models import AssetState, AthRecord, RecapState


class AlertStateStore:
    """
    Owner of all mutable alert state, keyed by asset id.

    The scheduled jobs run on separate threads, so callers must hold
    ``lock`` across any read-modify-write sequence.
    """

    def __init__(self, asset_ids: Optional[Iterable[str]] = None):
        self.lock = threading.RLock()
        self._assets: dict[str, AssetState] = {}
        self.recap = RecapState()
        for asset_id in asset_ids or []:
            self.get_or_create(asset_id)

    def get(self, asset_id: str) -> Optional[AssetState]:
        """Get state for an asset, or None if never seen."""
        with self.lock:
            return self._assets.get(asset_id)

    def get_or_create(self, asset_id: str) -> AssetState:
        """Get state for an asset, creating an empty record on first use."""
        with self.lock:
            state = self._assets.get(asset_id)
            if state is None:
                state = AssetState(asset_id=asset_id)
                self._assets[asset_id] = state
            return state

    def get_ath(self, asset_id: str) -> Optional[AthRecord]:
        with self.lock:
            state = self._assets.get(asset_id)
            return state.ath if state else None

    def list_all(self) -> list[AssetState]:
        """List all asset states in insertion order."""
        with self.lock:
            return list(self._assets.values())

    def __contains__(self, asset_id: str) -> bool:
        with self.lock:
            return asset_id in self._assets

    def __len__(self) -> int:
        with self.lock:
            return len(self._assets)
