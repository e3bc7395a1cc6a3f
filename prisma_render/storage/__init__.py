"""Storage utilities for generated assets"""

from .asset_store import (
    AssetStore,
    LocalAssetStore,
    GCSAssetStore,
    default_asset_store,
)

__all__ = [
    'AssetStore',
    'LocalAssetStore',
    'GCSAssetStore',
    'default_asset_store',
]
