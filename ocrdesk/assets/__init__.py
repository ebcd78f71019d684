"""
Model/language asset handling

AssetStore says where files live, AssetFetcher downloads the missing ones.
"""

from .fetcher import AssetFetcher, AssetProgress, ProgressStage
from .store import AssetSpec, AssetStore

__all__ = [
    "AssetFetcher",
    "AssetProgress",
    "ProgressStage",
    "AssetSpec",
    "AssetStore",
]
