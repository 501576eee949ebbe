"""
registry.py - Supported collateral assets and their price feeds

The registry is built once from parallel lists of asset identifiers and price
feeds and is read-only afterwards. Its asset order is the registration order
and drives the deterministic summation of collateral value.
"""

from __future__ import annotations
from typing import Dict, Optional, Sequence, Tuple

from .core import PriceFeed, ConfigurationMismatch, UnsupportedAsset


class CollateralAssetRegistry:
    """
    Immutable mapping of collateral asset -> price feed.

    Example:
        registry = CollateralAssetRegistry(["WETH", "WBTC"], [eth_usd, btc_usd])
        registry.feed_of("WETH")   # eth_usd
        registry.all_assets()      # ("WETH", "WBTC")
    """

    __slots__ = ("_assets", "_feeds")

    def __init__(self, assets: Sequence[str], feeds: Sequence[PriceFeed]):
        """
        Raises:
            ConfigurationMismatch: If the lists differ in length, an asset is
                listed twice, or a feed is missing
        """
        assets = tuple(assets)
        feeds = tuple(feeds)
        if len(assets) != len(feeds):
            raise ConfigurationMismatch(
                f"Asset and price feed lists must be the same length "
                f"({len(assets)} assets, {len(feeds)} feeds)"
            )

        mapping: Dict[str, PriceFeed] = {}
        for asset, feed in zip(assets, feeds):
            if not asset:
                raise ConfigurationMismatch("Asset identifier cannot be empty")
            if feed is None:
                raise ConfigurationMismatch(f"Asset {asset} has no price feed")
            if asset in mapping:
                raise ConfigurationMismatch(f"Asset {asset} registered twice")
            mapping[asset] = feed

        object.__setattr__(self, "_assets", assets)
        object.__setattr__(self, "_feeds", mapping)

    def __setattr__(self, name, value):
        raise AttributeError("CollateralAssetRegistry is read-only")

    def is_supported(self, asset: str) -> bool:
        return asset in self._feeds

    def feed_of(self, asset: str) -> Optional[PriceFeed]:
        """Price feed for an asset, or None if the asset is not supported."""
        return self._feeds.get(asset)

    def require_supported(self, asset: str) -> PriceFeed:
        """Price feed for an asset; raises UnsupportedAsset if not registered."""
        feed = self._feeds.get(asset)
        if feed is None:
            raise UnsupportedAsset(f"Asset {asset} is not an allowed collateral")
        return feed

    def all_assets(self) -> Tuple[str, ...]:
        """All supported assets in registration order."""
        return self._assets

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset: str) -> bool:
        return asset in self._feeds

    def __repr__(self) -> str:
        return f"CollateralAssetRegistry({', '.join(self._assets)})"
