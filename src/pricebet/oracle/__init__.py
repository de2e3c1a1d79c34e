"""Price feeds sampled by the settlement engine."""

from .static import FetchPrice, RandomWalkOracle, StaticPriceOracle

__all__ = ["FetchPrice", "RandomWalkOracle", "StaticPriceOracle"]
