"""Shop Boost: shop-health scoring from uploaded history exports."""

__version__ = "0.1.0"
