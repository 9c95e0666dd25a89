"""
Services package for geocoding and the map read API.
"""

from . import geocode_batch
from . import geocoding
from . import rate_limit
from . import stores

__all__ = ["geocode_batch", "geocoding", "rate_limit", "stores"]
