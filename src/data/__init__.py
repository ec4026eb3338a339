from .housing_cache import HousingDataCache
from .static_data import StaticDataProvider

__all__ = [
    "HousingDataCache",
    "StaticDataProvider",
]
