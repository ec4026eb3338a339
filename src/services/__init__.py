"""Application services for the housing data API."""

from .housing_service import HousingService, parse_list_param

__all__ = ["HousingService", "parse_list_param"]
