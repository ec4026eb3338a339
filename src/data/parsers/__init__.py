"""Data parsers for the housing dataset."""

from .housing_csv import HousingCSVParser

__all__ = ["HousingCSVParser"]
