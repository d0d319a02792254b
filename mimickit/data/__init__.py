"""Static reference data."""

from .tech_registry import TECH_REGISTRY, lookup_technology

__all__ = ["TECH_REGISTRY", "lookup_technology"]
