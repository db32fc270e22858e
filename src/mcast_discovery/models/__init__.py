"""
Pydantic models for mcast-discovery.
"""
from .common import BasePydanticModel, Endpoint
from .service import Service

__all__ = [
    "BasePydanticModel",
    "Endpoint",
    "Service",
]
