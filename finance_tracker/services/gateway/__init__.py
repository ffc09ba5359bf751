"""
Remote Data Gateway Package

Authenticated CRUD against the backend REST API.
"""

from finance_tracker.services.gateway.client import RestGateway
from finance_tracker.services.gateway.interface import (
    ConfigurationError,
    GatewayInterface,
    RequestError,
)
from finance_tracker.services.gateway.retry import retry_request

__all__ = [
    "ConfigurationError",
    "GatewayInterface",
    "RequestError",
    "RestGateway",
    "retry_request",
]
