"""Configuration module for SQL MI migration runs."""

from .settings import Settings, get_settings
from .azure_clients import AzureClients, get_azure_clients

__all__ = ["Settings", "get_settings", "AzureClients", "get_azure_clients"]
