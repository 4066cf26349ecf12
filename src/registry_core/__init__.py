"""Metadata core for a package registry."""

from .service.facade import RegistryFacade, get_registry_facade

__all__ = ["RegistryFacade", "get_registry_facade"]
