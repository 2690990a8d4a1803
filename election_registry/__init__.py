"""Election registry: registry core (shared) and its HTTP service (registry_api)."""

__version__ = '1.0.0'
