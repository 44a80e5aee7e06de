# app/routers/__init__.py
from . import health, appointments, providers, portal

__all__ = ["health", "appointments", "providers", "portal"]
