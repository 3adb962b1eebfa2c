"""Loopback HTTP facade over the external MCP registry."""

from .facade import FacadeServer, create_facade_app

__all__ = ["FacadeServer", "create_facade_app"]
