"""Shopify order manager: cached CLI wrapper over an MCP bridge to the Admin API."""

__version__ = "1.0.0"
