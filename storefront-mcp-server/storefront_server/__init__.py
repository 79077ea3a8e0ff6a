"""Storefront MCP Server: catalog browsing, variant selection and a persistent cart."""

__version__ = "0.1.0"
