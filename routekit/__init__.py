"""Composable HTTP middleware, handler chains and a per-request routing context."""

__version__ = "0.1.0"