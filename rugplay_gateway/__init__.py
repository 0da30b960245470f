"""
Rugplay Gateway
===============

Backend gateway for the Rugplay market-data API.

This package provides:
- Credential selection per deployment mode (server-held or caller-supplied key)
- Proxy endpoints relaying market data from the upstream API
- Graph rendering offloaded to a subprocess over standard input/output
- A bundled Pillow chart renderer used as the default render subprocess
"""

__version__ = "1.0.0"
__author__ = "Rugplay Gateway Team"
