"""
Upstream Module
===============

Outbound access to the Rugplay market-data API.

Components:
- credentials: Per-mode bearer token and header selection
- client: URL construction and the single-GET aiohttp client
"""
