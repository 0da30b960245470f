"""
API Routes
==========

Routers for proxy, graph and health endpoints.
"""
