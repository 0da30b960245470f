"""
Core Module
===========

Business logic for the gateway.

Components:
- upstream: Credential selection and the outbound market-data client
- rendering: Render subprocess orchestration and the bundled chart renderer
"""
