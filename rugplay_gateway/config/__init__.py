"""
Configuration Management
=======================

Environment-based configuration using Pydantic Settings.

Components:
- settings: Immutable application settings built once at startup
- logging: Structured logging configuration
"""
