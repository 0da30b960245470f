"""
Data Models
===========

Pydantic models for credentials, proxy requests, render jobs and API envelopes.
"""
