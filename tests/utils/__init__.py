"""
Test Utilities
==============

Shared fakes for upstream sessions and render subprocess scripts.
"""
