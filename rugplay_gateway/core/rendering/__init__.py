"""
Rendering Module
===============

Graph rendering offloaded to a subprocess over standard input/output.

Components:
- orchestrator: Subprocess lifecycle, bounded output collection and timeouts
- coingraph_generator: Bundled Pillow chart renderer used as the default subprocess
"""
