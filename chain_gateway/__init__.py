"""
Chain Gateway

Orchestration layer that runs declarative module chains.
"""

__version__ = "1.0.0"
