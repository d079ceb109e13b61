"""
Delta Capture and Replay Engine

Trigger-based row change capture into an append-only delta log, and ordered
replay of that log into a restored database.
"""

__version__ = "0.1.0"
