"""Offline-first synchronization core.

Local writes land first, remote writes are attempted opportunistically, and
anything that cannot reach the server is queued as a durable job for replay.
"""

__version__ = "0.1.0"
