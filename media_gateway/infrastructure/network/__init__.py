"""
Network access for the offline cache shim (httpx).
"""

from .client import HttpxNetwork

__all__ = ["HttpxNetwork"]
