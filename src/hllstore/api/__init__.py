"""
API Module - HTTP interface to a HyperLogLogCounter.
"""

from hllstore.api.app import create_app

__all__ = ["create_app"]
