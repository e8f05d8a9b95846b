"""
API Routes
"""

from hllstore.api.routes import health, sketches

__all__ = ["health", "sketches"]
