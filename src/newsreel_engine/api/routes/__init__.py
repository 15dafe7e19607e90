"""API route modules."""

from newsreel_engine.api.routes import health, videos

__all__ = ["health", "videos"]
