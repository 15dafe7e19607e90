"""Video composition renderers."""

from newsreel_engine.adapters.renderer.base import (
    OUTPUT_DIMENSIONS,
    RendererProvider,
    RenderJob,
    RenderResult,
)
from newsreel_engine.adapters.renderer.e2b_remotion import E2BRemotionRenderer
from newsreel_engine.adapters.renderer.stub import StubRendererProvider

__all__ = [
    "E2BRemotionRenderer",
    "OUTPUT_DIMENSIONS",
    "RenderJob",
    "RenderResult",
    "RendererProvider",
    "StubRendererProvider",
]
