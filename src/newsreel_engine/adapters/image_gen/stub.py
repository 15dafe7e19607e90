"""Stub image generation provider for testing."""

import asyncio
import hashlib

from PIL import Image, ImageDraw

from newsreel_engine.adapters.image_gen.base import (
    ImageGenProvider,
    ImageGenRequest,
    ImageGenResult,
)
from newsreel_engine.logging import get_logger
from newsreel_engine.services.grid import GRID_SIZE, encode_png

logger = get_logger(__name__)

DEFAULT_SIZES = {"9:16": (288, 512), "16:9": (512, 288)}


def _colour_for(seed: str) -> tuple[int, int, int]:
    digest = hashlib.sha256(seed.encode()).digest()
    # Channels stay above 64 so placeholders never read as empty cells
    return (64 + digest[0] % 192, 64 + digest[1] % 192, 64 + digest[2] % 192)


class StubImageGenProvider(ImageGenProvider):
    """Draws flat-colour PNGs locally.

    Like the real models, the stub does not honour large requested sizes: the
    longest side is capped at ``max_side``. When the request carries a grid
    layout in ``options["layout"]`` the image is drawn as a 3x3 grid where each
    occupied cell gets its own colour and empty cells stay black.
    """

    def __init__(self, model: str = "stub-image", max_side: int = 512, latency_ms: int = 0) -> None:
        super().__init__(model)
        self.max_side = max_side
        self.latency_ms = latency_ms

    @property
    def name(self) -> str:
        return "stub"

    def _size_for(self, request: ImageGenRequest) -> tuple[int, int]:
        default_w, default_h = DEFAULT_SIZES.get(request.aspect_ratio, (512, 512))
        width = request.width or default_w
        height = request.height or default_h
        scale = min(1.0, self.max_side / max(width, height))
        return max(GRID_SIZE, int(width * scale)), max(GRID_SIZE, int(height * scale))

    async def generate(self, request: ImageGenRequest) -> ImageGenResult:
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)

        width, height = self._size_for(request)
        image = Image.new("RGB", (width, height), _colour_for(request.prompt))

        layout = request.options.get("layout")
        if layout is not None:
            draw = ImageDraw.Draw(image)
            cell_w, cell_h = width // GRID_SIZE, height // GRID_SIZE
            for cell in layout.positions:
                row, col = divmod(cell.cell, GRID_SIZE)
                fill = (0, 0, 0) if cell.is_empty else _colour_for(f"{request.prompt}:{cell.cell}")
                draw.rectangle(
                    (col * cell_w, row * cell_h, (col + 1) * cell_w - 1, (row + 1) * cell_h - 1),
                    fill=fill,
                )

        data = encode_png(image)
        logger.info(
            "stub_image_generated",
            prompt_length=len(request.prompt),
            size=f"{width}x{height}",
            grid=layout is not None,
        )
        return ImageGenResult(
            success=True,
            image_data=data,
            mime_type="image/png",
            metadata={"provider": self.name, "model": self.model},
        )
