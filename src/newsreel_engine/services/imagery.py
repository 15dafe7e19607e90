"""Slide imagery generation strategies.

The image model decides how slide images are produced, and the choice is made
once per video:

- ``GridCapableModel`` draws up to nine slides into one 3x3 composite per
  request and cuts the composite back into slides. Cell 8 of the last grid
  is the thumbnail.
- ``SingleImageModel`` requests each slide separately; the thumbnail is a
  copy of the final slide.

Both return the same ``SlideImagery`` value, so the pipeline never branches
on the model id.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from newsreel_engine.adapters.image_gen.base import (
    ImageGenProvider,
    ImageGenRequest,
    ReferenceImage,
)
from newsreel_engine.domain.enums import AssetType, VideoType
from newsreel_engine.domain.metadata import GridLayout, PromptMetadata, SlideImageMetadata
from newsreel_engine.domain.models import Slide, VideoScript
from newsreel_engine.errors import DataIntegrityError, PipelineError, PreconditionError
from newsreel_engine.logging import get_logger
from newsreel_engine.services.costs import CostEntry, image_cost_entry
from newsreel_engine.services.grid import (
    ASPECT_RATIOS,
    SLIDE_DIMENSIONS,
    THUMBNAIL_CELL,
    decode_image,
    max_slides_for_grids,
    plan_grid_layouts,
    split_grid,
)

logger = get_logger(__name__)

EMPTY_CELL_DESCRIPTION = (
    "A plain solid black image with absolutely no visible elements - no gradients, "
    "no patterns, no text, no highlights or shadows, just pure uniform black color "
    "(#000000) filling the entire cell area"
)
PREVIOUS_GRID_NOTE = (
    "IMPORTANT: Match the visual style, color palette, and artistic approach from the "
    "previous grid image."
)
REFERENCE_IMAGES_NOTE = (
    "REFERENCE IMAGES: The images above show the actual subjects, people, locations, and "
    "visual elements from the news article. Use them as visual reference to accurately "
    "depict the story content."
)


@dataclass(frozen=True)
class ImageModelSpec:
    """Capabilities of an image generation model."""

    model_id: str
    supports_grid: bool
    resolution: str = "1K"


IMAGE_MODELS: dict[str, ImageModelSpec] = {
    "gemini-3-pro-image-preview": ImageModelSpec(
        "gemini-3-pro-image-preview", supports_grid=True, resolution="4K"
    ),
    "gemini-2.5-flash-image": ImageModelSpec(
        "gemini-2.5-flash-image", supports_grid=False, resolution="1K"
    ),
}


@dataclass
class GeneratedImage:
    """An image ready for upload, with the metadata its asset row will carry."""

    asset_type: AssetType
    asset_index: int
    data: bytes
    mime_type: str
    metadata: SlideImageMetadata | GridLayout


@dataclass
class GeneratedPrompt:
    """A grid prompt kept for audit."""

    grid_index: int
    text: str
    metadata: PromptMetadata


@dataclass
class SlideImagery:
    """Everything one imagery run produced."""

    slides: list[GeneratedImage]
    thumbnail: GeneratedImage
    grids: list[GeneratedImage] = field(default_factory=list)
    prompts: list[GeneratedPrompt] = field(default_factory=list)
    costs: list[CostEntry] = field(default_factory=list)

    @property
    def images(self) -> list[GeneratedImage]:
        return [*self.slides, self.thumbnail, *self.grids]


def _aspect_description(video_type: VideoType) -> str:
    if video_type == VideoType.SHORT:
        return "vertical (portrait)"
    return "horizontal (landscape)"


def build_grid_prompt(script: VideoScript, layout: GridLayout, video_type: VideoType) -> str:
    """Prompt for one 3x3 composite, listing what goes in every cell."""
    cells: list[str] = []
    for cell in layout.positions:
        if cell.is_thumbnail:
            cells.append(f"Position {cell.cell} (Thumbnail): {script.thumbnail_description}")
        elif cell.slide_index is not None:
            slide = script.slides[cell.slide_index]
            cells.append(
                f"Position {cell.cell} (Slide {cell.slide_index + 1}): {slide.image_description}"
            )
        else:
            cells.append(f"Position {cell.cell}: {EMPTY_CELL_DESCRIPTION}")

    style = (
        "Dramatic, attention-grabbing visuals suitable for social media shorts"
        if video_type == VideoType.SHORT
        else "Professional, cinematic quality suitable for YouTube videos"
    )
    return "\n".join(
        [
            f"TASK: Generate a single {layout.width}x{layout.height} pixel image containing a "
            f"3x3 grid of {_aspect_description(video_type)} images.",
            "",
            "GRID LAYOUT:",
            "- The output is ONE image divided into a 3x3 grid",
            f"- Each cell is {layout.cell_width}x{layout.cell_height} pixels",
            "- Cells are numbered left-to-right, top-to-bottom: positions 0-8",
            "",
            "FRAME ISOLATION (CRITICAL):",
            "- Each cell's content must stay STRICTLY within its boundaries",
            "- Use at most 1-3 pixels of separation between cells",
            "- No text or object may cross a cell border",
            "",
            "STYLE REQUIREMENTS:",
            "- Consistent visual style across ALL cells",
            f"- {style}",
            "- High contrast, vibrant colors",
            "- Clear focal points in each cell",
            "",
            "CELL CONTENTS:",
            *cells,
            "",
            "CRITICAL: Generate exactly ONE image with all cells combined. "
            "Do NOT generate separate images.",
        ]
    )


def build_slide_prompt(slide: Slide, width: int, height: int, aspect_ratio: str) -> str:
    """Prompt for one individually generated slide."""
    composition = (
        "Vertical composition optimized for mobile viewing"
        if aspect_ratio == "9:16"
        else "Horizontal composition optimized for desktop viewing"
    )
    return "\n".join(
        [
            f"TASK: Generate a single {width}x{height} pixel image ({aspect_ratio} aspect ratio).",
            "",
            f"SUBJECT: {slide.headline}",
            "",
            f"DESCRIPTION: {slide.image_description}",
            "",
            "STYLE REQUIREMENTS:",
            "- High quality, detailed image",
            "- High contrast, vibrant colors",
            "- Clear focal point",
            f"- {composition}",
            "",
            "Generate exactly ONE image.",
        ]
    )


class SlideImageryGenerator(ABC):
    """Produces every slide image and the thumbnail for a script."""

    def __init__(self, provider: ImageGenProvider, spec: ImageModelSpec) -> None:
        self.provider = provider
        self.spec = spec

    @property
    def model_id(self) -> str:
        return self.spec.model_id

    @property
    def replaced_asset_types(self) -> tuple[AssetType, ...]:
        """Asset types a run of this generator fully replaces."""
        return (
            AssetType.SLIDE_IMAGE,
            AssetType.THUMBNAIL_IMAGE,
            AssetType.GRID_IMAGE,
            AssetType.IMAGE_GENERATION_PROMPT,
        )

    @abstractmethod
    async def generate_slide_imagery(
        self,
        script: VideoScript,
        video_type: VideoType,
        reference_images: list[ReferenceImage] | None = None,
    ) -> SlideImagery:
        """Generate one image per slide plus a thumbnail."""
        ...


class GridCapableModel(SlideImageryGenerator):
    """One request per 3x3 grid, decomposed into slides."""

    async def generate_slide_imagery(
        self,
        script: VideoScript,
        video_type: VideoType,
        reference_images: list[ReferenceImage] | None = None,
    ) -> SlideImagery:
        layouts = plan_grid_layouts(len(script.slides), video_type, self.spec.resolution)
        references = list(reference_images or [])

        slides: list[GeneratedImage] = []
        grids: list[GeneratedImage] = []
        prompts: list[GeneratedPrompt] = []
        costs: list[CostEntry] = []
        thumbnail: GeneratedImage | None = None
        previous_grid: ReferenceImage | None = None

        for layout in layouts:
            prompt = build_grid_prompt(script, layout, video_type)
            notes = []
            if previous_grid is not None:
                notes.append(PREVIOUS_GRID_NOTE)
            if references:
                notes.append(REFERENCE_IMAGES_NOTE)
            full_prompt = "\n\n".join([prompt, *notes])

            logger.info(
                "grid_generation_started",
                grid_index=layout.grid_index,
                model=self.model_id,
                has_previous_grid=previous_grid is not None,
                reference_count=len(references),
            )
            result = await self.provider.generate(
                ImageGenRequest(
                    prompt=full_prompt,
                    aspect_ratio=layout.aspect_ratio,
                    image_size=self.spec.resolution,
                    width=layout.width,
                    height=layout.height,
                    reference_images=references
                    + ([previous_grid] if previous_grid is not None else []),
                    options={"layout": layout},
                )
            )
            if not result.success or not result.image_data:
                raise PipelineError(
                    f"Grid {layout.grid_index} generation failed: {result.error_message}"
                )
            costs.append(
                image_cost_entry(self.model_id, result.input_tokens, result.output_tokens)
            )

            split = split_grid(result.image_data, layout)
            grid_layout = split.layout.model_copy(update={"model": self.model_id})
            grids.append(
                GeneratedImage(
                    asset_type=AssetType.GRID_IMAGE,
                    asset_index=layout.grid_index,
                    data=result.image_data,
                    mime_type=result.mime_type,
                    metadata=grid_layout,
                )
            )
            prompts.append(
                GeneratedPrompt(
                    grid_index=layout.grid_index,
                    text=full_prompt,
                    metadata=PromptMetadata(
                        grid_index=layout.grid_index,
                        model=self.model_id,
                        resolution=self.spec.resolution,
                    ),
                )
            )
            for piece in split.slides:
                slides.append(
                    GeneratedImage(
                        asset_type=AssetType.SLIDE_IMAGE,
                        asset_index=piece.slide_index,  # type: ignore[arg-type]
                        data=piece.data,
                        mime_type=piece.mime_type,
                        metadata=SlideImageMetadata(
                            slide_index=piece.slide_index,
                            width=piece.width,
                            height=piece.height,
                            model=self.model_id,
                            grid_index=layout.grid_index,
                            cell=piece.cell,
                        ),
                    )
                )
            if split.thumbnail is not None:
                thumbnail = GeneratedImage(
                    asset_type=AssetType.THUMBNAIL_IMAGE,
                    asset_index=0,
                    data=split.thumbnail.data,
                    mime_type=split.thumbnail.mime_type,
                    metadata=SlideImageMetadata(
                        width=split.thumbnail.width,
                        height=split.thumbnail.height,
                        model=self.model_id,
                        grid_index=layout.grid_index,
                        cell=THUMBNAIL_CELL,
                        is_thumbnail=True,
                    ),
                )
            previous_grid = ReferenceImage(
                data=result.image_data, mime_type=result.mime_type, label="previous-grid"
            )

        produced = {s.asset_index for s in slides}
        missing = sorted(set(range(len(script.slides))) - produced)
        if missing:
            raise DataIntegrityError(f"Grid decomposition produced no image for slides {missing}")
        if thumbnail is None:
            raise DataIntegrityError("Grid decomposition produced no thumbnail")

        slides.sort(key=lambda s: s.asset_index)
        return SlideImagery(
            slides=slides, thumbnail=thumbnail, grids=grids, prompts=prompts, costs=costs
        )


class SingleImageModel(SlideImageryGenerator):
    """One request per slide; the final slide doubles as the thumbnail."""

    async def generate_slide_imagery(
        self,
        script: VideoScript,
        video_type: VideoType,
        reference_images: list[ReferenceImage] | None = None,
    ) -> SlideImagery:
        aspect_ratio = ASPECT_RATIOS[video_type]
        width, height = SLIDE_DIMENSIONS[video_type]
        references = list(reference_images or [])

        slides: list[GeneratedImage] = []
        costs: list[CostEntry] = []
        for index, slide in enumerate(script.slides):
            prompt = build_slide_prompt(slide, width, height, aspect_ratio)
            if references:
                prompt = f"{prompt}\n\n{REFERENCE_IMAGES_NOTE}"
            result = await self.provider.generate(
                ImageGenRequest(
                    prompt=prompt,
                    aspect_ratio=aspect_ratio,
                    width=width,
                    height=height,
                    reference_images=references,
                )
            )
            if not result.success or not result.image_data:
                raise PipelineError(f"Slide {index} image generation failed: {result.error_message}")
            costs.append(
                image_cost_entry(self.model_id, result.input_tokens, result.output_tokens)
            )

            decoded = decode_image(result.image_data)
            slides.append(
                GeneratedImage(
                    asset_type=AssetType.SLIDE_IMAGE,
                    asset_index=index,
                    data=result.image_data,
                    mime_type=result.mime_type,
                    metadata=SlideImageMetadata(
                        slide_index=index,
                        width=decoded.width,
                        height=decoded.height,
                        model=self.model_id,
                    ),
                )
            )
            logger.info("slide_image_generated", slide_index=index, model=self.model_id)

        last = slides[-1]
        thumbnail = GeneratedImage(
            asset_type=AssetType.THUMBNAIL_IMAGE,
            asset_index=0,
            data=bytes(last.data),
            mime_type=last.mime_type,
            metadata=last.metadata.model_copy(
                update={"slide_index": None, "is_thumbnail": True}
            ),
        )
        return SlideImagery(slides=slides, thumbnail=thumbnail, costs=costs)


def get_image_model(model_id: str) -> ImageModelSpec:
    try:
        return IMAGE_MODELS[model_id]
    except KeyError:
        raise PreconditionError(f"Unknown image model: {model_id}") from None


def check_slide_capacity(spec: ImageModelSpec, slide_count: int) -> None:
    """Fail before any generation when the script cannot be drawn by the model."""
    if spec.supports_grid and slide_count > max_slides_for_grids():
        raise PreconditionError(
            f"{slide_count} slides exceed the grid capacity of {max_slides_for_grids()}"
        )


def select_imagery_generator(model_id: str, provider: ImageGenProvider) -> SlideImageryGenerator:
    """Pick the imagery strategy for an image model.

    Raises:
        PreconditionError: unknown image model
    """
    spec = get_image_model(model_id)
    if spec.supports_grid:
        return GridCapableModel(provider, spec)
    return SingleImageModel(provider, spec)
