"""Domain enumerations."""

from enum import StrEnum


class VideoType(StrEnum):
    """Output format of a video; drives aspect ratio and slide count."""

    SHORT = "short"
    LONG = "long"


class ScriptStatus(StrEnum):
    """Status of script generation for a video."""

    PENDING = "pending"
    GENERATING = "generating"
    GENERATED = "generated"
    ERROR = "error"


class AssetStatus(StrEnum):
    """Status of the asset generation pipeline for a video."""

    PENDING = "pending"
    GENERATING = "generating"
    GENERATED = "generated"
    ERROR = "error"


class RenderStatus(StrEnum):
    """Status of the render pipeline for a video."""

    PENDING = "pending"
    RENDERING = "rendering"
    RENDERED = "rendered"
    ERROR = "error"


class UploadStatus(StrEnum):
    """Publish gate status for a video."""

    PENDING = "pending"
    BLOCKED = "blocked"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    ERROR = "error"


class AssetType(StrEnum):
    """Kinds of generated artifacts stored per video."""

    GRID_IMAGE = "grid_image"
    SLIDE_IMAGE = "slide_image"
    THUMBNAIL_IMAGE = "thumbnail_image"
    SLIDE_AUDIO = "slide_audio"
    IMAGE_GENERATION_PROMPT = "image_generation_prompt"
    RENDERED_VIDEO = "rendered_video"


class PolicyStage(StrEnum):
    """The two policy checks a video goes through."""

    SCRIPT_LIGHT = "script-light"
    ASSET_STRONG = "asset-strong"


class PolicyFindingStatus(StrEnum):
    """Verdict of a single policy rule, in increasing severity."""

    PASS = "PASS"
    WARN = "WARN"
    REVIEW = "REVIEW"
    BLOCK = "BLOCK"


class PolicyStageStatus(StrEnum):
    """Aggregated verdict for a stage (or the whole video)."""

    PENDING = "PENDING"
    CLEAN = "CLEAN"
    WARN = "WARN"
    REVIEW = "REVIEW"
    BLOCK = "BLOCK"


class PublishPrivacy(StrEnum):
    """Visibility a video may be published with."""

    PUBLIC = "public"
    PRIVATE = "private"


class CostLogType(StrEnum):
    """Billable call categories recorded in the cost log."""

    IMAGE_GENERATION = "image-generation"
    AUDIO_GENERATION = "audio-generation"
    POLICY_SCRIPT_LIGHT = "policy-script-light"
    POLICY_ASSET_STRONG = "policy-asset-strong"
