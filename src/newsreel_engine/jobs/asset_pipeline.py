"""Asset generation pipeline.

Pipeline steps:
1. validate - script generated, no asset run in flight
2. select-voice - pin the narration voice and claim the video
3. fetch-reference-images - source article photos
4. generate-images - grid or per-slide imagery, chosen from the image model
5. persist-images - upload and full-replace image assets
6. log-image-costs - one cost log row per generation call
7. clear-audio / generate-audio - narration per slide, bounded in parallel
8. asset-policy-check - image-aware policy review
9. complete - asset_status = generated, resolve the upload gate
10. enqueue-render - unless policy blocked

Each step runs under its own retry policy and commits its own writes, so a
retried step never sees half of a previous attempt. Audio is the exception:
every slide narrated by an attempt is stored before the attempt fails, and a
retry only generates the slides that are still missing.
"""

from dataclasses import dataclass, field
from typing import Any

from newsreel_engine.adapters.image_gen.base import ImageGenProvider, ReferenceImage
from newsreel_engine.adapters.image_gen.gemini import GeminiImageProvider
from newsreel_engine.adapters.image_gen.stub import StubImageGenProvider
from newsreel_engine.adapters.voiceover.base import VoiceoverProvider, VoiceoverRequest
from newsreel_engine.adapters.voiceover.gemini_tts import GeminiTTSProvider
from newsreel_engine.adapters.voiceover.stub import StubVoiceoverProvider
from newsreel_engine.config import settings
from newsreel_engine.db.models import VideoModel
from newsreel_engine.db.session import get_session_context
from newsreel_engine.domain.enums import (
    AssetStatus,
    AssetType,
    PolicyStageStatus,
    ScriptStatus,
    VideoType,
)
from newsreel_engine.domain.metadata import AudioMetadata
from newsreel_engine.domain.models import ArticleContext, Slide, VideoScript
from newsreel_engine.errors import (
    DataIntegrityError,
    PipelineBusyError,
    PipelineError,
    PreconditionError,
)
from newsreel_engine.jobs.policy_tasks import get_policy_checker
from newsreel_engine.jobs.render_pipeline import (
    apply_upload_gate,
    format_block_reasons,
    render_video_task,
)
from newsreel_engine.logging import get_logger, video_log_context
from newsreel_engine.services.audio import (
    get_tts_model,
    pcm_duration_ms,
    pcm_to_wav,
    pick_voice,
)
from newsreel_engine.services.costs import CostEntry, audio_cost_entry
from newsreel_engine.services.imagery import (
    SlideImagery,
    check_slide_capacity,
    get_image_model,
    select_imagery_generator,
)
from newsreel_engine.services.policy import normalize_stage_status
from newsreel_engine.services.policy_checker import PolicyCheckResult, PolicyImage
from newsreel_engine.services.policy_persistence import persist_policy_check
from newsreel_engine.services.reference_images import fetch_reference_images
from newsreel_engine.services.repository import NewAsset, VideoRepository
from newsreel_engine.services.storage import ObjectStore, get_object_store
from newsreel_engine.utils import AI_CALL, DEFAULT, run_async, run_bounded, run_step
from newsreel_engine.worker import celery_app

logger = get_logger(__name__)


def get_image_gen_provider(model: str) -> ImageGenProvider:
    """Get the configured image generation provider for an image model."""
    provider = getattr(settings, "image_gen_provider", "stub").lower()

    if provider == "gemini":
        return GeminiImageProvider(model=model)
    else:
        return StubImageGenProvider(model=model)


def get_voiceover_provider() -> VoiceoverProvider:
    """Get the configured narration provider."""
    provider = getattr(settings, "voiceover_provider", "stub").lower()

    if provider == "gemini":
        return GeminiTTSProvider()
    else:
        return StubVoiceoverProvider()


@dataclass
class AssetRunContext:
    """What the steps need from the video row, read once up front."""

    video_id: int
    script: VideoScript
    video_type: VideoType
    image_model: str
    tts_model: str
    articles: list[ArticleContext] = field(default_factory=list)
    voice: str | None = None


def policy_image_label(asset_type: str, asset_index: int) -> str:
    if asset_type == AssetType.THUMBNAIL_IMAGE.value:
        return "thumbnail"
    return f"slide-{asset_index:02d}"


def run_asset_generation(video_id: int) -> dict[str, Any]:
    """Generate every image and narration asset of a video, then policy check them.

    Returns:
        ``{"success": True, "video_id", "slide_count", "asset_count",
        "total_cost", "policy_status", "render_enqueued"}`` or
        ``{"success": False, "video_id", "error"}``. A busy abort leaves the
        video row untouched.
    """
    with video_log_context(video_id, "assets"):
        logger.info("asset_generation_started")
        try:
            return _run_asset_generation(video_id)
        except PipelineBusyError as e:
            logger.warning("asset_generation_busy", error=str(e))
            return {"success": False, "video_id": video_id, "error": str(e)}
        except Exception as e:
            logger.exception("asset_generation_failed", error=str(e))
            _record_asset_failure(video_id, str(e))
            return {"success": False, "video_id": video_id, "error": str(e)}


def _record_asset_failure(video_id: int, message: str) -> None:
    with get_session_context() as session:
        if session.get(VideoModel, video_id) is None:
            return
        VideoRepository(session).mark_asset_error(video_id, message)


def _run_asset_generation(video_id: int) -> dict[str, Any]:
    store = get_object_store()

    # Step 1: validate
    def validate() -> AssetRunContext:
        with get_session_context() as session:
            repo = VideoRepository(session)
            video = repo.get_video(video_id)
            if video.script_status != ScriptStatus.GENERATED.value:
                raise PreconditionError(
                    f"Video {video_id} script is not generated (status: {video.script_status})"
                )
            script = repo.get_script(video)
            if video.asset_status == AssetStatus.GENERATING.value:
                raise PipelineBusyError(f"Video {video_id} assets are already generating")
            ctx = AssetRunContext(
                video_id=video_id,
                script=script,
                video_type=VideoType(video.video_type),
                image_model=video.image_model or settings.default_image_model,
                tts_model=video.tts_model or settings.default_tts_model,
                articles=repo.get_articles(video),
                voice=video.tts_voice,
            )
        # Bad models or an oversized script must fail before anything is paid for
        check_slide_capacity(get_image_model(ctx.image_model), len(script.slides))
        get_tts_model(ctx.tts_model)
        return ctx

    ctx = run_step("validate", DEFAULT, validate)

    # Step 2: select voice and claim
    def select_voice() -> str:
        with get_session_context() as session:
            repo = VideoRepository(session)
            if not repo.claim_asset_generation(video_id, pick_voice(ctx.voice)):
                raise PipelineBusyError(f"Video {video_id} assets are already generating")
            voice = repo.get_video(video_id).tts_voice
            if not voice:
                raise DataIntegrityError(f"Video {video_id} has no narration voice after claim")
            return voice

    ctx.voice = run_step("select-voice", DEFAULT, select_voice)
    logger.info("narration_voice_selected", voice=ctx.voice)

    # Step 3: reference images
    references: list[ReferenceImage] = run_step(
        "fetch-reference-images",
        DEFAULT,
        lambda: run_async(fetch_reference_images(ctx.articles)),
    )

    # Step 4: imagery
    generator = select_imagery_generator(ctx.image_model, get_image_gen_provider(ctx.image_model))
    imagery: SlideImagery = run_step(
        "generate-images",
        AI_CALL,
        lambda: run_async(
            generator.generate_slide_imagery(ctx.script, ctx.video_type, references)
        ),
    )

    # Step 5: persist images
    def persist_images() -> int:
        assets = [
            NewAsset(
                image.asset_type,
                image.asset_index,
                store.put(image.data, image.mime_type),
                image.metadata,
            )
            for image in imagery.images
        ]
        assets.extend(
            NewAsset(
                AssetType.IMAGE_GENERATION_PROMPT,
                prompt.grid_index,
                store.put(prompt.text.encode("utf-8"), "text/plain"),
                prompt.metadata,
            )
            for prompt in imagery.prompts
        )
        with get_session_context() as session:
            rows = VideoRepository(session).replace_assets(
                video_id, generator.replaced_asset_types, assets
            )
            return len(rows)

    image_asset_count = run_step("persist-images", DEFAULT, persist_images)

    # Step 6: image costs
    def log_image_costs() -> float:
        with get_session_context() as session:
            repo = VideoRepository(session)
            for entry in imagery.costs:
                repo.add_cost_log(video_id, entry)
            return repo.recompute_total_cost(repo.get_video(video_id))

    run_step("log-image-costs", DEFAULT, log_image_costs)

    # Step 7: audio
    def clear_audio() -> int:
        with get_session_context() as session:
            return VideoRepository(session).delete_assets(video_id, [AssetType.SLIDE_AUDIO])

    run_step("clear-audio", DEFAULT, clear_audio)

    voiceover = get_voiceover_provider()
    run_step(
        "generate-audio",
        AI_CALL,
        lambda: generate_missing_audio(ctx, voiceover, store),
    )

    # Step 8: asset policy check
    result = run_step("asset-policy-check", AI_CALL, lambda: run_asset_policy_check(ctx, store))

    def persist_policy() -> PolicyStageStatus:
        with get_session_context() as session:
            video = VideoRepository(session).get_video(video_id)
            return persist_policy_check(session, video, result, store).overall_status

    run_step("persist-asset-policy", DEFAULT, persist_policy)

    # Step 9: complete
    def complete() -> dict[str, Any]:
        with get_session_context() as session:
            repo = VideoRepository(session)
            video = repo.get_video(video_id)
            video.asset_status = AssetStatus.GENERATED.value
            video.asset_error = None
            apply_upload_gate(video)
            overall = normalize_stage_status(video.policy_overall_status)
            if overall == PolicyStageStatus.BLOCK:
                reasons = format_block_reasons(video.policy_block_reasons)
                video.render_error = f"Policy blocked render/upload: {reasons}"
            else:
                video.render_error = None
            total_cost = repo.recompute_total_cost(video)
            audio_count = len(repo.asset_indices(video_id, AssetType.SLIDE_AUDIO))
            return {
                "policy_status": overall,
                "total_cost": total_cost,
                "audio_count": audio_count,
            }

    summary = run_step("complete", DEFAULT, complete)
    policy_status: PolicyStageStatus = summary["policy_status"]

    # Step 10: enqueue render
    render_enqueued = False
    if policy_status == PolicyStageStatus.BLOCK:
        logger.warning("render_skipped_policy_block")
    elif settings.auto_enqueue_render:
        render_video_task.delay(video_id)
        render_enqueued = True
        logger.info("render_enqueued")

    logger.info(
        "asset_generation_completed",
        slide_count=len(ctx.script.slides),
        policy_status=str(policy_status),
        total_cost=summary["total_cost"],
    )
    return {
        "success": True,
        "video_id": video_id,
        "slide_count": len(ctx.script.slides),
        "asset_count": image_asset_count + summary["audio_count"],
        "total_cost": summary["total_cost"],
        "policy_status": str(policy_status),
        "render_enqueued": render_enqueued,
    }


@dataclass
class NarratedSlide:
    """Narration of one slide, ready to store."""

    index: int
    wav: bytes
    metadata: AudioMetadata
    cost: CostEntry


def generate_missing_audio(
    ctx: AssetRunContext,
    voiceover: VoiceoverProvider,
    store: ObjectStore,
) -> list[int]:
    """Narrate every slide that has no slide_audio asset yet.

    The coroutines only call the TTS model. Once the batch settles, every
    successful slide is stored with its cost log, and only then does any
    failure raise TaskBatchError naming each failed slide.

    Returns:
        Slide indices generated by this attempt
    """
    with get_session_context() as session:
        existing = VideoRepository(session).asset_indices(ctx.video_id, AssetType.SLIDE_AUDIO)
    missing = [i for i in range(len(ctx.script.slides)) if i not in existing]
    if not missing:
        logger.info("slide_audio_complete", slide_count=len(ctx.script.slides))
        return []

    limit = get_tts_model(ctx.tts_model).concurrency
    logger.info("slide_audio_generation_started", missing=missing, concurrency=limit)
    factories = [
        (lambda i=i: generate_slide_audio(ctx, voiceover, i, ctx.script.slides[i]))
        for i in missing
    ]
    batch = run_async(run_bounded(factories, limit, indices=missing))

    narrated = [slide for _, slide in batch.ordered_results()]
    if narrated:
        store_slide_audio(ctx.video_id, narrated, store)
    batch.raise_for_errors("Audio generation partially failed", "Slide")
    return [slide.index for slide in narrated]


async def generate_slide_audio(
    ctx: AssetRunContext,
    voiceover: VoiceoverProvider,
    index: int,
    slide: Slide,
) -> NarratedSlide:
    """Narrate one slide. Duration comes from the PCM byte count."""
    result = await voiceover.generate(
        VoiceoverRequest(text=slide.narration, voice_name=ctx.voice or "", model=ctx.tts_model)
    )
    if not result.success or not result.pcm_data:
        raise PipelineError(result.error_message or "No audio data returned")

    duration_ms = pcm_duration_ms(
        len(result.pcm_data), result.sample_rate, result.channels, result.bit_depth
    )
    if duration_ms <= 0:
        raise PipelineError("Generated audio is empty")

    logger.info("slide_audio_generated", slide_index=index, duration_ms=duration_ms)
    return NarratedSlide(
        index=index,
        wav=pcm_to_wav(result.pcm_data, result.sample_rate, result.channels, result.bit_depth),
        metadata=AudioMetadata(
            slide_index=index,
            voice_name=ctx.voice or "",
            duration_ms=duration_ms,
            sample_rate=result.sample_rate,
            channels=result.channels,
            bit_depth=result.bit_depth,
            model=ctx.tts_model,
        ),
        cost=audio_cost_entry(
            ctx.tts_model, result.input_tokens, result.output_tokens, slide.narration, duration_ms
        ),
    )


def store_slide_audio(video_id: int, narrated: list[NarratedSlide], store: ObjectStore) -> None:
    """Upload narration and record each slide's asset and cost log."""
    uploads = [(slide, store.put(slide.wav, "audio/wav")) for slide in narrated]
    with get_session_context() as session:
        repo = VideoRepository(session)
        for slide, stored in uploads:
            repo.add_asset(
                video_id, NewAsset(AssetType.SLIDE_AUDIO, slide.index, stored, slide.metadata)
            )
            repo.add_cost_log(video_id, slide.cost)
        repo.recompute_total_cost(repo.get_video(video_id))
    logger.info("slide_audio_stored", slide_indices=[slide.index for slide in narrated])


def run_asset_policy_check(ctx: AssetRunContext, store: ObjectStore) -> PolicyCheckResult:
    """Review the thumbnail and slide images against the asset-strong rules."""
    if not ctx.articles:
        raise DataIntegrityError("No article context found for asset policy check")

    with get_session_context() as session:
        repo = VideoRepository(session)
        rows = [
            *repo.list_assets(ctx.video_id, AssetType.THUMBNAIL_IMAGE),
            *repo.list_assets(ctx.video_id, AssetType.SLIDE_IMAGE),
        ]
        refs = [(row.asset_type, row.asset_index, row.storage_key, row.mime_type) for row in rows]

    if not refs:
        raise DataIntegrityError("No generated images found for asset policy check")

    images = [
        PolicyImage(
            label=policy_image_label(asset_type, asset_index),
            data=store.get(key),
            mime_type=mime_type,
        )
        for asset_type, asset_index, key, mime_type in refs
    ]
    checker = get_policy_checker()
    return run_async(checker.check_assets(ctx.video_id, ctx.script, ctx.articles, images))


@celery_app.task(bind=True, name="assets.generate_assets")
def generate_assets_task(self: Any, video_id: int) -> dict[str, Any]:
    """Generate slide images, narration and the asset policy verdict for a video.

    Args:
        video_id: ID of a video whose script is generated

    Returns:
        Dict with asset counts, total cost and policy status
    """
    logger.info("generate_assets_task_started", task_id=self.request.id, video_id=video_id)
    return run_asset_generation(video_id)
