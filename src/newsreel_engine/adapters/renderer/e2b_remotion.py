"""Remotion renderer running inside an e2b sandbox.

The sandbox template ships a Remotion project with a ``DynamicVideo``
composition. Slide media is fetched by the composition from public URLs, so
only the props file has to be written into the sandbox.
"""

import asyncio
import json
import shlex
from typing import Any

from e2b import CommandExitException, Sandbox

from newsreel_engine.adapters.renderer.base import RendererProvider, RenderJob, RenderResult
from newsreel_engine.config import settings
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)

COMPOSITION_ID = "DynamicVideo"
PROPS_PATH = "/tmp/props.json"
OUTPUT_PATH = "/tmp/output.mp4"
PROBE_TIMEOUT_SECONDS = 60


def parse_probe_output(text: str) -> dict[str, Any]:
    """Parse ``ffprobe -of default=noprint_wrappers=1`` output.

    Streams are split on their ``codec_name`` line; the stream with a width
    is the video stream and the first one without is the audio stream.
    """
    streams: list[dict[str, str]] = []
    fmt: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.strip().partition("=")
        if not sep:
            continue
        if key == "codec_name":
            streams.append({key: value})
        elif key in ("duration", "size"):
            fmt[key] = value
        elif streams:
            streams[-1][key] = value

    video = next((s for s in streams if s.get("width") not in (None, "N/A")), None)
    audio = next((s for s in streams if s is not video and "width" not in s), None)
    if video is None:
        raise ValueError("ffprobe found no video stream")

    num, _, den = video.get("r_frame_rate", "0/1").partition("/")
    fps = round(int(num) / int(den or 1)) if int(den or 1) else 0
    duration = fmt.get("duration")
    return {
        "video_codec": video.get("codec_name"),
        "audio_codec": audio.get("codec_name") if audio else None,
        "width": int(video["width"]),
        "height": int(video["height"]),
        "fps": fps,
        "duration_ms": round(float(duration) * 1000) if duration not in (None, "N/A") else None,
        "size": int(fmt["size"]) if fmt.get("size", "N/A") != "N/A" else None,
    }


class E2BRemotionRenderer(RendererProvider):
    """Renders the composition in a fresh sandbox per job.

    The sandbox is always killed, whether the render succeeds or not.
    """

    def __init__(
        self,
        api_key: str | None = None,
        template: str | None = None,
        timeout_seconds: int | None = None,
    ) -> None:
        self.api_key = api_key or settings.e2b_api_key
        self.template = template or settings.e2b_template
        self.timeout_seconds = timeout_seconds or settings.e2b_timeout_seconds

        if not self.api_key:
            logger.warning("E2B API key not configured")

    @property
    def name(self) -> str:
        return "e2b-remotion"

    def _render_command(self, job: RenderJob) -> str:
        width, height = job.dimensions
        return " ".join(
            [
                f"cd {shlex.quote(settings.remotion_project_dir)} &&",
                "bunx remotion render",
                COMPOSITION_ID,
                OUTPUT_PATH,
                f"--props={PROPS_PATH}",
                "--codec=h264",
                f"--width={width}",
                f"--height={height}",
            ]
        )

    def _render_sync(self, job: RenderJob) -> RenderResult:
        if not self.api_key:
            raise ValueError("E2B API key not configured")

        sandbox = Sandbox.create(
            template=self.template,
            api_key=self.api_key,
            timeout=self.timeout_seconds,
        )
        logger.info("render_sandbox_created", sandbox_id=sandbox.sandbox_id, video_id=job.video_id)
        try:
            sandbox.files.write(PROPS_PATH, json.dumps(job.render_props()))

            command = self._render_command(job)
            logger.info(
                "remotion_render_started",
                video_id=job.video_id,
                total_frames=job.timeline.total_frames,
                command=command,
            )
            sandbox.commands.run(command, timeout=settings.render_command_timeout_seconds)

            probe = sandbox.commands.run(
                "ffprobe -v error -show_entries "
                "format=duration,size:stream=codec_name,width,height,r_frame_rate "
                f"-of default=noprint_wrappers=1 {OUTPUT_PATH}",
                timeout=PROBE_TIMEOUT_SECONDS,
            )
            info = parse_probe_output(probe.stdout)
            logger.info("render_probe_passed", video_id=job.video_id, **info)

            data = bytes(sandbox.files.read(OUTPUT_PATH, format="bytes"))
        finally:
            sandbox.kill()
            logger.info("render_sandbox_killed", video_id=job.video_id)

        return RenderResult(
            success=True,
            video_data=data,
            mime_type="video/mp4",
            width=info["width"],
            height=info["height"],
            duration_ms=info["duration_ms"],
            fps=info["fps"] or job.timeline.fps,
            video_codec=info["video_codec"],
            audio_codec=info["audio_codec"],
            format="mp4",
            metadata={"provider": self.name, "template": self.template},
        )

    async def render(self, job: RenderJob) -> RenderResult:
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, lambda: self._render_sync(job))
        except CommandExitException as e:
            stderr = (getattr(e, "stderr", "") or "")[-2000:]
            logger.error("remotion_render_failed", video_id=job.video_id, stderr=stderr)
            return RenderResult(
                success=False,
                error_message=f"Render command failed (exit {e.exit_code}): {stderr}",
            )
        except ValueError as e:
            logger.error("render_output_invalid", video_id=job.video_id, error=str(e))
            return RenderResult(success=False, error_message=str(e))
