"""Tests for adapter implementations."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import pytest
from e2b import CommandExitException

from newsreel_engine.adapters.image_gen.base import ImageGenRequest
from newsreel_engine.adapters.image_gen.stub import StubImageGenProvider
from newsreel_engine.adapters.llm.base import LLMMessage
from newsreel_engine.adapters.llm.stub import CLEAN_REVIEW, StubLLMProvider
from newsreel_engine.adapters.publisher.base import PublishRequest
from newsreel_engine.adapters.publisher.stub import StubPublisherAdapter
from newsreel_engine.adapters.publisher.youtube import YouTubePublisher, build_video_resource
from newsreel_engine.adapters.renderer.base import RenderJob
from newsreel_engine.adapters.renderer.e2b_remotion import PROPS_PATH, E2BRemotionRenderer
from newsreel_engine.adapters.renderer.stub import StubRendererProvider, minimal_mp4
from newsreel_engine.adapters.voiceover.base import VoiceoverRequest
from newsreel_engine.adapters.voiceover.gemini_tts import GeminiTTSProvider
from newsreel_engine.adapters.voiceover.stub import StubVoiceoverProvider
from newsreel_engine.domain.enums import PublishPrivacy, VideoType
from newsreel_engine.services.audio import TTS_VOICES, pcm_duration_ms
from newsreel_engine.services.grid import decode_image
from newsreel_engine.services.timeline import TimelineInput, build_timeline
from newsreel_engine.utils.concurrency import run_bounded

PROBE_OUTPUT = """codec_name=h264
width=1080
height=1920
r_frame_rate=30/1
codec_name=aac
r_frame_rate=0/0
duration=7.500000
size=1024
"""


def render_job() -> RenderJob:
    timeline = build_timeline(
        [
            TimelineInput(0, "https://cdn.test/0.png", "https://cdn.test/0.wav", 3000),
            TimelineInput(1, "https://cdn.test/1.png", "https://cdn.test/1.wav", 4500),
        ]
    )
    return RenderJob(
        video_id=7, video_type=VideoType.SHORT, timeline=timeline, article_date="2026-03-02"
    )


@pytest.mark.asyncio
async def test_image_gen_stub_caps_size() -> None:
    """The stub never returns more than max_side pixels on a side."""
    provider = StubImageGenProvider(model="gemini-2.5-flash-image", max_side=256)

    result = await provider.generate(
        ImageGenRequest(prompt="bridge", aspect_ratio="9:16", width=768, height=1344)
    )

    assert result.success is True
    image = decode_image(result.image_data)
    assert max(image.size) == 256
    assert result.metadata["model"] == "gemini-2.5-flash-image"


@pytest.mark.asyncio
async def test_voiceover_stub(voiceover_provider) -> None:
    """Stub narration is silent PCM sized from the text."""
    result = await voiceover_provider.generate(
        VoiceoverRequest(text="x" * 40, voice_name="Kore", model="gemini-2.5-flash-preview-tts")
    )

    assert result.success is True
    assert pcm_duration_ms(len(result.pcm_data)) == 2600


@pytest.mark.asyncio
async def test_voiceover_stub_minimum_length() -> None:
    provider = StubVoiceoverProvider()

    result = await provider.generate(
        VoiceoverRequest(text="hi", voice_name="Puck", model="gemini-2.5-flash-preview-tts")
    )

    assert pcm_duration_ms(len(result.pcm_data)) == 1000


@pytest.mark.asyncio
async def test_voiceover_stub_voices() -> None:
    voices = await StubVoiceoverProvider().list_voices()

    assert [v["voice_id"] for v in voices] == list(TTS_VOICES)


@pytest.mark.asyncio
async def test_llm_stub_default_is_clean() -> None:
    provider = StubLLMProvider(model="gemini-3-flash-preview")

    response = await provider.complete([LLMMessage(role="user", content="audit")])

    assert json.loads(response.content) == CLEAN_REVIEW
    assert response.model == "gemini-3-flash-preview"
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_renderer_stub(renderer_provider) -> None:
    """The stub reports the timeline's own length."""
    result = await renderer_provider.render(render_job())

    assert result.success is True
    assert result.video_data == minimal_mp4()
    assert (result.width, result.height) == (1080, 1920)
    assert result.duration_ms == 7500
    assert result.fps == 30


@pytest.mark.asyncio
async def test_renderer_health_check(renderer_provider) -> None:
    assert await renderer_provider.health_check() is True


class TestE2BRemotionRenderer:
    """Tests for the sandboxed renderer with a mocked sandbox."""

    @staticmethod
    def sandbox(probe_stdout: str) -> MagicMock:
        sandbox = MagicMock()
        sandbox.sandbox_id = "sbx-1"
        sandbox.commands.run.side_effect = [MagicMock(stdout=""), MagicMock(stdout=probe_stdout)]
        sandbox.files.read.return_value = bytearray(minimal_mp4())
        return sandbox

    @pytest.mark.asyncio
    async def test_render_writes_props_and_probes(self) -> None:
        sandbox = self.sandbox(PROBE_OUTPUT)
        renderer = E2BRemotionRenderer(api_key="e2b-test", template="remotion", timeout_seconds=60)

        with patch(
            "newsreel_engine.adapters.renderer.e2b_remotion.Sandbox.create",
            return_value=sandbox,
        ):
            result = await renderer.render(render_job())

        assert result.success is True
        assert result.video_data == minimal_mp4()
        assert result.duration_ms == 7500
        path, props = sandbox.files.write.call_args.args
        assert path == PROPS_PATH
        assert json.loads(props)["durationInFrames"] == 225
        command = sandbox.commands.run.call_args_list[0].args[0]
        assert "--width=1080" in command
        assert "--height=1920" in command
        sandbox.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_invalid_output_fails_and_kills_sandbox(self) -> None:
        sandbox = self.sandbox("codec_name=aac\nduration=3.0\n")
        renderer = E2BRemotionRenderer(api_key="e2b-test", template="remotion", timeout_seconds=60)

        with patch(
            "newsreel_engine.adapters.renderer.e2b_remotion.Sandbox.create",
            return_value=sandbox,
        ):
            result = await renderer.render(render_job())

        assert result.success is False
        assert result.error_message
        sandbox.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_failed_command_kills_sandbox(self) -> None:
        failure = CommandExitException.__new__(CommandExitException)
        failure.stdout = ""
        failure.stderr = "Error: composition DynamicVideo crashed"
        failure.exit_code = 1
        failure.error = None
        sandbox = self.sandbox(PROBE_OUTPUT)
        sandbox.commands.run.side_effect = failure
        renderer = E2BRemotionRenderer(api_key="e2b-test", template="remotion", timeout_seconds=60)

        with patch(
            "newsreel_engine.adapters.renderer.e2b_remotion.Sandbox.create",
            return_value=sandbox,
        ):
            result = await renderer.render(render_job())

        assert result.success is False
        assert result.error_message == (
            "Render command failed (exit 1): Error: composition DynamicVideo crashed"
        )
        sandbox.files.read.assert_not_called()
        sandbox.kill.assert_called_once()


class TestGeminiTTSProvider:
    """Tests for Gemini narration with a fake async client."""

    class TrackingClient:
        """Async client double that records how many requests overlap."""

        def __init__(self) -> None:
            self.in_flight = 0
            self.peak = 0
            self.aio = SimpleNamespace(models=SimpleNamespace(generate_content=self.generate_content))

        async def generate_content(self, model, contents, config):
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            await asyncio.sleep(0.02)
            self.in_flight -= 1
            part = SimpleNamespace(inline_data=SimpleNamespace(data=b"\x00" * 4800))
            return SimpleNamespace(
                candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))],
                usage_metadata=SimpleNamespace(prompt_token_count=12, candidates_token_count=40),
            )

    @pytest.mark.asyncio
    async def test_requests_run_up_to_the_model_limit(self) -> None:
        provider = GeminiTTSProvider(api_key="test-key")
        client = self.TrackingClient()
        provider._client = client
        request = VoiceoverRequest(
            text="Bridge reopens", voice_name="Kore", model="gemini-2.5-flash-preview-tts"
        )

        batch = await run_bounded([lambda: provider.generate(request) for _ in range(25)], limit=25)

        assert batch.ok
        assert client.peak == 25
        result = batch.results[0]
        assert result.success is True
        assert pcm_duration_ms(len(result.pcm_data)) == 100
        assert (result.input_tokens, result.output_tokens) == (12, 40)

    @pytest.mark.asyncio
    async def test_missing_audio_part(self) -> None:
        provider = GeminiTTSProvider(api_key="test-key")
        client = self.TrackingClient()

        async def empty(model, contents, config):
            return SimpleNamespace(candidates=[], usage_metadata=None)

        client.aio.models.generate_content = empty
        provider._client = client

        result = await provider.generate(
            VoiceoverRequest(text="x", voice_name="Kore", model="gemini-2.5-flash-preview-tts")
        )

        assert result.success is False
        assert result.error_message == "No candidates in TTS response"


class TestProviderFactories:
    """Tests for settings-driven provider selection."""

    def test_stub_providers_by_default(self) -> None:
        from newsreel_engine.jobs.asset_pipeline import (
            get_image_gen_provider,
            get_voiceover_provider,
        )
        from newsreel_engine.jobs.policy_tasks import get_llm_provider
        from newsreel_engine.jobs.publish_pipeline import get_publisher
        from newsreel_engine.jobs.render_pipeline import get_renderer_provider

        image_provider = get_image_gen_provider("gemini-3-pro-image-preview")

        assert isinstance(image_provider, StubImageGenProvider)
        assert image_provider.model == "gemini-3-pro-image-preview"
        assert isinstance(get_voiceover_provider(), StubVoiceoverProvider)
        assert isinstance(get_renderer_provider(), StubRendererProvider)
        assert get_llm_provider("gemini-3-flash-preview").model == "gemini-3-flash-preview"
        assert isinstance(get_publisher(), StubPublisherAdapter)

    def test_policy_checker_models(self) -> None:
        from newsreel_engine.config import settings
        from newsreel_engine.jobs.policy_tasks import get_policy_checker

        checker = get_policy_checker()

        assert checker.script_llm.model == settings.policy_script_model
        assert checker.asset_llm.model == settings.policy_asset_model


def youtube_request(privacy: PublishPrivacy = PublishPrivacy.PUBLIC) -> PublishRequest:
    return PublishRequest(
        video_data=minimal_mp4(),
        title="Harbour bridge reopens",
        description="The harbour bridge reopened after repairs.",
        tags=["news", "", "bridge"],
        privacy=privacy,
    )


class TestYouTubePublisher:
    """Tests for the resumable YouTube upload."""

    def test_video_resource(self) -> None:
        resource = build_video_resource(youtube_request(PublishPrivacy.PRIVATE), language="ja")

        assert resource["snippet"]["categoryId"] == "25"
        assert resource["snippet"]["tags"] == ["news", "bridge"]
        assert resource["snippet"]["defaultAudioLanguage"] == "ja"
        assert resource["status"] == {
            "privacyStatus": "private",
            "selfDeclaredMadeForKids": False,
            "containsSyntheticMedia": True,
        }

    def test_title_truncated(self) -> None:
        request = youtube_request()
        request.title = "x" * 150

        assert len(build_video_resource(request)["snippet"]["title"]) == 100

    @pytest.mark.asyncio
    async def test_resumable_upload(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.host == "oauth2.googleapis.com":
                return httpx.Response(200, json={"access_token": "token-1", "expires_in": 3600})
            if request.method == "POST":
                return httpx.Response(
                    200, headers={"Location": "https://upload.test/session/1"}
                )
            return httpx.Response(
                200, json={"id": "yt123", "status": {"privacyStatus": "public"}}
            )

        publisher = YouTubePublisher(
            client_id="cid",
            client_secret="secret",
            refresh_token="refresh",
            transport=httpx.MockTransport(handler),
        )

        response = await publisher.publish(youtube_request())

        assert response.success is True
        assert response.platform_video_id == "yt123"
        assert response.url == "https://www.youtube.com/watch?v=yt123"
        token, init, upload = seen
        assert b"grant_type=refresh_token" in token.content
        assert init.url.params["uploadType"] == "resumable"
        assert init.url.params["part"] == "snippet,status,contentDetails"
        assert init.headers["Authorization"] == "Bearer token-1"
        assert json.loads(init.content)["status"]["privacyStatus"] == "public"
        assert str(upload.url) == "https://upload.test/session/1"
        assert upload.content == minimal_mp4()

    @pytest.mark.asyncio
    async def test_quota_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "oauth2.googleapis.com":
                return httpx.Response(200, json={"access_token": "token-1"})
            return httpx.Response(
                403,
                json={"error": {"message": "quota", "errors": [{"reason": "quotaExceeded"}]}},
            )

        publisher = YouTubePublisher(
            client_id="cid",
            client_secret="secret",
            refresh_token="refresh",
            transport=httpx.MockTransport(handler),
        )

        response = await publisher.publish(youtube_request())

        assert response.success is False
        assert response.error_message == "Failed to open upload session: YouTube API quota exceeded"

    @pytest.mark.asyncio
    async def test_missing_credentials(self) -> None:
        publisher = YouTubePublisher(transport=httpx.MockTransport(lambda r: httpx.Response(500)))

        response = await publisher.publish(youtube_request())

        assert response.success is False
        assert "credentials are not configured" in response.error_message
