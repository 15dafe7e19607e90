"""Stub LLM provider for testing."""

import json

from newsreel_engine.adapters.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    VisionMessage,
)
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)

CLEAN_REVIEW = {"summary": "No policy concerns found.", "findings": []}


class StubLLMProvider(LLMProvider):
    """Returns a canned response, a clean policy review by default.

    Args:
        model: Model id reported in responses
        content: Response text; dicts are JSON-encoded
        usage: Token counters reported with every response
    """

    def __init__(
        self,
        model: str = "stub-llm",
        content: str | dict | None = None,
        usage: dict[str, int] | None = None,
    ) -> None:
        super().__init__(model)
        payload = CLEAN_REVIEW if content is None else content
        self.content = payload if isinstance(payload, str) else json.dumps(payload)
        self.usage = usage or {}
        self.calls: list[list[LLMMessage] | list[VisionMessage]] = []

    @property
    def name(self) -> str:
        return "stub"

    @property
    def supports_vision(self) -> bool:
        return True

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        self.calls.append(messages)
        logger.info("stub_llm_complete", message_count=len(messages), json_mode=json_mode)
        return LLMResponse(content=self.content, model=self.model, usage=dict(self.usage))

    async def complete_with_vision(
        self,
        messages: list[VisionMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        self.calls.append(messages)
        logger.info(
            "stub_llm_vision_complete",
            message_count=len(messages),
            image_count=sum(len(m.images) for m in messages),
        )
        return LLMResponse(content=self.content, model=self.model, usage=dict(self.usage))
