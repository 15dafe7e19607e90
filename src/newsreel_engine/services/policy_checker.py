"""Model-backed content policy review.

Each stage sends the script, its source articles and (for the asset stage)
the generated images to a review model, then normalises the model's JSON
verdict against the stage's rule catalogue. The model can only ever add
findings for known rules; every rule it does not mention is recorded as PASS.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

from newsreel_engine.adapters.llm.base import (
    InlineImage,
    LLMMessage,
    LLMProvider,
    VisionMessage,
)
from newsreel_engine.config import settings
from newsreel_engine.domain.enums import (
    CostLogType,
    PolicyFindingStatus,
    PolicyStage,
    PolicyStageStatus,
)
from newsreel_engine.domain.models import ArticleContext, VideoScript
from newsreel_engine.logging import get_logger
from newsreel_engine.services.costs import CostEntry, policy_cost_entry
from newsreel_engine.services.policy import PolicyFinding, derive_stage_status, to_stage_status

logger = get_logger(__name__)

MAX_ARTICLE_CHARS = 6000
MAX_EVIDENCE_ITEMS = 10
UNPARSEABLE_SUMMARY = "Policy model response could not be parsed. Marked for review."

COST_LOG_TYPES: dict[PolicyStage, CostLogType] = {
    PolicyStage.SCRIPT_LIGHT: CostLogType.POLICY_SCRIPT_LIGHT,
    PolicyStage.ASSET_STRONG: CostLogType.POLICY_ASSET_STRONG,
}

STAGE_LABELS: dict[PolicyStage, str] = {
    PolicyStage.SCRIPT_LIGHT: "Script light check",
    PolicyStage.ASSET_STRONG: "Asset strong check",
}


@dataclass(frozen=True)
class PolicyRule:
    """One auditable rule with its per-severity criteria."""

    code: str
    label: str
    description: str
    block_criteria: str
    review_criteria: str
    warn_criteria: str


SCRIPT_LIGHT_RULES: tuple[PolicyRule, ...] = (
    PolicyRule(
        code="MISINFO_SENSITIVE_CLAIMS",
        label="Sensitive misinformation claims",
        description="Reject unsupported election, medical, and high-harm factual claims.",
        block_criteria="Claim clearly violates election/medical misinformation policy or gives dangerous false guidance.",
        review_criteria="Sensitive claim lacks strong source grounding or certainty language is too strong.",
        warn_criteria="Needs softer uncertainty framing but does not assert prohibited falsehoods.",
    ),
    PolicyRule(
        code="DECEPTIVE_METADATA_COPY",
        label="Deceptive title/description copy",
        description="Detect text-level mismatch between claims and article evidence.",
        block_criteria="Title/description materially fabricates facts or intent.",
        review_criteria="Strong exaggeration likely to mislead viewers.",
        warn_criteria="Minor clickbait phrasing that should be toned down.",
    ),
    PolicyRule(
        code="HATE_HARASSMENT_TEXT",
        label="Hate or harassment language",
        description="Disallow abuse targeting protected groups or individuals.",
        block_criteria="Contains direct hate speech, dehumanization, or targeted harassment.",
        review_criteria="Ambiguous hostile framing around protected characteristics.",
        warn_criteria="Aggressive tone likely to trigger moderation concerns.",
    ),
    PolicyRule(
        code="HARMFUL_DANGEROUS_TEXT",
        label="Harmful or dangerous language",
        description="Disallow instructions or encouragement for dangerous acts.",
        block_criteria="Includes harmful instructions, encouragement, or explicit self-harm normalization.",
        review_criteria="Potentially unsafe framing around dangerous topics.",
        warn_criteria="Needs safer wording and context disclaimers.",
    ),
    PolicyRule(
        code="INAUTHENTIC_REPETITION_TEXT",
        label="Inauthentic repetitive structure",
        description="Reduce repetitive/templated narrative patterns linked to inauthenticity risk.",
        block_criteria="Extremely repetitive output with minimal original informational value.",
        review_criteria="High template reuse with low novelty.",
        warn_criteria="Moderate template reuse; improve originality.",
    ),
)

ASSET_STRONG_RULES: tuple[PolicyRule, ...] = (
    PolicyRule(
        code="VISUAL_MISLEADING_THUMBNAIL",
        label="Misleading thumbnail/image claims",
        description="Check thumbnail and visuals for deceptive mismatch against script/articles.",
        block_criteria="Thumbnail or key image depicts fabricated core events/claims.",
        review_criteria="Visual implication materially overstates or distorts story facts.",
        warn_criteria="Minor sensational embellishment that should be reduced.",
    ),
    PolicyRule(
        code="VISUAL_BRANDING_CTA",
        label="Branding/CTA artifacts in generated images",
        description="Disallow subscribe buttons, social icons, or channel branding inside generated visuals.",
        block_criteria="Deliberate deceptive overlays or strong manipulative UI mimicry.",
        review_criteria="Repeated branding/CTA artifacts across multiple assets.",
        warn_criteria="Single-instance branding/CTA artifact requiring regeneration.",
    ),
    PolicyRule(
        code="VISUAL_HARMFUL_GRAPHIC",
        label="Graphic or harmful visuals",
        description="Detect graphic violence, self-harm, or dangerous depictions.",
        block_criteria="Graphic violence, explicit self-harm imagery, or dangerous instructional visuals.",
        review_criteria="Potentially distressing content requiring manual review.",
        warn_criteria="Intensity is high but not overtly graphic.",
    ),
    PolicyRule(
        code="VISUAL_HATE_HARASSMENT",
        label="Hate or harassment visuals",
        description="Disallow hateful symbols or abusive targeting visuals.",
        block_criteria="Explicit hateful/harassing visual targeting.",
        review_criteria="Ambiguous but concerning hostile visual framing.",
        warn_criteria="Borderline aggressive cues requiring revision.",
    ),
    PolicyRule(
        code="SYNTHETIC_CONTEXT_INTEGRITY",
        label="Synthetic media context integrity",
        description="Ensure synthetic visuals are not presented as deceptive real footage context.",
        block_criteria="Synthetic media is intentionally used to mislead about real events.",
        review_criteria="Context may mislead without stronger framing.",
        warn_criteria="Minor context clarity issues.",
    ),
    PolicyRule(
        code="INAUTHENTIC_REPETITION_VISUAL",
        label="Inauthentic repetitive visuals",
        description="Detect low-originality visual template reuse likely to hurt monetization quality signals.",
        block_criteria="Near-duplicate visual set with negligible content differentiation.",
        review_criteria="High repetitive template use across the set.",
        warn_criteria="Moderate repetition requiring more variation.",
    ),
)

POLICY_RULES: dict[PolicyStage, tuple[PolicyRule, ...]] = {
    PolicyStage.SCRIPT_LIGHT: SCRIPT_LIGHT_RULES,
    PolicyStage.ASSET_STRONG: ASSET_STRONG_RULES,
}


@dataclass
class PolicyImage:
    """A generated image submitted for review."""

    label: str  # "thumbnail" or "slide-NN"
    data: bytes
    mime_type: str = "image/png"


@dataclass
class PolicyCheckResult:
    """Normalised outcome of one stage's review."""

    stage: PolicyStage
    model_id: str
    stage_status: PolicyStageStatus
    summary: str
    findings: list[PolicyFinding]
    input_tokens: int = 0
    output_tokens: int = 0
    prompt_text: str = ""
    response_text: str = ""
    image_count: int = 0

    def cost_entry(self) -> CostEntry:
        return policy_cost_entry(
            COST_LOG_TYPES[self.stage],
            self.model_id,
            self.input_tokens,
            self.output_tokens,
        )


def format_rules_for_prompt(stage: PolicyStage) -> str:
    return "\n".join(
        f"- {rule.code} ({rule.label}): {rule.description}\n"
        f"  BLOCK: {rule.block_criteria}\n"
        f"  REVIEW: {rule.review_criteria}\n"
        f"  WARN: {rule.warn_criteria}"
        for rule in POLICY_RULES[stage]
    )


def _truncate(value: str, max_chars: int) -> str:
    if len(value) <= max_chars:
        return value
    return f"{value[:max_chars]}\n...[truncated]"


def build_article_text(articles: list[ArticleContext]) -> str:
    return "\n\n---\n\n".join(
        f"Article {i + 1}\n"
        f"- id: {article.id}\n"
        f"- title: {article.title}\n"
        f"- content:\n{_truncate(article.content or '', MAX_ARTICLE_CHARS)}"
        for i, article in enumerate(articles)
    )


def build_policy_prompt(
    stage: PolicyStage,
    video_id: int,
    script: VideoScript,
    articles: list[ArticleContext],
) -> str:
    lines = [
        "You are a YouTube policy auditor for generated news videos.",
        "",
        f"STAGE: {STAGE_LABELS[stage].upper()}",
        f"VIDEO ID: {video_id}",
        "",
        "TASK: Evaluate policy risk from the provided content and produce strict JSON output.",
        "",
        "SCORING INSTRUCTIONS:",
        "- Evaluate every rule in the ruleset below.",
        "- For each rule, return one status: PASS | WARN | REVIEW | BLOCK.",
        "- Use BLOCK only for clear severe risk.",
        "- Use REVIEW for medium risk or uncertainty that needs human check.",
        "- Use WARN for low-risk issues that should be fixed.",
        "- Use PASS when no issue is found for that rule.",
        "",
        "RULESET:",
        format_rules_for_prompt(stage),
        "",
        "INPUT ARTICLES:",
        build_article_text(articles),
        "",
        "INPUT SCRIPT JSON:",
        json.dumps(script.to_dict(), indent=2, ensure_ascii=False),
        "",
        "RESPONSE FORMAT (JSON ONLY):",
        '{"summary": "Concise audit summary", "findings": [{"checkCode": "RULE_CODE", '
        '"checkLabel": "Rule label", "status": "PASS|WARN|REVIEW|BLOCK", '
        '"reason": "Why this status was chosen", "evidence": ["short evidence item"]}]}',
    ]
    if stage == PolicyStage.ASSET_STRONG:
        lines += [
            "",
            "ADDITIONAL ASSET REVIEW REQUIREMENTS:",
            "- The generated images are attached, each preceded by its label.",
            "- Audit the images for misleading framing, harmful/graphic risks, "
            "hate/harassment cues, and branding/CTA artifacts.",
            '- When evidence comes from an image, include its label (e.g. "slide-03" or '
            '"thumbnail") in evidence.',
        ]
    return "\n".join(lines)


_FENCE = re.compile(r"```(?:json)?\n?")


def parse_policy_response(text: str) -> dict[str, Any] | None:
    """Parse the model's JSON verdict, tolerating markdown fences.

    Returns None when the text is not a JSON object.
    """
    try:
        parsed = json.loads(_FENCE.sub("", text).strip())
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _finding_status(raw: Any) -> PolicyFindingStatus:
    if isinstance(raw, str):
        try:
            return PolicyFindingStatus(raw.strip().upper())
        except ValueError:
            pass
    return PolicyFindingStatus.PASS


def _evidence(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    items = [v.strip() for v in raw if isinstance(v, str) and v.strip()]
    return items[:MAX_EVIDENCE_ITEMS]


def _text(raw: Any) -> str | None:
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


def normalize_findings(
    parsed: dict[str, Any] | None,
    rules: tuple[PolicyRule, ...],
) -> list[PolicyFinding]:
    """Keep the first finding per known rule and fill unmentioned rules with PASS."""
    by_code = {rule.code: rule for rule in rules}
    raw_findings = parsed.get("findings") if parsed else None

    findings: list[PolicyFinding] = []
    seen: set[str] = set()
    for raw in raw_findings if isinstance(raw_findings, list) else []:
        if not isinstance(raw, dict):
            continue
        code = _text(raw.get("checkCode"))
        if code is None or code not in by_code or code in seen:
            continue
        seen.add(code)
        findings.append(
            PolicyFinding(
                check_code=code,
                check_label=_text(raw.get("checkLabel")) or by_code[code].label,
                status=_finding_status(raw.get("status")),
                reason=_text(raw.get("reason")) or "No reason provided by policy model.",
                evidence=_evidence(raw.get("evidence")),
            )
        )

    for rule in rules:
        if rule.code not in seen:
            findings.append(
                PolicyFinding(
                    check_code=rule.code,
                    check_label=rule.label,
                    status=PolicyFindingStatus.PASS,
                    reason="Model did not report an issue for this rule.",
                )
            )
    return findings


class PolicyChecker:
    """Runs the script-light and asset-strong reviews.

    Args:
        script_llm: Provider for the text-only script review
        asset_llm: Vision-capable provider for the image review
        max_images: Images attached to the asset review; extra ones are
            reported as a REVIEW finding instead of being sent
    """

    def __init__(
        self,
        script_llm: LLMProvider,
        asset_llm: LLMProvider,
        max_images: int | None = None,
    ) -> None:
        self.script_llm = script_llm
        self.asset_llm = asset_llm
        self.max_images = max_images or settings.policy_max_images

    async def check_script(
        self,
        video_id: int,
        script: VideoScript,
        articles: list[ArticleContext],
    ) -> PolicyCheckResult:
        stage = PolicyStage.SCRIPT_LIGHT
        prompt = build_policy_prompt(stage, video_id, script, articles)
        response = await self.script_llm.complete(
            [LLMMessage(role="user", content=prompt)],
            temperature=0.2,
            json_mode=True,
        )
        return self._build_result(
            stage,
            self.script_llm.model,
            prompt,
            response.content,
            response.input_tokens,
            response.output_tokens,
            video_id=video_id,
        )

    async def check_assets(
        self,
        video_id: int,
        script: VideoScript,
        articles: list[ArticleContext],
        images: list[PolicyImage],
    ) -> PolicyCheckResult:
        stage = PolicyStage.ASSET_STRONG
        sent = images[: self.max_images]
        labels = "\n".join(f"- image-{i + 1}: {img.label}" for i, img in enumerate(sent))
        prompt = (
            f"{build_policy_prompt(stage, video_id, script, articles)}\n\n"
            f"IMAGE LABELS:\n{labels or '- none'}"
        )
        response = await self.asset_llm.complete_with_vision(
            [
                VisionMessage(
                    role="user",
                    text=prompt,
                    images=[
                        InlineImage(data=img.data, mime_type=img.mime_type, label=img.label)
                        for img in sent
                    ],
                )
            ],
            temperature=0.2,
            json_mode=True,
        )

        extra: list[PolicyFinding] = []
        if len(images) > self.max_images:
            extra.append(
                PolicyFinding(
                    check_code="IMAGE_INPUT_TRUNCATED",
                    check_label="Asset policy image coverage",
                    status=PolicyFindingStatus.REVIEW,
                    reason=f"Only {self.max_images} images were evaluated out of {len(images)}.",
                    evidence=[f"evaluated_count={self.max_images}", f"total_count={len(images)}"],
                )
            )
        return self._build_result(
            stage,
            self.asset_llm.model,
            prompt,
            response.content,
            response.input_tokens,
            response.output_tokens,
            video_id=video_id,
            extra_findings=extra,
            image_count=len(sent),
        )

    def _build_result(
        self,
        stage: PolicyStage,
        model_id: str,
        prompt: str,
        response_text: str,
        input_tokens: int,
        output_tokens: int,
        video_id: int,
        extra_findings: list[PolicyFinding] | None = None,
        image_count: int = 0,
    ) -> PolicyCheckResult:
        parsed = parse_policy_response(response_text) if response_text.strip() else None
        findings = normalize_findings(parsed, POLICY_RULES[stage])
        findings.extend(extra_findings or [])

        if parsed is None:
            findings.append(
                PolicyFinding(
                    check_code="MODEL_RESPONSE_EMPTY",
                    check_label="Policy model response validity",
                    status=PolicyFindingStatus.REVIEW,
                    reason=(
                        "Policy model returned no usable response."
                        if not response_text.strip()
                        else "Policy model response was not valid JSON."
                    ),
                )
            )

        if parsed is None and response_text.strip():
            summary = UNPARSEABLE_SUMMARY
        else:
            summary = _text((parsed or {}).get("summary")) or f"{STAGE_LABELS[stage]} completed."

        stage_status = to_stage_status(derive_stage_status(findings))
        logger.info(
            "policy_check_completed",
            video_id=video_id,
            stage=str(stage),
            model=model_id,
            stage_status=str(stage_status),
            finding_count=len(findings),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        return PolicyCheckResult(
            stage=stage,
            model_id=model_id,
            stage_status=stage_status,
            summary=summary,
            findings=findings,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            prompt_text=prompt,
            response_text=response_text,
            image_count=image_count,
        )
