"""Policy status aggregation.

Pure functions turning rule findings into stage statuses and a publish
decision. Anything short of an explicit clean verdict publishes privately.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from newsreel_engine.domain.enums import (
    PolicyFindingStatus,
    PolicyStageStatus,
    PublishPrivacy,
)

FINDING_SEVERITY: dict[PolicyFindingStatus, int] = {
    PolicyFindingStatus.PASS: 0,
    PolicyFindingStatus.WARN: 1,
    PolicyFindingStatus.REVIEW: 2,
    PolicyFindingStatus.BLOCK: 3,
}

STAGE_SEVERITY: dict[PolicyStageStatus, int] = {
    PolicyStageStatus.PENDING: -1,
    PolicyStageStatus.CLEAN: 0,
    PolicyStageStatus.WARN: 1,
    PolicyStageStatus.REVIEW: 2,
    PolicyStageStatus.BLOCK: 3,
}


@dataclass
class PolicyFinding:
    """Verdict of one policy rule."""

    check_code: str
    status: PolicyFindingStatus
    reason: str
    check_label: str | None = None
    evidence: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "checkCode": self.check_code,
            "checkLabel": self.check_label,
            "status": self.status.value,
            "reason": self.reason,
            "evidence": list(self.evidence),
        }


def _finding_status(finding: PolicyFinding | PolicyFindingStatus) -> PolicyFindingStatus:
    if isinstance(finding, PolicyFinding):
        return finding.status
    return PolicyFindingStatus(finding)


def derive_stage_status(
    findings: Iterable[PolicyFinding | PolicyFindingStatus],
) -> PolicyFindingStatus:
    """Most severe finding status; PASS for an empty set."""
    worst = PolicyFindingStatus.PASS
    for finding in findings:
        status = _finding_status(finding)
        if FINDING_SEVERITY[status] > FINDING_SEVERITY[worst]:
            worst = status
    return worst


def to_stage_status(status: PolicyFindingStatus) -> PolicyStageStatus:
    """Map a finding verdict onto the stage scale (PASS becomes CLEAN)."""
    if status == PolicyFindingStatus.PASS:
        return PolicyStageStatus.CLEAN
    return PolicyStageStatus(status.value)


def normalize_stage_status(value: str | PolicyStageStatus | None) -> PolicyStageStatus:
    """Parse a stored stage status; unknown or missing values are PENDING."""
    if value is None:
        return PolicyStageStatus.PENDING
    try:
        return PolicyStageStatus(str(value).upper())
    except ValueError:
        return PolicyStageStatus.PENDING


def derive_overall_status(
    script_status: str | PolicyStageStatus | None,
    asset_status: str | PolicyStageStatus | None,
) -> PolicyStageStatus:
    """More severe of the two stages; unset stages count as PENDING (lowest)."""
    script = normalize_stage_status(script_status)
    asset = normalize_stage_status(asset_status)
    return script if STAGE_SEVERITY[script] >= STAGE_SEVERITY[asset] else asset


def derive_publish_privacy(overall: str | PolicyStageStatus | None) -> PublishPrivacy | None:
    """Publish mode for an overall verdict.

    BLOCK returns None: the video must not be published at all. Only CLEAN is
    public; PENDING, WARN and REVIEW publish privately for human review.
    """
    status = normalize_stage_status(overall)
    if status == PolicyStageStatus.BLOCK:
        return None
    if status == PolicyStageStatus.CLEAN:
        return PublishPrivacy.PUBLIC
    return PublishPrivacy.PRIVATE


def extract_block_reasons(findings: Iterable[PolicyFinding]) -> list[str]:
    """``"CODE: reason"`` for every BLOCK finding."""
    return [
        f"{f.check_code}: {f.reason}" for f in findings if f.status == PolicyFindingStatus.BLOCK
    ]


def merge_block_reasons(*groups: Iterable[str] | None) -> list[str]:
    """Concatenate reason lists, dropping blanks and duplicates, keeping order."""
    merged: list[str] = []
    for group in groups:
        for reason in group or []:
            reason = reason.strip()
            if reason and reason not in merged:
                merged.append(reason)
    return merged
