"""Tests for policy status aggregation."""

import pytest

from newsreel_engine.domain.enums import PolicyFindingStatus, PolicyStageStatus, PublishPrivacy
from newsreel_engine.services.policy import (
    PolicyFinding,
    derive_overall_status,
    derive_publish_privacy,
    derive_stage_status,
    extract_block_reasons,
    merge_block_reasons,
    normalize_stage_status,
    to_stage_status,
)


def finding(code: str, status: PolicyFindingStatus, reason: str = "reason") -> PolicyFinding:
    return PolicyFinding(check_code=code, status=status, reason=reason)


class TestStageStatus:
    """Tests for the most-severe-finding rule."""

    def test_empty_is_pass(self):
        assert derive_stage_status([]) == PolicyFindingStatus.PASS

    @pytest.mark.parametrize(
        ("statuses", "expected"),
        [
            (["PASS", "PASS"], "PASS"),
            (["PASS", "WARN"], "WARN"),
            (["WARN", "REVIEW", "PASS"], "REVIEW"),
            (["BLOCK", "WARN", "REVIEW"], "BLOCK"),
        ],
    )
    def test_most_severe_wins(self, statuses, expected):
        findings = [finding(f"C{i}", PolicyFindingStatus(s)) for i, s in enumerate(statuses)]

        assert derive_stage_status(findings) == PolicyFindingStatus(expected)

    def test_pass_maps_to_clean(self):
        assert to_stage_status(PolicyFindingStatus.PASS) == PolicyStageStatus.CLEAN
        assert to_stage_status(PolicyFindingStatus.BLOCK) == PolicyStageStatus.BLOCK


class TestOverallStatus:
    """Tests for combining the two stages."""

    @pytest.mark.parametrize(
        ("script", "asset", "expected"),
        [
            ("PENDING", "PENDING", "PENDING"),
            ("CLEAN", "PENDING", "CLEAN"),
            ("PENDING", "WARN", "WARN"),
            ("CLEAN", "REVIEW", "REVIEW"),
            ("BLOCK", "CLEAN", "BLOCK"),
            ("WARN", "BLOCK", "BLOCK"),
            ("REVIEW", "WARN", "REVIEW"),
        ],
    )
    def test_more_severe_stage_wins(self, script, asset, expected):
        assert derive_overall_status(script, asset) == PolicyStageStatus(expected)

    def test_unknown_values_are_pending(self):
        assert normalize_stage_status(None) == PolicyStageStatus.PENDING
        assert normalize_stage_status("garbage") == PolicyStageStatus.PENDING
        assert normalize_stage_status("clean") == PolicyStageStatus.CLEAN


class TestPublishPrivacy:
    """Tests for the publish gate."""

    @pytest.mark.parametrize(
        ("overall", "expected"),
        [
            ("CLEAN", PublishPrivacy.PUBLIC),
            ("WARN", PublishPrivacy.PRIVATE),
            ("REVIEW", PublishPrivacy.PRIVATE),
            ("PENDING", PublishPrivacy.PRIVATE),
            ("BLOCK", None),
        ],
    )
    def test_privacy(self, overall, expected):
        assert derive_publish_privacy(overall) == expected


class TestBlockReasons:
    """Tests for block reason extraction and merging."""

    def test_only_block_findings(self):
        findings = [
            finding("A", PolicyFindingStatus.WARN, "minor"),
            finding("B", PolicyFindingStatus.BLOCK, "graphic injury"),
        ]

        assert extract_block_reasons(findings) == ["B: graphic injury"]

    def test_merge_dedupes_and_drops_blanks(self):
        merged = merge_block_reasons(["A: x", " "], None, ["A: x", "B: y"])

        assert merged == ["A: x", "B: y"]
