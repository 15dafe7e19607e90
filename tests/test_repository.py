"""Tests for the persistence/status façade."""

import pytest
from sqlalchemy import select

from newsreel_engine.db.models import CostLogModel, VideoAssetModel, VideoModel
from newsreel_engine.domain.enums import AssetType, CostLogType
from newsreel_engine.domain.metadata import PromptMetadata, SlideImageMetadata
from newsreel_engine.errors import PreconditionError
from newsreel_engine.services.costs import CostEntry
from newsreel_engine.services.repository import NewAsset, VideoRepository
from newsreel_engine.services.storage import StoredObject


def stored(key: str, mime_type: str = "image/png") -> StoredObject:
    return StoredObject(
        key=key,
        public_url=f"https://cdn.test/{key}",
        size=10,
        mime_type=mime_type,
        checksum="0" * 64,
    )


def slide_asset(index: int, key: str) -> NewAsset:
    return NewAsset(
        AssetType.SLIDE_IMAGE,
        index,
        stored(key),
        SlideImageMetadata(slide_index=index, width=100, height=200, model="m"),
    )


class TestReads:
    """Tests for video, script and article reads."""

    def test_get_video_missing(self, db_session):
        with pytest.raises(PreconditionError):
            VideoRepository(db_session).get_video(999)

    def test_get_script_and_articles(self, db_session, make_video):
        video_id = make_video(slide_count=4)
        repo = VideoRepository(db_session)
        video = repo.get_video(video_id)

        script = repo.get_script(video)
        articles = repo.get_articles(video)

        assert len(script.slides) == 4
        assert articles[0].title.startswith("Harbour bridge")
        assert articles[0].published_at is not None

    def test_script_without_slides(self, db_session, make_video):
        video_id = make_video(script={"title": "x", "slides": []})
        repo = VideoRepository(db_session)

        with pytest.raises(PreconditionError):
            repo.get_script(repo.get_video(video_id))


class TestAssets:
    """Tests for full-replace asset writes."""

    def test_replace_six_with_eight(self, db_session, make_video):
        video_id = make_video()
        repo = VideoRepository(db_session)

        repo.replace_assets(
            video_id, [AssetType.SLIDE_IMAGE], [slide_asset(i, f"old-{i}.png") for i in range(6)]
        )
        db_session.commit()
        repo.replace_assets(
            video_id, [AssetType.SLIDE_IMAGE], [slide_asset(i, f"new-{i}.png") for i in range(8)]
        )
        db_session.commit()

        rows = repo.list_assets(video_id, AssetType.SLIDE_IMAGE)
        assert [r.asset_index for r in rows] == list(range(8))
        assert all(r.storage_key.startswith("new-") for r in rows)
        assert rows[0].metadata_["width"] == 100

    def test_replace_leaves_other_types(self, db_session, make_video):
        video_id = make_video()
        repo = VideoRepository(db_session)
        repo.add_asset(
            video_id,
            NewAsset(
                AssetType.IMAGE_GENERATION_PROMPT,
                0,
                stored("prompt.txt", "text/plain"),
                PromptMetadata(grid_index=0, model="m", resolution="4K"),
            ),
        )
        db_session.commit()

        repo.replace_assets(video_id, [AssetType.SLIDE_IMAGE], [slide_asset(0, "a.png")])
        db_session.commit()

        assert repo.asset_indices(video_id, AssetType.IMAGE_GENERATION_PROMPT) == {0}

    def test_replace_rejects_duplicates(self, db_session, make_video):
        video_id = make_video()
        repo = VideoRepository(db_session)

        with pytest.raises(ValueError):
            repo.replace_assets(
                video_id,
                [AssetType.SLIDE_IMAGE],
                [slide_asset(1, "a.png"), slide_asset(1, "b.png")],
            )

    def test_replace_rejects_foreign_type(self, db_session, make_video):
        video_id = make_video()
        repo = VideoRepository(db_session)

        with pytest.raises(ValueError):
            repo.replace_assets(video_id, [AssetType.GRID_IMAGE], [slide_asset(0, "a.png")])

    def test_add_asset_checks_metadata_type(self, db_session, make_video):
        video_id = make_video()
        repo = VideoRepository(db_session)

        with pytest.raises(TypeError):
            repo.add_asset(
                video_id,
                NewAsset(
                    AssetType.SLIDE_AUDIO,
                    0,
                    stored("a.wav", "audio/wav"),
                    SlideImageMetadata(width=1, height=1, model="m"),
                ),
            )

    def test_delete_assets(self, db_session, make_video):
        video_id = make_video()
        repo = VideoRepository(db_session)
        repo.replace_assets(
            video_id, [AssetType.SLIDE_IMAGE], [slide_asset(i, f"{i}.png") for i in range(3)]
        )
        db_session.commit()

        assert repo.delete_assets(video_id, [AssetType.SLIDE_IMAGE]) == 3
        db_session.commit()
        assert db_session.execute(select(VideoAssetModel)).scalars().all() == []


class TestCosts:
    """Tests for the cost log and total cost."""

    def test_total_cost_is_sum_of_logs(self, db_session, make_video):
        video_id = make_video()
        repo = VideoRepository(db_session)
        video = repo.get_video(video_id)

        for cost in (0.24, 0.01, 0.005):
            repo.add_cost_log(
                video_id,
                CostEntry(CostLogType.IMAGE_GENERATION, "gemini-3-pro-image-preview", 0, 0, cost),
            )
        total = repo.recompute_total_cost(video)
        db_session.commit()

        assert total == pytest.approx(0.255)
        assert video.total_cost == pytest.approx(0.255)
        assert len(db_session.execute(select(CostLogModel)).scalars().all()) == 3


class TestStatusTransitions:
    """Tests for the conditional claims."""

    def test_claim_asset_generation_once(self, db_session, make_video):
        video_id = make_video()
        repo = VideoRepository(db_session)

        assert repo.claim_asset_generation(video_id, "Kore")
        db_session.commit()
        assert not repo.claim_asset_generation(video_id, "Puck")

        video = db_session.get(VideoModel, video_id)
        assert video.asset_status == "generating"
        assert video.tts_voice == "Kore"

    def test_claim_keeps_pinned_voice(self, db_session, make_video):
        video_id = make_video(tts_voice="Charon")
        repo = VideoRepository(db_session)

        assert repo.claim_asset_generation(video_id, "Kore")
        assert repo.get_video(video_id).tts_voice == "Charon"

    def test_claim_render(self, db_session, make_video):
        video_id = make_video(asset_status="generated", render_error="old failure")
        repo = VideoRepository(db_session)

        assert repo.claim_render(video_id)
        db_session.commit()
        video = repo.get_video(video_id)
        assert video.render_status == "rendering"
        assert video.render_error is None
        assert video.render_started_at is not None
        assert not repo.claim_render(video_id)

    def test_mark_errors(self, db_session, make_video):
        video_id = make_video()
        repo = VideoRepository(db_session)

        repo.mark_asset_error(video_id, "boom")
        repo.mark_render_error(video_id, "bang")
        db_session.commit()

        video = repo.get_video(video_id)
        assert (video.asset_status, video.asset_error) == ("error", "boom")
        assert (video.render_status, video.render_error) == ("error", "bang")
