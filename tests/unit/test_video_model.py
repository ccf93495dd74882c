"""Unit tests for the video record model and its state machine."""

import pytest

from video_orchestrator.domain.exceptions import (
    ExternalAssetConflictException,
    InvalidStatusTransitionException,
    RetryNotAllowedException,
)
from video_orchestrator.domain.models.thumbnail import Thumbnail, ThumbnailTier
from video_orchestrator.domain.models.video import (
    VideoRecord,
    VideoStatus,
    can_transition,
)
from video_orchestrator.domain.value_objects import (
    MediaMetadata,
    MetadataSource,
    format_duration,
)


@pytest.fixture
def record() -> VideoRecord:
    return VideoRecord(
        storage_key="uploads/clip.mp4",
        original_filename="clip.mp4",
        size_bytes=40 * 1024 * 1024,
        mime_type="video/mp4",
        title="Sample Video",
        download_url="https://cdn.test/video-uploads/uploads/clip.mp4",
    )


class TestVideoStatus:
    def test_values(self):
        assert VideoStatus.PENDING == "pending"
        assert VideoStatus.PROCESSING == "processing"
        assert VideoStatus.READY == "ready"
        assert VideoStatus.FAILED == "failed"

    def test_terminal_statuses(self):
        assert VideoStatus.READY.is_terminal
        assert VideoStatus.FAILED.is_terminal
        assert not VideoStatus.PROCESSING.is_terminal

    @pytest.mark.parametrize(
        ("current", "target", "allowed"),
        [
            (VideoStatus.PENDING, VideoStatus.PROCESSING, True),
            (VideoStatus.PENDING, VideoStatus.READY, True),
            (VideoStatus.PROCESSING, VideoStatus.FAILED, True),
            (VideoStatus.READY, VideoStatus.PROCESSING, False),
            (VideoStatus.READY, VideoStatus.FAILED, False),
            (VideoStatus.FAILED, VideoStatus.READY, False),
            (VideoStatus.PROCESSING, VideoStatus.PENDING, False),
        ],
    )
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed


class TestVideoRecord:
    def test_defaults(self, record):
        assert record.status == VideoStatus.PENDING
        assert len(record.id) == 36
        assert record.version == 0
        assert record.thumbnail is None
        assert record.degraded is False

    def test_size_must_be_positive(self):
        with pytest.raises(ValueError):
            VideoRecord(
                storage_key="k",
                original_filename="f.mp4",
                size_bytes=0,
                mime_type="video/mp4",
                title="t",
            )

    def test_mutations_return_copies(self, record):
        processing = record.transition_to(VideoStatus.PROCESSING)
        assert processing is not record
        assert record.status == VideoStatus.PENDING

    def test_ready_passes_through_processing(self, record):
        ready = record.mark_ready()
        assert ready.status == VideoStatus.READY
        assert ready.ready_at is not None

    def test_ready_at_stamped_once(self, record):
        ready = record.mark_ready()
        assert ready.mark_ready().ready_at == ready.ready_at

    def test_terminal_records_reject_transitions(self, record):
        ready = record.mark_ready()
        with pytest.raises(InvalidStatusTransitionException):
            ready.transition_to(VideoStatus.FAILED)

    def test_mark_failed_records_error(self, record):
        failed = record.mark_failed("input unreadable")
        assert failed.status == VideoStatus.FAILED
        assert failed.processing_error == "input unreadable"

    def test_mark_degraded_falls_back_to_download_url(self, record):
        degraded = record.mark_degraded("provider errored")
        assert degraded.status == VideoStatus.READY
        assert degraded.degraded is True
        assert degraded.streaming_url == record.download_url

    def test_reset_for_retry_only_from_failed(self, record):
        with pytest.raises(RetryNotAllowedException):
            record.reset_for_retry()

        failed = record.link_external_asset("asset-1", "play-1").mark_failed("boom")
        reset = failed.reset_for_retry()
        assert reset.status == VideoStatus.PENDING
        assert reset.external_asset_id is None
        assert reset.external_playback_id is None
        assert reset.processing_error is None

    def test_link_external_asset(self, record):
        linked = record.link_external_asset("asset-1", "play-1", "preparing")
        assert linked.external_asset_id == "asset-1"
        relinked = linked.link_external_asset("asset-1", None, "ready")
        assert relinked.external_playback_id == "play-1"
        assert relinked.external_status == "ready"

    def test_link_different_asset_conflicts(self, record):
        linked = record.link_external_asset("asset-1")
        with pytest.raises(ExternalAssetConflictException):
            linked.link_external_asset("asset-2")


class TestThumbnailUpgrades:
    def test_thumbnail_tiers_only_upgrade(self, record):
        placeholder = Thumbnail(ref="/p.svg", tier=ThumbnailTier.PLACEHOLDER)
        provider = Thumbnail(ref="https://img/1.jpg", tier=ThumbnailTier.PROVIDER)

        upgraded = record.with_thumbnail(placeholder).with_thumbnail(provider)
        assert upgraded.thumbnail == provider

        unchanged = upgraded.with_thumbnail(placeholder)
        assert unchanged is upgraded

    def test_usable_thumbnail(self, record):
        assert not record.has_usable_thumbnail
        capture = Thumbnail(ref="https://cdn/c.png", tier=ThumbnailTier.CLIENT_CAPTURE)
        assert record.with_thumbnail(capture).has_usable_thumbnail

    def test_tier_ranks(self):
        assert [t.rank for t in ThumbnailTier] == [1, 2, 3, 4]
        assert ThumbnailTier.SYNTHESIZED.outranks(ThumbnailTier.CLIENT_CAPTURE)
        assert not ThumbnailTier.PLACEHOLDER.outranks(ThumbnailTier.PROVIDER)
        assert ThumbnailTier.PLACEHOLDER.outranks(None)


class TestMetadata:
    @pytest.fixture
    def measured(self) -> MediaMetadata:
        return MediaMetadata(
            duration_seconds=125.0,
            width=1920,
            height=1080,
            aspect_ratio="16:9",
            bitrate=5_000_000,
        )

    def test_estimates_never_overwrite_authoritative(self, record, measured):
        authoritative = record.with_metadata(measured, MetadataSource.AUTHORITATIVE)
        guess = measured.model_copy(update={"duration_seconds": 9.0})

        result = authoritative.with_metadata(guess, MetadataSource.ESTIMATED)

        assert result is authoritative
        assert result.duration_seconds == 125.0

    def test_authoritative_overwrites_estimate(self, record, measured):
        estimated = record.with_metadata(
            measured.model_copy(update={"duration_seconds": 9.0}),
            MetadataSource.ESTIMATED,
        )
        result = estimated.with_metadata(measured, MetadataSource.AUTHORITATIVE)
        assert result.metadata_source == MetadataSource.AUTHORITATIVE
        assert result.metadata == measured

    def test_quality_label(self, measured):
        assert measured.quality_label == "1080p"

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(0, "0:00"), (65, "1:05"), (3725, "1:02:05")],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected
