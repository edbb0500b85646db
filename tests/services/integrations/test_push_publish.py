"""Tests for push-publish mapping rendering."""

from app.services.integrations.media_server.models import PushTarget
from app.services.integrations.media_server.push_publish import (
    build_push_publish_mapping,
    mapping_file_name,
)


class TestBuildPushPublishMapping:
    def test_two_targets_are_blank_line_separated(self):
        targets = [
            PushTarget(code="youtube", rtmp_url="rtmp://a.rtmp.youtube.com/live2", stream_key="yt-key"),
            PushTarget(code="twitch", rtmp_url="rtmp://live.twitch.tv/app", stream_key="tw-key"),
        ]

        content = build_push_publish_mapping(targets)

        assert content == (
            "pushpublishname youtube\n"
            "url rtmp://a.rtmp.youtube.com/live2/yt-key\n"
            "\n"
            "pushpublishname twitch\n"
            "url rtmp://live.twitch.tv/app/tw-key\n"
        )

    def test_missing_fields_render_defaults(self):
        """A target without code/url/key still yields a well-formed record."""
        content = build_push_publish_mapping([PushTarget()])

        assert content == "pushpublishname default\nurl /\n"

    def test_order_is_preserved(self):
        targets = [PushTarget(code=c, rtmp_url="rtmp://x", stream_key=c) for c in ("c", "a", "b")]

        content = build_push_publish_mapping(targets)

        names = [line.split(" ", 1)[1] for line in content.splitlines() if line.startswith("pushpublishname")]
        assert names == ["c", "a", "b"]

    def test_no_targets(self):
        assert build_push_publish_mapping([]) == ""


def test_mapping_file_name():
    assert mapping_file_name("stream_u1_1700000000000") == "map.publish_stream_u1_1700000000000.txt"
