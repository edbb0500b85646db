from collections.abc import Sequence

from .models import PushTarget

MAPPING_FILE_TEMPLATE = "map.publish_{stream_name}.txt"


def mapping_file_name(stream_name: str) -> str:
    return MAPPING_FILE_TEMPLATE.format(stream_name=stream_name)


def build_push_publish_mapping(targets: Sequence[PushTarget]) -> str:
    """Render the push-publish mapping, one blank-line separated record per target.

    >>> print(build_push_publish_mapping([PushTarget(code="yt", rtmp_url="rtmp://a", stream_key="k1")]))
    pushpublishname yt
    url rtmp://a/k1
    <BLANKLINE>
    """
    records = [
        f"pushpublishname {t.code or 'default'}\nurl {t.rtmp_url or ''}/{t.stream_key or ''}\n"
        for t in targets
    ]
    return "\n".join(records)
