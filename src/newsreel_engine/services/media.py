"""Container sniffing for rendered video files."""

from newsreel_engine.errors import RenderError

EBML_MAGIC = b"\x1a\x45\xdf\xa3"

CONTAINER_MIME_TYPES = {"mp4": "video/mp4", "webm": "video/webm"}


def sniff_container(data: bytes) -> str | None:
    """Identify an MP4 (ISO BMFF ``ftyp`` box) or WebM (EBML header) file."""
    if len(data) >= 12 and data[4:8] == b"ftyp":
        return "mp4"
    if data[:4] == EBML_MAGIC:
        return "webm"
    return None


def verify_video_bytes(data: bytes | None, expected_format: str) -> str:
    """Check rendered bytes before upload and return their MIME type.

    Raises:
        RenderError: empty output, unknown container, or a container other
            than the one the renderer reported
    """
    if not data:
        raise RenderError("Renderer returned an empty file")
    container = sniff_container(data)
    if container is None:
        raise RenderError(f"Rendered file is not a recognised video container ({len(data)} bytes)")
    if container != expected_format:
        raise RenderError(f"Renderer reported {expected_format} but produced {container}")
    return CONTAINER_MIME_TYPES[container]
