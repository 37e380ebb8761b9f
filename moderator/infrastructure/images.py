"""
Frame image encoding shared by the moderation clients.
"""

import base64
from pathlib import Path


def detect_image_type(image_data: bytes) -> str:
    """
    Detect image MIME type from magic bytes.

    ffmpeg writes jpeg for us, so that is also the default.
    """
    if image_data[:3] == b'\xff\xd8\xff':
        return "image/jpeg"
    elif image_data[:8] == b'\x89PNG\r\n\x1a\n':
        return "image/png"
    elif image_data[:6] in (b'GIF87a', b'GIF89a'):
        return "image/gif"
    elif image_data[:4] == b'RIFF' and image_data[8:12] == b'WEBP':
        return "image/webp"
    else:
        return "image/jpeg"


def encode_image(image_data: bytes) -> str:
    return base64.b64encode(image_data).decode("utf-8")


def to_data_url(image_data: bytes) -> str:
    """data:<mime>;base64,<payload> for embedding an image in a JSON request."""
    return f"data:{detect_image_type(image_data)};base64,{encode_image(image_data)}"


def read_frame(frame_path: Path) -> bytes:
    return Path(frame_path).read_bytes()
