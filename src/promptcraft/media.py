"""Helpers for data URIs and media URLs."""

import base64
import mimetypes
import re
from pathlib import Path
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_DATA_URI = re.compile(r"^data:(?P<mime>[^;,]+);base64,(?P<data>.+)$", re.DOTALL)


def to_data_uri(data: bytes | str, mime_type: str) -> str:
    """Encode inline data as ``data:<mime>;base64,<payload>``.

    ``str`` input is assumed to be base64 already.
    """
    if isinstance(data, bytes):
        data = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{data}"


def parse_data_uri(uri: str) -> tuple[str, str]:
    """Split a data URI into ``(mime_type, base64_payload)``.

    Raises:
        ValueError: If ``uri`` is not a base64 data URI.

    """
    match = _DATA_URI.match(uri)
    if not match:
        msg = "Invalid image data format"
        raise ValueError(msg)
    return match.group("mime"), match.group("data")


def is_image_data_uri(value: str) -> bool:
    return bool(value) and value.startswith("data:image")


def with_query_param(uri: str, key: str, value: str) -> str:
    """Append ``key=value`` to the query string of ``uri``."""
    parts = urlsplit(uri)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append((key, value))
    return urlunsplit(parts._replace(query=urlencode(query)))


def save_data_uri(uri: str, output_path: Path) -> Path:
    """Decode a data URI to ``output_path``."""
    _, payload = parse_data_uri(uri)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("wb") as f:
        f.write(base64.b64decode(payload))
    return output_path


def read_image_as_data_uri(image_path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(image_path)
    if not mime_type or not mime_type.startswith("image/"):
        msg = f"Unsupported image format: {image_path.suffix.lower()}"
        raise ValueError(msg)
    with image_path.open("rb") as f:
        return to_data_uri(f.read(), mime_type)
