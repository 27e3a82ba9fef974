import pytest

from promptcraft.media import (
    is_image_data_uri,
    parse_data_uri,
    read_image_as_data_uri,
    save_data_uri,
    to_data_uri,
    with_query_param,
)


def test_to_data_uri_encodes_bytes():
    assert to_data_uri(b"img", "image/png") == "data:image/png;base64,aW1n"


def test_to_data_uri_keeps_base64_text():
    assert to_data_uri("aW1n", "image/jpeg") == "data:image/jpeg;base64,aW1n"


def test_parse_data_uri():
    assert parse_data_uri("data:image/webp;base64,AAAA") == ("image/webp", "AAAA")


def test_parse_data_uri_invalid():
    with pytest.raises(ValueError, match="Invalid image data format"):
        parse_data_uri("data:image/png,not-base64")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("data:image/png;base64,AAAA", True),
        ("data:video/mp4;base64,AAAA", False),
        ("https://example.com/a.png", False),
        ("", False),
    ],
)
def test_is_image_data_uri(value, expected):
    assert is_image_data_uri(value) is expected


def test_with_query_param_appends_to_existing_query():
    uri = "https://example.com/files/abc:download?alt=media"
    assert with_query_param(uri, "key", "k1") == (
        "https://example.com/files/abc:download?alt=media&key=k1"
    )


def test_with_query_param_without_query():
    assert with_query_param("https://example.com/v.mp4", "key", "k1") == (
        "https://example.com/v.mp4?key=k1"
    )


def test_save_and_read_image(tmp_path):
    path = save_data_uri("data:image/png;base64,aW1n", tmp_path / "out" / "a.png")
    assert path.read_bytes() == b"img"
    assert read_image_as_data_uri(path) == "data:image/png;base64,aW1n"


def test_read_unsupported_file(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hi")
    with pytest.raises(ValueError, match="Unsupported image format: .txt"):
        read_image_as_data_uri(path)
