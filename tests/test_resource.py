from datetime import datetime, timezone

import pytest

from modelctx.annotations import Annotations
from modelctx.resource import (
    BlobResourceContents,
    InvalidURIError,
    Resource,
    TextResourceContents,
    resource_contents_from_dict,
)


def test_new_resource_with_file_uri(tmp_path):
    path = tmp_path / "sample.txt"
    path.write_text("test content\n")
    uri = path.as_uri()

    resource = Resource.create(uri, "text", None)
    assert resource.uri.startswith("file:///")
    assert resource.priority() == 0.0
    assert resource.mime_type == "text"
    assert resource.scheme() == "file"
    assert resource.name == "sample.txt"


def test_resource_with_str_uri():
    test_content = "Hello, world!"
    uri = f"str:///{test_content}"
    resource = Resource.with_uri(uri, "test.txt", 0.5, "text")

    assert resource.uri == uri
    assert resource.name == "test.txt"
    assert resource.priority() == 0.5
    assert resource.mime_type == "text"
    assert resource.scheme() == "str"


@pytest.mark.parametrize(
    ("uri", "mime_type", "expected"),
    [
        ("file:///test.txt", "text", "text"),
        ("file:///test.bin", "blob", "blob"),
        ("file:///test.txt", "invalid", "text"),
        ("file:///test.txt", None, "text"),
    ],
)
def test_mime_type_validation(uri, mime_type, expected):
    assert Resource.create(uri, mime_type, None).mime_type == expected


def test_with_description():
    resource = Resource.with_uri("file:///test.txt", "test.txt", 0.0).with_description(
        "A test resource"
    )
    assert resource.description == "A test resource"


def test_with_mime_type():
    resource = Resource.with_uri("file:///test.txt", "test.txt", 0.0).with_mime_type("blob")
    assert resource.mime_type == "blob"

    resource = resource.with_mime_type("invalid")
    assert resource.mime_type == "text"


def test_invalid_uri():
    with pytest.raises(InvalidURIError):
        Resource.create("not-a-uri")


def test_with_uri_rejects_invalid_uri():
    with pytest.raises(InvalidURIError):
        Resource.with_uri("not-a-uri", "name", 0.5)


def test_with_uri_rejects_out_of_range_priority():
    with pytest.raises(ValueError):
        Resource.with_uri("file:///test.txt", "test.txt", 2.0)


def test_explicit_name_wins():
    assert Resource.create("file:///test.txt", None, "given").name == "given"


def test_uri_without_path_is_unnamed():
    assert Resource.create("memo://insights").name == "unnamed"


def test_mark_active():
    resource = Resource.with_uri("file:///test.txt", "test.txt", 0.2)
    assert not resource.is_active()
    active = resource.mark_active()
    assert active.is_active()
    assert active.priority() == 1.0
    assert resource.priority() == 0.2


def test_update_timestamp_moves_forward():
    old = datetime(2000, 1, 1, tzinfo=timezone.utc)
    resource = Resource(
        uri="file:///test.txt",
        name="test.txt",
        annotations=Annotations.for_resource(0.3, old),
    )
    resource.update_timestamp()
    assert resource.timestamp() > old
    assert resource.priority() == 0.3


def test_resource_round_trip():
    resource = Resource.with_uri("file:///test.txt", "test.txt", 0.4, "blob").with_description(
        "desc"
    )
    assert Resource.from_dict(resource.to_dict()) == resource


def test_resource_from_dict_defaults_mime_type():
    resource = Resource.from_dict({"uri": "file:///a", "name": "a"})
    assert resource.mime_type == "text"
    assert resource.annotations is None
    assert resource.priority() is None


def test_resource_from_dict_requires_name():
    with pytest.raises(ValueError, match="name"):
        Resource.from_dict({"uri": "file:///a"})


def test_text_contents_round_trip_without_mime_type():
    contents = TextResourceContents(uri="file:///a", text="hello")
    data = contents.to_dict()
    assert "mimeType" not in data
    assert resource_contents_from_dict(data) == contents


def test_blob_contents_round_trip():
    contents = BlobResourceContents(uri="file:///a", blob="aGk=", mime_type="blob")
    data = contents.to_dict()
    assert data["mimeType"] == "blob"
    assert resource_contents_from_dict(data) == contents


def test_contents_need_text_or_blob():
    with pytest.raises(ValueError):
        resource_contents_from_dict({"uri": "file:///a"})