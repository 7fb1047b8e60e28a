"""
Tests for the convert -> resize -> compress -> upload pipeline.
"""

import io

import pytest
from PIL import Image

from imgship.api.api import Api
from imgship.domain.types.request import TransformRequest
from imgship.domain.types.upload import UploadDescriptor, UploadResult
from imgship.exceptions import DecodeError, StorageError, UnsupportedFormatError
from imgship.ops.pipeline import Operation, run_operations, upload_image, upload_operations

from s3_fakes import client_error


@pytest.fixture
def work_dir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def descriptor():
    return UploadDescriptor(
        bucket="pics",
        key="avatars/42.jpg",
        region="eu-west-1",
        access_key_id="AKIATEST",
        secret_access_key="secret",
    )


def _stored_image(s3_client, key):
    body = s3_client.objects[("pics", key)]["Body"]
    with Image.open(io.BytesIO(body)) as img:
        img.load()
        return img.format, img.size


def test_upload_operations_order():
    ops = upload_operations(TransformRequest(width=100, quality=80))
    assert [op.name for op in ops] == ["convert_to_jpeg", "resize_keep_aspect_ratio", "compress"]
    assert ops[1].parameters == {"width": 100, "height": None}
    assert ops[2].parameters == {"quality": 80}

    exact = upload_operations(TransformRequest(width=10, height=20, keep_aspect_ratio=False))
    assert exact[1] == Operation("resize", {"width": 10, "height": 20})


def test_run_operations_records_every_temp_file(png_rgba, work_dir):
    created = []
    asset = run_operations(png_rgba, upload_operations(TransformRequest(height=50)), work_dir, created)

    assert len(created) == 3
    assert asset.path == created[-1]
    assert asset.size == (100, 50)


def test_upload_image(png_rgba, work_dir, descriptor, storage, s3_client):
    result = upload_image(png_rgba, descriptor, TransformRequest(width=100), storage, tmp_dir=work_dir)

    assert isinstance(result, UploadResult)
    assert result.url == "https://pics.s3.eu-west-1.amazonaws.com/avatars/42.jpg"
    assert (result.width, result.height) == (100, 50)
    assert result.previous_deleted is None
    assert _stored_image(s3_client, "avatars/42.jpg") == ("JPEG", (100, 50))

    stored = s3_client.objects[("pics", "avatars/42.jpg")]
    assert stored["ContentType"] == "image/jpeg"
    assert stored["ACL"] == "public-read"
    assert stored["CacheControl"] == "max-age=864000"

    assert list(work_dir.iterdir()) == []
    assert png_rgba.exists()


def test_upload_image_cleans_up_when_upload_fails(jpeg_800x600, work_dir, descriptor, storage, s3_client):
    s3_client.failures["put_object"] = client_error("AccessDenied", 403)

    with pytest.raises(StorageError):
        upload_image(jpeg_800x600, descriptor, TransformRequest(width=400), storage, tmp_dir=work_dir)

    assert list(work_dir.iterdir()) == []


def test_upload_image_cleans_up_when_a_transform_fails(jpeg_800x600, work_dir, descriptor, storage, monkeypatch):
    from imgship.ops.transforms import registry

    def broken_compress(src, dst, quality):
        with open(dst, "wb") as f:
            f.write(b"partial")
        raise DecodeError(src, "boom")

    monkeypatch.setitem(registry.TRANSFORMS, "compress", broken_compress)

    with pytest.raises(DecodeError):
        upload_image(jpeg_800x600, descriptor, TransformRequest(width=400), storage, tmp_dir=work_dir)

    assert list(work_dir.iterdir()) == []


def test_upload_image_unsupported_source(webp_image, work_dir, descriptor, storage, s3_client):
    with pytest.raises(UnsupportedFormatError):
        upload_image(webp_image, descriptor, TransformRequest(width=10), storage, tmp_dir=work_dir)

    assert s3_client.objects == {}
    assert list(work_dir.iterdir()) == []


def test_upload_image_deletes_previous_object(jpeg_800x600, work_dir, descriptor, storage, s3_client):
    s3_client.objects[("pics", "avatars/41.jpg")] = {"Body": b"old"}
    descriptor = descriptor.model_copy(
        update={"previous_key": "https://pics.s3.eu-west-1.amazonaws.com/avatars/41.jpg"}
    )

    result = upload_image(jpeg_800x600, descriptor, TransformRequest(width=80), storage, tmp_dir=work_dir)

    assert result.previous_deleted is True
    assert ("pics", "avatars/41.jpg") not in s3_client.objects
    assert ("pics", "avatars/42.jpg") in s3_client.objects


def test_upload_image_keeps_result_when_previous_delete_fails(
    jpeg_800x600, work_dir, descriptor, storage, s3_client
):
    s3_client.failures["delete_object"] = client_error("AccessDenied", 403, "DeleteObject")
    descriptor = descriptor.model_copy(update={"previous_key": "avatars/41.jpg"})

    result = upload_image(jpeg_800x600, descriptor, TransformRequest(width=80), storage, tmp_dir=work_dir)

    assert result.previous_deleted is False
    assert ("pics", "avatars/42.jpg") in s3_client.objects


def test_upload_image_same_key_as_previous_is_not_deleted(
    jpeg_800x600, work_dir, storage, s3_client
):
    descriptor = UploadDescriptor(
        bucket="pics",
        key="avatars/42.jpg",
        region="eu-west-1",
        previous_key="s3://pics/avatars/42.jpg",
    )

    result = upload_image(jpeg_800x600, descriptor, TransformRequest(width=80), storage, tmp_dir=work_dir)

    assert result.previous_deleted is None
    assert ("pics", "avatars/42.jpg") in s3_client.objects
    assert "delete_object" not in s3_client.calls


def test_upload_image_opens_own_client(jpeg_800x600, work_dir, descriptor, s3_client, s3_session, monkeypatch):
    import aioboto3

    monkeypatch.setattr(aioboto3, "Session", lambda: s3_session)

    result = upload_image(jpeg_800x600, descriptor, TransformRequest(height=60), tmp_dir=work_dir)

    assert (result.width, result.height) == (80, 60)
    assert s3_session.client_kwargs["aws_access_key_id"] == "AKIATEST"
    assert s3_client.closed


def test_api_upload_image(gif_image, work_dir, s3_client, s3_session, monkeypatch):
    import aioboto3

    monkeypatch.setattr(aioboto3, "Session", lambda: s3_session)
    api = Api(
        access_key_id="AKIATEST",
        secret_access_key="secret",
        region="eu-west-1",
        bucket="pics",
        tmp_dir=work_dir,
    )
    result = api.upload_image(gif_image, key="banners/1.jpg", width=60, height=60, quality=70)

    assert (result.width, result.height) == (60, 40)
    assert _stored_image(s3_client, "banners/1.jpg") == ("JPEG", (60, 40))
    assert list(work_dir.iterdir()) == []
    api.close()


def test_api_upload_image_validates_request(jpeg_800x600):
    api = Api(access_key_id="a", secret_access_key="b", bucket="pics")
    with pytest.raises(ValueError):
        api.upload_image(jpeg_800x600, key="x.jpg")
    with pytest.raises(ValueError):
        api.upload_image(jpeg_800x600, key="x.jpg", width=10, quality=120)

    no_bucket = Api(access_key_id="a", secret_access_key="b")
    with pytest.raises(ValueError):
        no_bucket.upload_image(jpeg_800x600, key="x.jpg", width=10)
