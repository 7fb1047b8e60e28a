"""
Shared fixtures: generated test images and an in-memory S3 session.
"""

import pytest
from PIL import Image

from imgship.api.storage_api import StorageApi

from s3_fakes import FakeS3Client, FakeSession


def _gradient(size, mode="RGB"):
    width, height = size
    img = Image.new("RGB", size)
    img.putdata([((x * 255) // width, (y * 255) // height, 128) for y in range(height) for x in range(width)])
    return img if mode == "RGB" else img.convert(mode)


@pytest.fixture
def jpeg_800x600(tmp_path):
    path = tmp_path / "photo.jpg"
    _gradient((800, 600)).save(path, format="JPEG", quality=95)
    return path


@pytest.fixture
def jpeg_100x100(tmp_path):
    path = tmp_path / "small.jpg"
    _gradient((100, 100)).save(path, format="JPEG", quality=90)
    return path


@pytest.fixture
def png_rgba(tmp_path):
    """200x100 PNG, left half fully transparent, right half opaque red."""
    path = tmp_path / "logo.png"
    img = Image.new("RGBA", (200, 100), (0, 0, 0, 0))
    img.paste((255, 0, 0, 255), (100, 0, 200, 100))
    img.save(path, format="PNG")
    return path


@pytest.fixture
def png_rgb(tmp_path):
    path = tmp_path / "gradient.png"
    _gradient((300, 200)).save(path, format="PNG")
    return path


@pytest.fixture
def gif_image(tmp_path):
    path = tmp_path / "anim.gif"
    _gradient((120, 80)).convert("P", palette=Image.Palette.ADAPTIVE).save(path, format="GIF")
    return path


@pytest.fixture
def bmp_image(tmp_path):
    path = tmp_path / "scan.bmp"
    _gradient((64, 48)).save(path, format="BMP")
    return path


@pytest.fixture
def tiff_image(tmp_path):
    path = tmp_path / "scan.tiff"
    _gradient((64, 48)).save(path, format="TIFF")
    return path


@pytest.fixture
def webp_image(tmp_path):
    path = tmp_path / "photo.webp"
    _gradient((64, 48)).save(path, format="WEBP")
    return path


@pytest.fixture
def text_file(tmp_path):
    path = tmp_path / "notes.jpg"
    path.write_text("definitely not a jpeg")
    return path


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def s3_session(s3_client):
    return FakeSession(s3_client)


@pytest.fixture
def storage(s3_session):
    api = StorageApi(
        access_key_id="AKIATEST",
        secret_access_key="secret",
        region="eu-west-1",
        default_bucket="pics",
        session=s3_session,
    )
    yield api
    api.close()
