from typing import Optional, Tuple
from urllib.parse import quote, urlparse


def parse_s3_url(url: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Parses an S3 URL and returns the bucket and key.
    Supports s3://bucket/key, virtual-hosted and path-style HTTP URLs.
    """
    parsed_url = urlparse(url)
    bucket: Optional[str] = None
    key: Optional[str] = None

    if parsed_url.scheme == "s3":
        bucket = parsed_url.netloc or None
        key = parsed_url.path.lstrip("/") or None
    else:
        host = parsed_url.netloc
        path = parsed_url.path.lstrip("/")
        if host and ".s3." in host:
            bucket = host.split(".s3.", 1)[0] or None
            key = path or None
        if bucket is None:
            parts = path.split("/", 1)
            if parts[0]:
                bucket = parts[0]
                key = parts[1] if len(parts) > 1 else None

    if key is not None:
        key = key.lstrip("/")
        if not key:
            key = None

    return bucket, key


def is_url(value: str) -> bool:
    return urlparse(value).scheme in ("s3", "http", "https")


def split_object_ref(value: str) -> Tuple[Optional[str], str]:
    """
    Split an object reference into ``(bucket, key)``.

    A bare key has no bucket. A URL must point to an object, not a bucket.

    >>> split_object_ref("s3://pics/a/b.jpg")
    ('pics', 'a/b.jpg')
    >>> split_object_ref("a/b.jpg")
    (None, 'a/b.jpg')
    """
    if not is_url(value):
        return None, value.lstrip("/")
    bucket, key = parse_s3_url(value)
    if key is None:
        raise ValueError(f"URL does not point to an object: {value}")
    return bucket, key


def object_key_from(value: str) -> str:
    """
    Accept either a bare object key or an object URL and return the key.

    >>> object_key_from("https://pics.s3.us-east-1.amazonaws.com/a/b.jpg")
    'a/b.jpg'
    >>> object_key_from("a/b.jpg")
    'a/b.jpg'
    """
    return split_object_ref(value)[1]


def build_object_url(
    bucket: str, key: str, region: Optional[str] = None, endpoint_url: Optional[str] = None
) -> str:
    """
    Public URL of an object.

    AWS endpoints get a virtual-hosted URL, custom endpoints (MinIO, Spaces, ...)
    a path-style one.
    """
    encoded_key = quote(key.lstrip("/"))
    if endpoint_url:
        return f"{endpoint_url.rstrip('/')}/{bucket}/{encoded_key}"
    if not region or region == "us-east-1":
        return f"https://{bucket}.s3.amazonaws.com/{encoded_key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{encoded_key}"
