import os
from pathlib import Path
import boto3
from botocore.config import Config as BotoConfig
from django.conf import settings

CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/MP2T",
    ".jpg": "image/jpeg",
}


def get_s3_client():
    """
    SDK client for server-side upload/delete.
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,  # e.g. http://127.0.0.1:9000
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        ),
    )


def object_url(key: str) -> str:
    """
    Direct object URL against the PUBLIC endpoint. Players resolve the relative
    rendition paths of master.m3u8 against it, so the prefix must be readable.
    """
    base = os.getenv("S3_PUBLIC_ENDPOINT", settings.S3_PUBLIC_ENDPOINT)
    return f"{base}/{settings.S3_BUCKET}/{key}"


def stream_key(video_id, rel: str = "") -> str:
    key = f"{settings.STREAMS_SUBDIR}/{video_id}"
    return f"{key}/{rel}" if rel else key


def upload_dir(local_dir: str, key_prefix: str) -> int:
    """
    Recursively upload all files under local_dir to bucket with prefix key_prefix.
    Sets Content-Types for HLS assets (.m3u8 playlists, .ts segments) and the poster.
    Returns the number of uploaded files.
    """
    s3 = get_s3_client()
    base = Path(local_dir)
    count = 0

    for p in sorted(base.rglob("*")):
        if not p.is_file():
            continue

        rel = p.relative_to(base)
        key = f"{key_prefix}/{rel}".replace("\\", "/")  # Windows safety

        content_type = CONTENT_TYPES.get(p.suffix.lower())
        extra = {"ContentType": content_type} if content_type else None

        s3.upload_file(str(p), settings.S3_BUCKET, key, ExtraArgs=extra)
        count += 1
    return count


def delete_prefix(key_prefix: str) -> int:
    """Delete every object under key_prefix; returns the number of deleted keys."""
    s3 = get_s3_client()
    paginator = s3.get_paginator("list_objects_v2")
    deleted = 0
    for page in paginator.paginate(Bucket=settings.S3_BUCKET, Prefix=f"{key_prefix}/"):
        objects = [{"Key": o["Key"]} for o in page.get("Contents", [])]
        if not objects:
            continue
        s3.delete_objects(Bucket=settings.S3_BUCKET, Delete={"Objects": objects, "Quiet": True})
        deleted += len(objects)
    return deleted
