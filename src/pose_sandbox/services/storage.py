from __future__ import annotations

import shutil
from functools import cached_property
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from pose_sandbox.config import AppSettings, get_settings
from pose_sandbox.models import StoredArtifact


class StorageError(RuntimeError):
    """Raised when an S3 transfer fails."""


def parse_s3_uri(uri: str) -> Optional[tuple[str, str]]:
    """Return ``(bucket, key)`` for an ``s3://`` URI, or None for a local path."""
    parsed = urlparse(uri)
    if parsed.scheme != "s3":
        return None
    if not parsed.netloc:
        raise ValueError(f"Invalid S3 URI: {uri}")
    return parsed.netloc, parsed.path.lstrip("/")


class ArtifactStore:
    """Reads inputs from and writes artifacts to a local directory or S3."""

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or get_settings()

    @cached_property
    def s3(self):
        return boto3.client("s3", region_name=self.settings.aws_region)

    def fetch(self, uri: str, working_dir: Path) -> Path:
        """
        Return a local file for ``uri``.

        S3 objects are downloaded into ``working_dir``; local paths are used
        in place.

        Raises:
            FileNotFoundError: if a local path is missing or is not a file
            StorageError: if the S3 download fails
        """
        location = parse_s3_uri(uri)
        if location is None:
            path = Path(uri)
            if not path.is_file():
                raise FileNotFoundError(f"No such file: {uri}")
            return path

        bucket, key = location
        destination = working_dir / Path(key).name
        logger.debug("Downloading {} to {}", uri, destination)
        try:
            self.s3.download_file(bucket, key, str(destination))
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Could not download {uri}: {exc}") from exc
        return destination

    def put(
        self,
        path: Path,
        destination: Optional[str],
        content_type: str,
        subdir: str,
    ) -> StoredArtifact:
        """
        Store ``path`` under ``destination`` keeping its file name.

        Without a destination the file goes to ``subdir`` of the output
        bucket when one is configured, else of the local work directory.

        Raises:
            StorageError: if the S3 upload fails
        """
        if destination is None and self.settings.output_bucket:
            destination = f"s3://{self.settings.output_bucket}/{subdir}"

        location = parse_s3_uri(destination) if destination else None
        if location is None:
            target_dir = Path(destination) if destination else self.settings.work_dir / subdir
            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / path.name
            shutil.copy2(path, target)
            logger.debug("Stored {} at {}", path.name, target)
            return StoredArtifact(uri=str(target), content_type=content_type)

        bucket, prefix = location
        key = f"{prefix.rstrip('/')}/{path.name}" if prefix else path.name
        try:
            self.s3.upload_file(str(path), bucket, key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Could not upload to s3://{bucket}/{key}: {exc}") from exc
        logger.debug("Uploaded {} to s3://{}/{}", path.name, bucket, key)
        return StoredArtifact(uri=f"s3://{bucket}/{key}", content_type=content_type)


__all__ = ["ArtifactStore", "StorageError", "parse_s3_uri"]
