"""Scratch space for job output files.

Reduce jobs that produce scalar results write JSONL record files into a
scratch location, local or on S3. The orchestrator reads them back and
removes the whole temporary tree afterwards.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any, Protocol

from core.config import TableMatrixConfig
from core.errors import MatrixJobError, MatrixStorageError
from core.s3_uri import S3Location, create_s3_client, is_s3_uri, parse_s3_uri

_DELETE_BATCH_SIZE = 1000


class ScratchFileSystem(Protocol):
    """Record-file access on job scratch space."""

    @property
    def root(self) -> str:
        """Scratch root location."""

    def join(self, *parts: str) -> str:
        """Return a location below the scratch root."""

    def write_records(self, location: str, records: list[tuple[str, object]]) -> None:
        """Write key/value records to one file."""

    def read_records(self, location: str) -> list[tuple[str, object]]:
        """Read key/value records from one file."""

    def exists(self, location: str) -> bool:
        """Return whether a file or tree exists at this location."""

    def delete_tree(self, location: str) -> None:
        """Recursively remove a location; missing locations are ignored."""


class LocalScratchFileSystem:
    """Scratch space in a local directory."""

    def __init__(self, root: Path) -> None:
        self._root = root.expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> str:
        return str(self._root)

    def join(self, *parts: str) -> str:
        return str(self._root.joinpath(*parts))

    def write_records(self, location: str, records: list[tuple[str, object]]) -> None:
        file_path = Path(location)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(_render_records(records), encoding="utf-8")
        except OSError as error:
            raise MatrixStorageError(
                f"Failed to write job output {file_path}: {error}. "
                "Check scratch space permissions and free disk space."
            ) from error

    def read_records(self, location: str) -> list[tuple[str, object]]:
        file_path = Path(location)
        try:
            body = file_path.read_text(encoding="utf-8")
        except OSError as error:
            raise MatrixJobError(
                f"Job output {file_path} is missing or unreadable: {error}."
            ) from error
        return _parse_records(body, location)

    def exists(self, location: str) -> bool:
        return Path(location).exists()

    def delete_tree(self, location: str) -> None:
        target = Path(location)
        try:
            if target.is_dir():
                shutil.rmtree(target)
            elif target.exists():
                target.unlink()
        except OSError as error:
            raise MatrixStorageError(f"Failed to delete scratch tree {target}: {error}.") from error


class S3ScratchFileSystem:
    """Scratch space under an S3 prefix."""

    def __init__(self, s3_client: Any, root: S3Location) -> None:
        self._client = s3_client
        self._root = root

    @property
    def root(self) -> str:
        return self._root.uri()

    def join(self, *parts: str) -> str:
        location = self._root
        for part in parts:
            location = location.child(part)
        return location.uri()

    def write_records(self, location: str, records: list[tuple[str, object]]) -> None:
        target = parse_s3_uri(location)
        try:
            self._client.put_object(
                Bucket=target.bucket,
                Key=target.prefix,
                Body=_render_records(records).encode("utf-8"),
            )
        except Exception as error:
            raise MatrixStorageError(
                f"Failed to write job output {location}: {error}. Check AWS credentials."
            ) from error

    def read_records(self, location: str) -> list[tuple[str, object]]:
        target = parse_s3_uri(location)
        try:
            response = self._client.get_object(Bucket=target.bucket, Key=target.prefix)
            body = response["Body"].read().decode("utf-8")
        except Exception as error:
            raise MatrixJobError(f"Job output {location} is missing or unreadable: {error}.") from error
        return _parse_records(body, location)

    def exists(self, location: str) -> bool:
        target = parse_s3_uri(location)
        response = self._client.list_objects_v2(
            Bucket=target.bucket, Prefix=target.prefix, MaxKeys=1
        )
        return int(response.get("KeyCount", 0)) > 0

    def delete_tree(self, location: str) -> None:
        target = parse_s3_uri(location)
        paginator = self._client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=target.bucket, Prefix=target.prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        for start in range(0, len(keys), _DELETE_BATCH_SIZE):
            batch = keys[start : start + _DELETE_BATCH_SIZE]
            try:
                self._client.delete_objects(
                    Bucket=target.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
            except Exception as error:
                raise MatrixStorageError(
                    f"Failed to delete scratch tree {location}: {error}."
                ) from error


def build_scratch_filesystem(config: TableMatrixConfig) -> ScratchFileSystem:
    """Create the scratch filesystem named by ``config.scratch_uri``."""
    if is_s3_uri(config.scratch_uri):
        return S3ScratchFileSystem(create_s3_client(config), parse_s3_uri(config.scratch_uri))
    return LocalScratchFileSystem(Path(config.scratch_uri))


def _render_records(records: list[tuple[str, object]]) -> str:
    lines = [json.dumps({"key": key, "value": value}, sort_keys=True) for key, value in records]
    return "".join(f"{line}\n" for line in lines)


def _parse_records(body: str, location: str) -> list[tuple[str, object]]:
    records: list[tuple[str, object]] = []
    for line_number, line in enumerate(body.splitlines(), 1):
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
            records.append((str(payload["key"]), payload["value"]))
        except (json.JSONDecodeError, KeyError, TypeError) as error:
            raise MatrixJobError(
                f"Invalid job output record at {location}:{line_number}: {error}."
            ) from error
    return records
