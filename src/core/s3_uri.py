"""S3 URI parsing helpers.

Scratch locations may live on S3; this module validates those URIs
and builds boto3 clients from runtime config.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core.config import TableMatrixConfig
from core.errors import MatrixConfigError, MatrixDependencyError

S3_SCHEME = "s3://"


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 location model."""

    bucket: str
    prefix: str

    def child(self, relative_key: str) -> "S3Location":
        """Return a location nested below this prefix."""
        prefix = f"{self.prefix.rstrip('/')}/{relative_key.strip('/')}"
        return S3Location(bucket=self.bucket, prefix=prefix)

    def uri(self) -> str:
        """Render the location back to ``s3://bucket/prefix`` form."""
        return f"{S3_SCHEME}{self.bucket}/{self.prefix}"


def is_s3_uri(uri: str) -> bool:
    """Return whether a location string uses the S3 scheme."""
    return uri.startswith(S3_SCHEME)


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 URI.

    Args:
        uri: URI in format ``s3://bucket/prefix``.

    Returns:
        Parsed bucket and prefix pair.

    Raises:
        MatrixConfigError: If bucket or prefix is missing.
    """
    stripped_uri = uri.removeprefix(S3_SCHEME)
    bucket, _, prefix = stripped_uri.partition("/")
    if not bucket or not prefix.strip("/"):
        raise MatrixConfigError(
            f"Invalid S3 URI '{uri}': expected s3://bucket/prefix. "
            "Provide both bucket and prefix."
        )
    return S3Location(bucket=bucket, prefix=prefix.strip("/"))


def create_s3_client(config: TableMatrixConfig) -> Any:
    """Create a boto3 S3 client.

    Args:
        config: Runtime config containing optional profile/region.

    Returns:
        Boto3 S3 client.

    Raises:
        MatrixDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise MatrixDependencyError(
            "S3 scratch space requires boto3, but it is not installed. "
            "Install tablematrix[s3] to use s3:// scratch locations."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")
