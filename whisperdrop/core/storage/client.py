"""
Object-store interface used by the URL issuer and the CORS reconciler.
"""

from typing import Optional, Protocol

from .models import CorsPolicy, HttpMethod


class ObjectStoreClient(Protocol):
    """
    Interface for S3-compatible object stores.

    Using a Protocol here means the issuer and reconciler don't know whether
    they're talking to B2 through boto3 or to an in-memory mock. Every
    method raises ObjectStoreError on provider failure.
    """

    @property
    def bucket_name(self) -> str:
        ...

    async def presign(
        self,
        method: HttpMethod,
        key: str,
        expiry_seconds: int,
        content_type: Optional[str] = None,
    ) -> str:
        """Sign a URL for a single GET or PUT on `key`."""
        ...

    async def get_bucket_cors(self) -> Optional[CorsPolicy]:
        """Return the bucket's CORS policy, or None if it has none."""
        ...

    async def put_bucket_cors(self, policy: CorsPolicy) -> None:
        """Replace the bucket's CORS policy."""
        ...
