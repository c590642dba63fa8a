"""
Object storage client for audio and transcript grants.

Talks to Backblaze B2 through its S3-compatible API, with a mock mode for
local development. Using the S3 API instead of the B2 native API because:
- boto3 handles SigV4 presigning for us
- The same client works against AWS S3, R2 or MinIO
- Browser uploads only need a presigned PUT, which B2 supports over S3

Mock mode keeps the CORS policy in memory, enabling API testing without
provisioning a bucket.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...core.storage.client import ObjectStoreClient
from ...core.storage.errors import ObjectStoreError
from ...core.storage.models import CorsPolicy, HttpMethod

logger = logging.getLogger(__name__)

_PRESIGN_OPERATIONS = {
    HttpMethod.PUT: "put_object",
    HttpMethod.GET: "get_object",
}

# B2 reports a bucket without S3 CORS rules this way
_NO_CORS_CODES = {"NoSuchCORSConfiguration"}


@dataclass
class StorageConfig:
    """
    Configuration for B2/S3-compatible storage.

    Built once at startup from Settings and handed to the client, so nothing
    below this point reads the environment.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    region: str = "us-west-002"
    connect_timeout: float = 5.0
    read_timeout: float = 30.0


def _translate_client_error(operation: str, error: Exception) -> ObjectStoreError:
    """Turn a botocore exception into the provider-neutral ObjectStoreError."""
    response = getattr(error, "response", None) or {}
    details = response.get("Error", {})
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return ObjectStoreError(
        operation=operation,
        message=details.get("Message") or str(error),
        code=details.get("Code"),
        status_code=status,
    )


class S3StorageClient:
    """
    S3-compatible object storage client.

    Uses boto3 with path-style addressing so the key doesn't need
    listBuckets permission to resolve the bucket. Control-plane calls run
    in a worker thread because boto3 is synchronous; presigning is a local
    computation and runs inline.
    """

    def __init__(self, config: StorageConfig) -> None:
        self._config = config

        # No SDK retries: a failed reconciliation is reported, not repeated
        boto_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )

        self._s3_client = boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized S3 storage client",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
            }
        )

    @property
    def bucket_name(self) -> str:
        return self._config.bucket_name

    async def presign(
        self,
        method: HttpMethod,
        key: str,
        expiry_seconds: int,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Generate a presigned URL for one GET or PUT.

        For PUT the content type is part of the signature, so the browser
        must send the same Content-Type header.
        """
        operation = _PRESIGN_OPERATIONS.get(method)
        if operation is None:
            raise ObjectStoreError("presign", f"Unsupported presign method: {method.value}")

        params = {"Bucket": self._config.bucket_name, "Key": key}
        if content_type and method is HttpMethod.PUT:
            params["ContentType"] = content_type

        try:
            return self._s3_client.generate_presigned_url(
                operation,
                Params=params,
                ExpiresIn=expiry_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to generate presigned URL",
                extra={"key": key, "method": method.value, "error": str(e)}
            )
            raise _translate_client_error("presign", e) from e

    async def get_bucket_cors(self) -> Optional[CorsPolicy]:
        """Fetch the bucket CORS rules. Returns None when none are set."""
        try:
            response = await asyncio.to_thread(
                self._s3_client.get_bucket_cors,
                Bucket=self._config.bucket_name,
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NO_CORS_CODES:
                return None
            raise _translate_client_error("get_bucket_cors", e) from e
        except BotoCoreError as e:
            raise _translate_client_error("get_bucket_cors", e) from e

        rules = response.get("CORSRules") or []
        if not rules:
            return None
        return CorsPolicy.from_wire(rules)

    async def put_bucket_cors(self, policy: CorsPolicy) -> None:
        """Replace the bucket CORS rules with `policy`."""
        try:
            await asyncio.to_thread(
                self._s3_client.put_bucket_cors,
                Bucket=self._config.bucket_name,
                CORSConfiguration={"CORSRules": policy.to_wire()},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to put bucket CORS",
                extra={"bucket": self._config.bucket_name, "error": str(e)}
            )
            raise _translate_client_error("put_bucket_cors", e) from e


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory object store for local development and tests.

    Presigned "URLs" are mock URIs that spell out the method and expiry.
    Failures can be injected per operation to exercise error handling.
    """

    def __init__(
        self,
        bucket_name: str = "mock-bucket",
        cors_policy: Optional[CorsPolicy] = None,
    ) -> None:
        self._bucket_name = bucket_name
        self.cors_policy = cors_policy
        self.failures: dict[str, ObjectStoreError] = {}
        self.presign_calls: list[tuple[HttpMethod, str]] = []
        self.put_cors_calls: list[CorsPolicy] = []
        self.get_cors_calls = 0
        # Set False to simulate a provider that hasn't propagated a write yet
        self.writes_visible = True
        logger.info("Initialized mock storage client (in-memory)")

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def fail(
        self,
        operation: str,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        method: Optional[HttpMethod] = None,
    ) -> None:
        """
        Make every later call to `operation` raise ObjectStoreError.

        For "presign", `method` limits the failure to signing that method.
        """
        name = f"{operation}:{method.value}" if method else operation
        self.failures[name] = ObjectStoreError(operation, message, code=code, status_code=status_code)

    def _maybe_fail(self, operation: str, method: Optional[HttpMethod] = None) -> None:
        if operation in self.failures:
            raise self.failures[operation]
        if method and f"{operation}:{method.value}" in self.failures:
            raise self.failures[f"{operation}:{method.value}"]

    async def presign(
        self,
        method: HttpMethod,
        key: str,
        expiry_seconds: int,
        content_type: Optional[str] = None,
    ) -> str:
        self._maybe_fail("presign", method)
        self.presign_calls.append((method, key))
        url = f"mock://storage/{self._bucket_name}/{key}?method={method.value}&expires={expiry_seconds}"
        if content_type and method is HttpMethod.PUT:
            url += f"&content-type={content_type}"
        return url

    async def get_bucket_cors(self) -> Optional[CorsPolicy]:
        self.get_cors_calls += 1
        self._maybe_fail("get_bucket_cors")
        return self.cors_policy

    async def put_bucket_cors(self, policy: CorsPolicy) -> None:
        self._maybe_fail("put_bucket_cors")
        self.put_cors_calls.append(policy)
        if self.writes_visible:
            self.cors_policy = policy

        logger.debug(
            "Stored CORS policy in mock storage",
            extra={"bucket": self._bucket_name, "rules": len(policy.rules)}
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> ObjectStoreClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        ObjectStoreClient implementation (S3 or Mock)
    """
    if mock_mode:
        bucket = config.bucket_name if config and config.bucket_name else "mock-bucket"
        return MockStorageClient(bucket_name=bucket)

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
