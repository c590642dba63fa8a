"""
Error taxonomy for grant issuance and CORS reconciliation.

Client implementations raise ObjectStoreError for every provider failure.
The reconciler turns those into one of the typed CorsReconciliationError
subclasses through classify_provider_error(), which is the only place that
looks at provider error codes and message text.
"""

import re
from typing import Optional


class ObjectStoreError(Exception):
    """Raw failure reported by the object store (or the SDK talking to it)."""

    def __init__(
        self,
        operation: str,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.message = message
        self.code = code
        self.status_code = status_code

    def __str__(self) -> str:
        if self.code:
            return f"{self.operation} failed ({self.code}): {self.message}"
        return f"{self.operation} failed: {self.message}"


class SigningError(Exception):
    """Raised when a presigned URL can't be produced."""

    def __init__(self, key: str, cause: Exception) -> None:
        super().__init__(f"Could not sign URL for {key}: {cause}")
        self.key = key
        self.cause = cause


class PolicyFetchError(Exception):
    """
    The current CORS policy couldn't be read.

    Soft: the reconciler records it and attempts the write anyway, since a
    key may be allowed to write bucket settings without reading them.
    """

    def __init__(self, bucket: str, cause: ObjectStoreError) -> None:
        super().__init__(f"Could not read CORS policy for bucket {bucket}: {cause.message}")
        self.bucket = bucket
        self.cause = cause

    @property
    def access_denied(self) -> bool:
        return _is_access_denied(self.cause)


# ---------------------------------------------------------------------------
# Unrecoverable reconciliation failures
# ---------------------------------------------------------------------------

class CorsReconciliationError(Exception):
    """Base for failures that a retry would not fix."""

    kind = "unclassified"

    def __init__(self, bucket: str, cause: ObjectStoreError) -> None:
        super().__init__(f"{self.summary(bucket)}: {cause.message}")
        self.bucket = bucket
        self.cause = cause

    def summary(self, bucket: str) -> str:
        return f"Could not configure CORS for bucket {bucket}"

    @property
    def remediation(self) -> str:
        return f"Full error: {self.cause!s}"


class ProviderModeConflictError(CorsReconciliationError):
    """The bucket uses provider-native CORS rules the S3 API can't replace."""

    kind = "provider_mode_conflict"

    def summary(self, bucket: str) -> str:
        return f"Bucket {bucket} has B2 Native CORS rules, not S3 Compatible API rules"

    @property
    def remediation(self) -> str:
        return (
            "CORS must be updated manually in the B2 web console:\n"
            "1. Go to: https://secure.backblaze.com/b2_buckets.htm\n"
            f"2. Click bucket {self.bucket} -> Bucket Settings -> CORS Rules\n"
            "3. Delete the existing B2 Native rule\n"
            "4. Add a new rule for \"S3 Compatible API\":\n"
            "   - Allowed Origins: *\n"
            "   - Allowed Operations: s3_get, s3_head, s3_put\n"
            "   - Allowed Headers: *\n"
            "   - Max Age: 3600\n"
            "5. Save and run the setup again"
        )


class PermissionDeniedError(CorsReconciliationError):
    """The application key can't write bucket settings."""

    kind = "permission_denied"

    def summary(self, bucket: str) -> str:
        return f"Application key is not allowed to change CORS on bucket {bucket}"

    @property
    def remediation(self) -> str:
        return (
            "The application key needs these capabilities:\n"
            "  - readFiles\n"
            "  - writeFiles\n"
            "  - writeBuckets (required for CORS setup)\n"
            "Create a new key at https://secure.backblaze.com/app_keys.htm "
            "and update B2_KEY_ID and B2_APP_KEY."
        )


class BucketNotFoundError(CorsReconciliationError):
    """The configured bucket doesn't exist for these credentials."""

    kind = "bucket_not_found"

    def summary(self, bucket: str) -> str:
        return f"Bucket {bucket} not found"

    @property
    def remediation(self) -> str:
        return "Check that B2_BUCKET matches your bucket name and B2_ENDPOINT its region."


class UnclassifiedProviderError(CorsReconciliationError):
    """Any provider failure we don't recognise. Treated as unrecoverable."""

    kind = "unclassified"


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

_NATIVE_CORS_PATTERN = re.compile(r"native\s+cors", re.IGNORECASE)
_ACCESS_DENIED_CODES = {"AccessDenied", "Forbidden", "AllAccessDisabled", "403"}
_BUCKET_MISSING_CODES = {"NoSuchBucket"}


def _is_access_denied(error: ObjectStoreError) -> bool:
    if error.code in _ACCESS_DENIED_CODES or error.status_code == 403:
        return True
    return "access denied" in error.message.lower()


def classify_provider_error(error: ObjectStoreError, bucket: str) -> CorsReconciliationError:
    """
    Map a raw object-store failure onto the reconciliation taxonomy.

    Order matters: B2 reports the native-rules conflict as a generic
    InvalidRequest, so the message check runs before the code checks.
    """
    if _NATIVE_CORS_PATTERN.search(error.message):
        return ProviderModeConflictError(bucket, error)
    if _is_access_denied(error):
        return PermissionDeniedError(bucket, error)
    if error.code in _BUCKET_MISSING_CODES:
        return BucketNotFoundError(bucket, error)
    return UnclassifiedProviderError(bucket, error)
