"""
Presigned URL issuance and bucket CORS reconciliation.
"""

from .client import ObjectStoreClient
from .cors import (
    CorsReconciler,
    FailurePolicy,
    LoggingReporter,
    ReconcileOutcome,
    ReconcileReporter,
    ReconciliationResult,
)
from .errors import (
    BucketNotFoundError,
    CorsReconciliationError,
    ObjectStoreError,
    PermissionDeniedError,
    PolicyFetchError,
    ProviderModeConflictError,
    SigningError,
    UnclassifiedProviderError,
    classify_provider_error,
)
from .issuer import UrlIssuer
from .models import (
    DESIRED_CORS_POLICY,
    REQUIRED_METHODS,
    AudioUploadGrant,
    CorsPolicy,
    CorsRule,
    HttpMethod,
    PresignedGrant,
    TranscriptUploadGrant,
)

__all__ = [
    "ObjectStoreClient",
    "CorsReconciler",
    "FailurePolicy",
    "LoggingReporter",
    "ReconcileOutcome",
    "ReconcileReporter",
    "ReconciliationResult",
    "BucketNotFoundError",
    "CorsReconciliationError",
    "ObjectStoreError",
    "PermissionDeniedError",
    "PolicyFetchError",
    "ProviderModeConflictError",
    "SigningError",
    "UnclassifiedProviderError",
    "classify_provider_error",
    "UrlIssuer",
    "DESIRED_CORS_POLICY",
    "REQUIRED_METHODS",
    "AudioUploadGrant",
    "CorsPolicy",
    "CorsRule",
    "HttpMethod",
    "PresignedGrant",
    "TranscriptUploadGrant",
]
