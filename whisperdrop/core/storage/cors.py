"""
Bucket CORS reconciliation.

Browsers can only PUT to presigned URLs if the bucket's CORS policy allows
it. The reconciler reads the current policy, decides whether it's good
enough, and if not overwrites it with DESIRED_CORS_POLICY:

    fetch -> classify -> apply -> verify

It is fail-open on reads (can't read the policy, try writing anyway) and
fail-closed on writes (any write failure is unrecoverable). Nothing is
retried.

The same state machine serves both callers. Server startup passes a quiet
reporter and FailurePolicy.RAISE so it can log and keep serving; the
operator command passes a verbose reporter and FailurePolicy.EXIT.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from .client import ObjectStoreClient
from .errors import (
    CorsReconciliationError,
    ObjectStoreError,
    PolicyFetchError,
    classify_provider_error,
)
from .models import DESIRED_CORS_POLICY, CorsPolicy, HttpMethod

logger = logging.getLogger(__name__)


class ReconcileOutcome(Enum):
    ALREADY_CONFIGURED = "already_configured"
    APPLIED = "applied"


class FailurePolicy(Enum):
    """What to do once an unrecoverable failure has been reported."""
    RAISE = "raise"  # re-raise the typed error to the caller
    EXIT = "exit"    # abort the process with a non-zero status


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of one successful reconciliation pass."""
    bucket: str
    outcome: ReconcileOutcome
    wrote: bool
    verified: Optional[bool] = None
    previous_policy: Optional[CorsPolicy] = None
    applied_policy: Optional[CorsPolicy] = None
    fetch_error: Optional[PolicyFetchError] = None


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

class ReconcileReporter(Protocol):
    """Sink for reconciliation progress and diagnostics."""

    def progress(self, message: str, policy: Optional[CorsPolicy] = None) -> None:
        ...

    def warning(self, message: str) -> None:
        ...

    def failure(self, error: CorsReconciliationError) -> None:
        ...


def format_policy(policy: CorsPolicy) -> str:
    return json.dumps(policy.to_wire(), indent=2)


class LoggingReporter:
    """
    Reports through the standard logging module.

    Quiet mode logs progress and failures at DEBUG so startup output stays
    clean; the caller owns the single warning for a failed reconcile.
    Warnings are always logged.
    """

    def __init__(self, verbose: bool = False, log: Optional[logging.Logger] = None) -> None:
        self._verbose = verbose
        self._log = log or logger

    def progress(self, message: str, policy: Optional[CorsPolicy] = None) -> None:
        level = logging.INFO if self._verbose else logging.DEBUG
        if policy is not None and self._verbose:
            message = f"{message}\n{format_policy(policy)}"
        self._log.log(level, message)

    def warning(self, message: str) -> None:
        self._log.warning(message)

    def failure(self, error: CorsReconciliationError) -> None:
        level = logging.ERROR if self._verbose else logging.DEBUG
        self._log.log(
            level,
            "%s\n%s",
            error,
            error.remediation,
            extra={"bucket": error.bucket, "kind": error.kind},
        )


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------

class CorsReconciler:
    """Converges a bucket's CORS policy to DESIRED_CORS_POLICY."""

    def __init__(
        self,
        client: ObjectStoreClient,
        desired_policy: CorsPolicy = DESIRED_CORS_POLICY,
    ) -> None:
        self._client = client
        self._desired = desired_policy

    @property
    def bucket(self) -> str:
        return self._client.bucket_name

    async def reconcile(
        self,
        reporter: Optional[ReconcileReporter] = None,
        failure_policy: FailurePolicy = FailurePolicy.RAISE,
        force: bool = False,
    ) -> ReconciliationResult:
        """
        Run one reconciliation pass.

        With force=True the current policy isn't inspected; the desired
        policy is written unconditionally.

        Raises a CorsReconciliationError subclass (FailurePolicy.RAISE) or
        SystemExit(1) (FailurePolicy.EXIT) when the write fails.
        """
        reporter = reporter or LoggingReporter()
        bucket = self.bucket

        previous: Optional[CorsPolicy] = None
        fetch_error: Optional[PolicyFetchError] = None

        if force:
            reporter.progress(f"Force-setting S3 Compatible API CORS for bucket: {bucket}")
        else:
            reporter.progress(f"Setting up CORS for bucket: {bucket}")
            try:
                previous = await self._client.get_bucket_cors()
            except ObjectStoreError as e:
                fetch_error = PolicyFetchError(bucket, e)
                logger.debug(
                    "CORS fetch failed, applying anyway",
                    extra={"bucket": bucket, "error": str(e)},
                )

            if fetch_error is not None:
                if not fetch_error.access_denied:
                    reporter.progress(f"Could not read CORS rules ({fetch_error.cause.message}), setting them up...")
            elif previous is None or previous.is_empty:
                reporter.progress("No CORS rules found, setting them up...")
            elif previous.any_rule_allows(HttpMethod.PUT):
                reporter.progress("CORS already configured correctly!", previous)
                return ReconciliationResult(
                    bucket=bucket,
                    outcome=ReconcileOutcome.ALREADY_CONFIGURED,
                    wrote=False,
                    previous_policy=previous,
                )
            else:
                reporter.progress("CORS found but missing PUT method, updating...", previous)

        try:
            await self._client.put_bucket_cors(self._desired)
        except ObjectStoreError as e:
            error = classify_provider_error(e, bucket)
            reporter.failure(error)
            if failure_policy is FailurePolicy.EXIT:
                raise SystemExit(1) from error
            raise error from e

        reporter.progress("CORS rules applied successfully!")
        verified = await self._verify(reporter)

        logger.info(
            "Applied CORS policy",
            extra={"bucket": bucket, "verified": verified, "forced": force},
        )

        return ReconciliationResult(
            bucket=bucket,
            outcome=ReconcileOutcome.APPLIED,
            wrote=True,
            verified=verified,
            previous_policy=previous,
            applied_policy=self._desired,
            fetch_error=fetch_error,
        )

    async def _verify(self, reporter: ReconcileReporter) -> bool:
        # The provider may be eventually consistent, so a mismatch is only a warning.
        try:
            current = await self._client.get_bucket_cors()
        except ObjectStoreError as e:
            reporter.warning(f"Could not verify CORS rules on bucket {self.bucket}: {e.message}")
            return False

        if current is None or not current.matches(self._desired):
            reporter.warning(
                f"CORS rules on bucket {self.bucket} don't match what was applied yet; "
                "the provider may still be propagating the change"
            )
            return False

        reporter.progress("Applied CORS Configuration:", current)
        return True
