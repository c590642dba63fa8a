"""
Process bootstrap helpers shared by the API server and the operator command.

Both entry points build the same storage client from Settings and run the
same CorsReconciler; they differ only in how loudly they report and in
what an unrecoverable failure does to the process.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config.settings import Settings
from .core.storage.client import ObjectStoreClient
from .core.storage.cors import (
    CorsReconciler,
    FailurePolicy,
    LoggingReporter,
    ReconciliationResult,
)
from .core.storage.errors import CorsReconciliationError
from .infrastructure.storage.client import create_storage_client

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(format=LOG_FORMAT, level=level.upper())


def build_storage_client(settings: Settings) -> ObjectStoreClient:
    """Create the process-wide storage client. Settings must already be valid."""
    return create_storage_client(
        config=settings.storage_config(),
        mock_mode=settings.storage_mock_mode,
    )


@dataclass(frozen=True)
class CorsStatus:
    """What happened to the bucket CORS policy at startup."""
    state: str  # "ok", "failed" or "skipped"
    detail: str = ""
    error_kind: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.state != "failed"


async def reconcile_on_startup(client: ObjectStoreClient) -> CorsStatus:
    """
    Run reconciliation quietly before the server accepts traffic.

    Failures are logged as warnings and never stop startup: broken CORS
    only breaks browser uploads, and issuing grants still works.
    """
    logger.info("Checking bucket CORS configuration", extra={"bucket": client.bucket_name})

    reconciler = CorsReconciler(client)
    try:
        result = await reconciler.reconcile(
            reporter=LoggingReporter(verbose=False),
            failure_policy=FailurePolicy.RAISE,
        )
    except CorsReconciliationError as e:
        logger.warning(
            "Could not verify/setup CORS automatically: %s\n%s",
            e,
            e.remediation,
            extra={"bucket": e.bucket, "kind": e.kind},
        )
        return CorsStatus(state="failed", detail=str(e), error_kind=e.kind)

    logger.info(
        "Bucket CORS is configured",
        extra={"bucket": result.bucket, "outcome": result.outcome.value},
    )
    return CorsStatus(state="ok", detail=result.outcome.value)


async def run_cors_setup(settings: Settings, force: bool = False) -> ReconciliationResult:
    """
    Reconcile bucket CORS for an operator.

    Reports every step and exits the process with status 1 on an
    unrecoverable failure, since there's nothing sensible to continue with.
    """
    client = build_storage_client(settings)
    reconciler = CorsReconciler(client)
    return await reconciler.reconcile(
        reporter=LoggingReporter(verbose=True),
        failure_policy=FailurePolicy.EXIT,
        force=force,
    )
