"""
Presigned URL issuance for audio recordings and their transcripts.

The browser uploads straight to the bucket with the PUT grant and keeps the
GET grant as a readable reference. Nothing is written to the store here;
signing is a local computation against the configured credentials.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import uuid4

from .client import ObjectStoreClient
from .errors import ObjectStoreError, SigningError
from .models import (
    AudioUploadGrant,
    HttpMethod,
    PresignedGrant,
    TranscriptUploadGrant,
    audio_key,
    extract_extension,
    transcript_key,
)

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_SECONDS = 3600
DEFAULT_AUDIO_CONTENT_TYPE = "audio/webm"
TRANSCRIPT_CONTENT_TYPE = "application/json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UrlIssuer:
    """
    Issues paired upload/download grants.

    Stateless apart from its configuration, so one instance can serve
    concurrent requests.
    """

    def __init__(
        self,
        client: ObjectStoreClient,
        expiry_seconds: int = DEFAULT_EXPIRY_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if expiry_seconds < 1:
            raise ValueError("expiry_seconds must be positive")
        self._client = client
        self._expiry_seconds = expiry_seconds
        self._clock = clock

    @property
    def expiry_seconds(self) -> int:
        return self._expiry_seconds

    async def issue_audio_upload_grant(
        self,
        filename: str,
        content_type: Optional[str] = None,
    ) -> AudioUploadGrant:
        """
        Grant a PUT and a GET for a new `audio/{uuid}.{ext}` object.

        The filename only contributes its extension. A fresh uuid4 is
        generated on every call and returned as the file id.
        """
        if not filename:
            raise ValueError("filename cannot be empty")

        file_id = str(uuid4())
        key = audio_key(file_id, extract_extension(filename))

        upload, download = await self._issue_pair(
            key, content_type or DEFAULT_AUDIO_CONTENT_TYPE
        )

        logger.info(
            "Issued audio upload grant",
            extra={"file_id": file_id, "key": key, "expires_at": upload.expires_at.isoformat()},
        )

        return AudioUploadGrant(upload=upload, download=download, key=key, file_id=file_id)

    async def issue_transcript_upload_grant(self, file_id: str) -> TranscriptUploadGrant:
        """
        Grant a PUT and a GET for `transcripts/{file_id}.json`.

        `file_id` should come from an earlier audio grant. Whether that audio
        object exists is not checked here.
        """
        if not file_id:
            raise ValueError("file_id cannot be empty")

        key = transcript_key(file_id)
        upload, download = await self._issue_pair(key, TRANSCRIPT_CONTENT_TYPE)

        logger.info(
            "Issued transcript upload grant",
            extra={"file_id": file_id, "key": key},
        )

        return TranscriptUploadGrant(upload=upload, download=download, key=key, file_id=file_id)

    async def _issue_pair(
        self,
        key: str,
        content_type: str,
    ) -> tuple[PresignedGrant, PresignedGrant]:
        # Both grants or neither
        upload = await self._sign(HttpMethod.PUT, key, content_type)
        download = await self._sign(HttpMethod.GET, key, None)
        return upload, download

    async def _sign(
        self,
        method: HttpMethod,
        key: str,
        content_type: Optional[str],
    ) -> PresignedGrant:
        try:
            url = await self._client.presign(
                method,
                key,
                self._expiry_seconds,
                content_type=content_type,
            )
        except ObjectStoreError as e:
            logger.error(
                "Failed to sign URL",
                extra={"key": key, "method": method.value, "error": str(e)},
            )
            raise SigningError(key, e) from e

        # expires_at must not be earlier than the URL's real expiry
        expires_at = self._clock() + timedelta(seconds=self._expiry_seconds)
        return PresignedGrant(url=url, method=method, key=key, expires_at=expires_at)
