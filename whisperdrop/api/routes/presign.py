"""
Presigned URL endpoints.

The browser asks for a grant, PUTs the file straight to the bucket, and
keeps the GET URL ("publicUrl") to read it back. Audio grants mint a new
file id; transcript grants reuse the audio's file id so the two objects
pair up without an index.
"""

import logging
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ..dependencies import UrlIssuerDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class PresignAudioRequest(BaseModel):
    filename: str = Field(..., min_length=1, examples=["recording.webm"])
    contentType: Optional[str] = Field(
        default=None,
        description="Content-Type the browser will upload with. Defaults to audio/webm."
    )


class PresignAudioResponse(BaseModel):
    uploadUrl: str = Field(description="Presigned PUT URL")
    publicUrl: str = Field(description="Presigned GET URL for the same object")
    key: str = Field(description="Object key, audio/{fileId}.{ext}")
    fileId: str = Field(description="Recording identifier, reused for the transcript")


class PresignTranscriptRequest(BaseModel):
    fileId: str = Field(..., min_length=1, description="fileId from a prior audio grant")


class PresignTranscriptResponse(BaseModel):
    uploadUrl: str = Field(description="Presigned PUT URL")
    publicUrl: str = Field(description="Presigned GET URL for the same object")
    key: str = Field(description="Object key, transcripts/{fileId}.json")


class ErrorResponse(BaseModel):
    error: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/presign-audio",
    response_model=PresignAudioResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Get upload/download URLs for a new recording",
)
async def presign_audio(
    body: PresignAudioRequest,
    issuer: UrlIssuerDep,
) -> PresignAudioResponse:
    grant = await issuer.issue_audio_upload_grant(body.filename, body.contentType)

    return PresignAudioResponse(
        uploadUrl=grant.upload_url,
        publicUrl=grant.download_url,
        key=grant.key,
        fileId=grant.file_id,
    )


@router.post(
    "/presign-transcript",
    response_model=PresignTranscriptResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Get upload/download URLs for a recording's transcript",
)
async def presign_transcript(
    body: PresignTranscriptRequest,
    issuer: UrlIssuerDep,
) -> PresignTranscriptResponse:
    grant = await issuer.issue_transcript_upload_grant(body.fileId)

    return PresignTranscriptResponse(
        uploadUrl=grant.upload_url,
        publicUrl=grant.download_url,
        key=grant.key,
    )
