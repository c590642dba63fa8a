"""
Domain models for presigned grants and bucket CORS policies.

These models have no dependency on boto3 or FastAPI. The infrastructure
layer converts them to and from the S3 wire format; the API layer converts
them to JSON responses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional


AUDIO_PREFIX = "audio"
TRANSCRIPT_PREFIX = "transcripts"


class HttpMethod(str, Enum):
    """HTTP methods that appear in grants and CORS rules."""
    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"
    HEAD = "HEAD"


REQUIRED_METHODS = frozenset({
    HttpMethod.GET,
    HttpMethod.PUT,
    HttpMethod.POST,
    HttpMethod.DELETE,
    HttpMethod.HEAD,
})


# ---------------------------------------------------------------------------
# Object keys
# ---------------------------------------------------------------------------

def extract_extension(filename: str) -> str:
    """
    Return the extension of the last path component, or "".

    Only alphanumeric extensions are kept so a crafted filename can't
    inject extra path segments into the object key.
    """
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    ext = name.rsplit(".", 1)[-1]
    return ext if ext.isalnum() and ext.isascii() else ""


def audio_key(file_id: str, extension: str) -> str:
    """Build `audio/{file_id}.{ext}`, or `audio/{file_id}` without an extension."""
    if extension:
        return f"{AUDIO_PREFIX}/{file_id}.{extension}"
    return f"{AUDIO_PREFIX}/{file_id}"


def transcript_key(file_id: str) -> str:
    """Transcripts share the uuid of their source audio."""
    return f"{TRANSCRIPT_PREFIX}/{file_id}.json"


# ---------------------------------------------------------------------------
# Grants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PresignedGrant:
    """
    A signed URL allowing exactly one operation on one object.

    Never persisted. The store rejects it after `expires_at`.
    """
    url: str
    method: HttpMethod
    key: str
    expires_at: datetime


@dataclass(frozen=True)
class AudioUploadGrant:
    """Paired PUT/GET grants for a freshly identified audio object."""
    upload: PresignedGrant
    download: PresignedGrant
    key: str
    file_id: str

    @property
    def upload_url(self) -> str:
        return self.upload.url

    @property
    def download_url(self) -> str:
        return self.download.url


@dataclass(frozen=True)
class TranscriptUploadGrant:
    """Paired PUT/GET grants for the transcript of an existing recording."""
    upload: PresignedGrant
    download: PresignedGrant
    key: str
    file_id: str

    @property
    def upload_url(self) -> str:
        return self.upload.url

    @property
    def download_url(self) -> str:
        return self.download.url


# ---------------------------------------------------------------------------
# CORS policy
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CorsRule:
    """
    One bucket CORS rule.

    Sets are stored as tuples so rules stay hashable and keep the order the
    provider returned them in.
    """
    allowed_origins: tuple[str, ...]
    allowed_methods: tuple[str, ...]
    allowed_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    max_age_seconds: Optional[int] = None

    def allows_origin(self, origin: str) -> bool:
        return "*" in self.allowed_origins or origin in self.allowed_origins

    def allows_method(self, method: HttpMethod) -> bool:
        return method.value in {m.upper() for m in self.allowed_methods}

    @classmethod
    def from_wire(cls, raw: dict) -> "CorsRule":
        """Build from the S3 `CORSRules` element shape."""
        return cls(
            allowed_origins=tuple(raw.get("AllowedOrigins", ())),
            allowed_methods=tuple(raw.get("AllowedMethods", ())),
            allowed_headers=tuple(raw.get("AllowedHeaders", ())),
            expose_headers=tuple(raw.get("ExposeHeaders", ())),
            max_age_seconds=raw.get("MaxAgeSeconds"),
        )

    def to_wire(self) -> dict:
        wire: dict = {
            "AllowedOrigins": list(self.allowed_origins),
            "AllowedMethods": list(self.allowed_methods),
        }
        if self.allowed_headers:
            wire["AllowedHeaders"] = list(self.allowed_headers)
        if self.expose_headers:
            wire["ExposeHeaders"] = list(self.expose_headers)
        if self.max_age_seconds is not None:
            wire["MaxAgeSeconds"] = self.max_age_seconds
        return wire

    def matches(self, other: "CorsRule") -> bool:
        """Equality that ignores ordering and method/header case."""
        return (
            set(self.allowed_origins) == set(other.allowed_origins)
            and {m.upper() for m in self.allowed_methods} == {m.upper() for m in other.allowed_methods}
            and {h.lower() for h in self.allowed_headers} == {h.lower() for h in other.allowed_headers}
            and {h.lower() for h in self.expose_headers} == {h.lower() for h in other.expose_headers}
            and self.max_age_seconds == other.max_age_seconds
        )


@dataclass(frozen=True)
class CorsPolicy:
    """An ordered list of CORS rules as stored on the bucket."""
    rules: tuple[CorsRule, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.rules

    def effective_methods(self, origin: str = "*") -> frozenset[HttpMethod]:
        """Union of allowed methods across rules that apply to `origin`."""
        methods: set[HttpMethod] = set()
        for rule in self.rules:
            if not rule.allows_origin(origin):
                continue
            for method in HttpMethod:
                if rule.allows_method(method):
                    methods.add(method)
        return frozenset(methods)

    def satisfies_required_methods(self, origin: str = "*") -> bool:
        return REQUIRED_METHODS <= self.effective_methods(origin)

    def any_rule_allows(self, method: HttpMethod) -> bool:
        return any(rule.allows_method(method) for rule in self.rules)

    def matches(self, other: "CorsPolicy") -> bool:
        if len(self.rules) != len(other.rules):
            return False
        return all(a.matches(b) for a, b in zip(self.rules, other.rules))

    @classmethod
    def from_wire(cls, raw_rules: Iterable[dict]) -> "CorsPolicy":
        return cls(rules=tuple(CorsRule.from_wire(r) for r in raw_rules))

    def to_wire(self) -> list[dict]:
        return [rule.to_wire() for rule in self.rules]


DESIRED_CORS_POLICY = CorsPolicy(rules=(
    CorsRule(
        allowed_origins=("*",),
        allowed_methods=("GET", "PUT", "POST", "DELETE", "HEAD"),
        allowed_headers=("*",),
        expose_headers=("ETag", "x-amz-request-id", "x-amz-id-2"),
        max_age_seconds=3600,
    ),
))
