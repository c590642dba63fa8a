"""
Whisperdrop - direct-to-bucket audio and transcript uploads.

This package contains the complete application:
- core: Framework-agnostic grant issuance and CORS reconciliation
- infrastructure: Object storage client (S3-compatible, plus mock)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
