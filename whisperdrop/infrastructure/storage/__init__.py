"""
Object storage integration for audio files and transcripts.

Supports Backblaze B2 (and other S3-compatible stores) via boto3.
Includes mock mode for local development without credentials.
"""

from .client import MockStorageClient, S3StorageClient, StorageConfig, create_storage_client

__all__ = ["MockStorageClient", "S3StorageClient", "StorageConfig", "create_storage_client"]
