"""
Infrastructure layer - external service integrations.

- storage: S3-compatible object storage (Backblaze B2)

These wrappers translate between provider formats and our domain models.
"""
