"""
Core logic for grant issuance and bucket policy reconciliation.

This module is framework-agnostic - it doesn't import FastAPI or boto3.
The object store is reached only through the ObjectStoreClient protocol,
so everything here can be tested against the in-memory mock client.
"""
