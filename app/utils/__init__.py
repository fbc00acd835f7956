"""Utility helpers for the Media CMS backend.

Submodules:
- aws: S3 client wrapper, object-key helpers and shared boto3 kwargs
"""

__all__: list[str] = []
