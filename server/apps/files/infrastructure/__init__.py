"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Storage providers for object stores (S3/MinIO/R2, local filesystem)
- Upload validation rules and storage key naming

Keep infrastructure concerns separate from business logic.
"""
