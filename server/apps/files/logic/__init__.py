"""Business logic layer for files app.

This package contains all business logic for file operations:
- Upload, read, replace and delete of single files
- Owner-scoped listing with pagination and sorting
- Keeping storage blobs and database records in step

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
