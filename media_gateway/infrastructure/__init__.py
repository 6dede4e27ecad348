"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Object storage (R2/S3)
- sessions: Session store lookups
- network: HTTP access for the offline cache shim

These wrappers translate between external formats and our domain models.
"""
