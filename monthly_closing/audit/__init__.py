"""Audit logging package."""

from monthly_closing.audit.logger import AuditLog, create_request_id

__all__ = ["AuditLog", "create_request_id"]
