"""Audit logging for account events.

Records logins, logouts, Facebook links, merges and deletions as JSON lines
in the instance folder, so account changes made implicitly while resolving
the current user can be traced afterwards.
"""

import json
import logging
import os
from datetime import UTC, datetime
from typing import Any

from flask import current_app, has_request_context, request


class AuditLogger:
    """Centralized audit logging for account events."""

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize the audit logger with Flask app."""
        audit_log_path = os.path.join(app.instance_path, "audit.log")

        audit_logger = logging.getLogger("runaround.audit")
        audit_logger.setLevel(logging.INFO)

        handler = logging.FileHandler(audit_log_path)
        handler.setLevel(logging.INFO)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

        # One audit file per application instance
        for existing in list(audit_logger.handlers):
            audit_logger.removeHandler(existing)
            existing.close()
        audit_logger.addHandler(handler)

        app.audit_logger = audit_logger

    def log_event(
        self,
        action: str,
        username: str | None,
        details: dict[str, Any] | None = None,
        success: bool = True,
    ):
        """Log an account event.

        Args:
            action: The event (e.g. 'login', 'merge', 'delete')
            username: The account the event applies to
            details: Additional details about the event
            success: Whether the operation succeeded
        """
        try:
            audit_entry = {
                "timestamp": datetime.now(UTC).isoformat(),
                "ip_address": request.remote_addr if has_request_context() else None,
                "action": action,
                "username": username,
                "success": success,
                "details": details or {},
            }

            logger = getattr(current_app, "audit_logger", None)
            if isinstance(logger, logging.Logger):
                log_message = json.dumps(audit_entry, separators=(",", ":"))
                if success:
                    logger.info(log_message)
                else:
                    logger.error(log_message)

        except Exception as e:
            # Don't let audit logging break the request
            current_app.logger.warning(f"Audit logging failed: {e}")


audit_logger = AuditLogger()


def log_account_event(
    action: str,
    username: str | None,
    details: dict[str, Any] | None = None,
    success: bool = True,
):
    """Convenience function for logging account events."""
    audit_logger.log_event(action, username, details=details, success=success)


def get_audit_logs(limit: int = 100) -> list[dict]:
    """Return the most recent audit entries, newest first."""
    audit_log_path = os.path.join(current_app.instance_path, "audit.log")
    if not os.path.exists(audit_log_path):
        return []

    with open(audit_log_path) as f:
        lines = f.readlines()

    logs = []
    for line in lines[-limit:]:
        # Format: "timestamp - level - json_data"
        parts = line.strip().split(" - ", 2)
        if len(parts) < 3:
            continue
        try:
            logs.append(json.loads(parts[2]))
        except json.JSONDecodeError:
            continue

    return list(reversed(logs))
