"""Audit trail for sensitive list operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from flask import current_app

from . import constants
from .core.sanitization import sanitize_metadata
from .utils import utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def log_audit_action(
    db: Client,
    user_id: Optional[str],
    action: str,
    target_id: Optional[str],
    target_type: str,
    status: str = constants.AUDIT_ALLOWED,
    metadata: Optional[dict[str, Any]] = None,
) -> None:
    """Record an audit entry. Failures are logged and never raised."""
    try:
        db.collection(constants.AUDIT_LOGS).add(
            {
                "user_id": user_id,
                "action": action,
                "target_id": target_id,
                "target_type": target_type,
                "status": status,
                "metadata": sanitize_metadata(metadata or {}),
                "created_at": utcnow(),
            }
        )
    except Exception as e:
        current_app.logger.error(f"Error writing audit log for {action}: {e}")
