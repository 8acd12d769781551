from typing import Any

from sqlalchemy.orm import Session

from appraisal.models.audit_event import AuditEvent


def log_event(
    *,
    db: Session,
    actor,
    action: str,
    entity_type: str,
    entity_id,
    metadata: dict[str, Any] | None = None,
):
    """Stage an audit row in the caller's transaction. `actor` is a Principal or None."""
    event = AuditEvent(
        actor_user_id=actor.user_id if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        event_metadata=metadata,
    )
    db.add(event)
