from datetime import datetime
from pydantic import BaseModel


class AuditEventOut(BaseModel):
    id: str
    actor_user_id: str | None
    action: str
    entity_type: str
    entity_id: str
    metadata: dict | None
    created_at: datetime
