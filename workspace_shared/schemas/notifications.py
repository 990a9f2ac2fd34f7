from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from .common import NotificationType
from .organizations import CamelModel


class NotificationUpdateRequest(CamelModel):
    """Mark one notification read, or all of them."""
    notification_id: Optional[uuid.UUID] = None
    mark_all_as_read: bool = False


class NotificationRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    read: bool
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias="meta",
        serialization_alias="metadata",
    )
    created_at: datetime
    updated_at: datetime
