from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from .organizations import CamelModel


class OutlineSectionType(str, Enum):
    TABLE_OF_CONTENTS = "Table of Contents"
    EXECUTIVE_SUMMARY = "Executive Summary"
    TECHNICAL_APPROACH = "Technical Approach"
    DESIGN = "Design"
    CAPABILITIES = "Capabilities"
    FOCUS_DOCUMENT = "Focus Document"
    NARRATIVE = "Narrative"


class OutlineStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In-Progress"
    COMPLETED = "Completed"


class OutlineReviewer(str, Enum):
    ASSIM = "Assim"
    BINI = "Bini"
    MAMI = "Mami"


class OutlineCreate(CamelModel):
    org_id: uuid.UUID
    header: str = Field(min_length=1, max_length=500)
    section_type: OutlineSectionType
    status: OutlineStatus = OutlineStatus.PENDING
    target: int = Field(default=0, ge=0)
    limit: int = Field(default=0, ge=0)
    reviewer: OutlineReviewer = OutlineReviewer.ASSIM

    @field_validator("header")
    @classmethod
    def strip_header(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Header is required")
        return value


class OutlineUpdate(CamelModel):
    org_id: uuid.UUID
    header: Optional[str] = Field(default=None, min_length=1, max_length=500)
    section_type: Optional[OutlineSectionType] = None
    status: Optional[OutlineStatus] = None
    target: Optional[int] = Field(default=None, ge=0)
    limit: Optional[int] = Field(default=None, ge=0)
    reviewer: Optional[OutlineReviewer] = None

    @field_validator("header")
    @classmethod
    def strip_header(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Header is required")
        return value

    def changes(self) -> dict:
        """Only the fields the client actually sent, minus the org scope."""
        return self.model_dump(mode="json", exclude_unset=True, exclude={"org_id"})


class OutlineRead(CamelModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    header: str
    section_type: OutlineSectionType
    status: OutlineStatus
    target: int
    limit: int
    reviewer: OutlineReviewer
    created_at: datetime
    updated_at: datetime
