"""
Schemas for research job processing.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from portfolio_crm.schemas.base import RecordRead


class ProcessResearchJobsRequest(BaseModel):
    max_jobs: int = Field(1, ge=1, le=50)
    organization_id: Optional[UUID] = None


class ResearchBatchResult(BaseModel):
    queued_checked: int = 0
    completed: int = 0
    failed: int = 0


class ResearchJobRead(RecordRead):
    organization_type: str
    organization_id: UUID
    status: str
    search_name: str
    selected_city: Optional[str] = None
    selected_state: Optional[str] = None
    selected_country: Optional[str] = None
    selected_website: Optional[str] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
