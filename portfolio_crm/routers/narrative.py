"""Narrative intake: compile facts into a reviewable plan, then execute it."""

from typing import Callable

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.core.dependencies import get_session_factory
from portfolio_crm.errors import raise_app_error
from portfolio_crm.schemas.narrative import (
    NarrativeCompilation,
    NarrativeCompileRequest,
    NarrativeExecuteRequest,
    NarrativeExecutionReport,
)
from portfolio_crm.services.narrative_compiler import compile_semantic_facts
from portfolio_crm.services.narrative_executor import NarrativeExecutor

router = APIRouter(prefix="/narrative", tags=["Narrative"])


@router.post("/compile", response_model=NarrativeCompilation)
async def compile_narrative(payload: NarrativeCompileRequest):
    return compile_semantic_facts(payload.facts)


@router.post("/execute", response_model=NarrativeExecutionReport)
async def execute_narrative(
    payload: NarrativeExecuteRequest,
    session_factory: Callable[[], AsyncSession] = Depends(get_session_factory),
):
    if not payload.actions:
        raise_app_error(400, "empty_plan", "Narrative plan has no actions to execute.")
    return await NarrativeExecutor(session_factory).execute(payload.actions)
