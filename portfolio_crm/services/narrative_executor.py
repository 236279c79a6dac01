"""
Narrative plan executor.

Runs compiled (and possibly user-edited) actions against the database:

- Actions run in dependency order: an action that consumes a CREATE action's
  synthetic id runs after it. Ties keep emission order.
- Each action gets its own transaction, so one failure never rolls back the
  others.
- When a CREATE succeeds its real id replaces the synthetic id for every
  dependant. Dependants of excluded or failed actions are reported FAILED
  without touching the database.
- Results are reported in emission order.
"""

import logging
from collections import deque
from typing import Callable, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.db.session import async_session_maker
from portfolio_crm.errors import EngineError, NotFoundError, ValidationError
from portfolio_crm.models.company import CompanyCoInvestorLink
from portfolio_crm.models.enums import LinkSource, OrganizationKind
from portfolio_crm.schemas.contact import RoleContactCandidate
from portfolio_crm.schemas.narrative import (
    AddContactAction,
    CreateEntityAction,
    CreatedEntityReference,
    ExecutedRecord,
    LinkCompanyCoInvestorAction,
    NarrativeAction,
    NarrativeExecutionReport,
    NarrativeExecutionResult,
    UpdateEntityAction,
)
from portfolio_crm.schemas.organization import EntityMatch
from portfolio_crm.services.contact_link_service import ContactLinkService
from portfolio_crm.services.organization_registry import get_adapter
from portfolio_crm.services.organization_service import OrganizationService
from portfolio_crm.utils.text_normalization import trim_or_none

logger = logging.getLogger(__name__)

NOT_SELECTED_MESSAGE = "Action was not selected for execution."

# Name matches at or above this confidence are exact (case/punctuation-insensitive).
EXACT_MATCH_CONFIDENCE = 0.98


def get_dependency_action_ids(action: NarrativeAction) -> List[str]:
    """Synthetic ids this action consumes; an explicitly selected record removes the dependency."""
    if isinstance(action, (UpdateEntityAction, AddContactAction)):
        selected = action.selected_target_id if isinstance(action, UpdateEntityAction) else action.selected_parent_id
        if selected or not action.linked_create_action_id:
            return []
        return [action.linked_create_action_id]

    if isinstance(action, LinkCompanyCoInvestorAction):
        dependency_ids = []
        if not action.selected_company_id and action.company_create_action_id:
            dependency_ids.append(action.company_create_action_id)
        if not action.selected_co_investor_id and action.co_investor_create_action_id:
            dependency_ids.append(action.co_investor_create_action_id)
        return dependency_ids

    return []


def order_actions_for_execution(actions: Sequence[NarrativeAction]) -> List[NarrativeAction]:
    """
    Topologically order the included actions (Kahn's algorithm).

    The ready set is always drained lowest emission index first. Anything left
    over (a cycle, or an edited plan with dangling ids) is appended in emission
    order rather than dropped.
    """
    included = [action for action in actions if action.include]
    by_id = {action.id: action for action in included}
    index_by_id = {action.id: position for position, action in enumerate(actions)}

    in_degree: Dict[str, int] = {}
    dependants: Dict[str, List[str]] = {}
    for action in included:
        dependencies = [dep for dep in get_dependency_action_ids(action) if dep in by_id]
        in_degree[action.id] = len(dependencies)
        for dependency_id in dependencies:
            dependants.setdefault(dependency_id, []).append(action.id)

    ready = deque(sorted((a.id for a in included if in_degree[a.id] == 0), key=index_by_id.__getitem__))
    ordered: List[str] = []
    while ready:
        next_id = ready.popleft()
        ordered.append(next_id)
        for dependant_id in dependants.get(next_id, []):
            in_degree[dependant_id] -= 1
            if in_degree[dependant_id] == 0:
                ready.append(dependant_id)
        ready = deque(sorted(ready, key=index_by_id.__getitem__))

    if len(ordered) < len(included):
        placed = set(ordered)
        ordered.extend(action.id for action in included if action.id not in placed)

    return [by_id[action_id] for action_id in ordered]


def blocked_dependency_message(action: NarrativeAction, dependency_id: str) -> str:
    if isinstance(action, UpdateEntityAction):
        return f"Cannot update {action.target_name} because dependency {dependency_id} did not execute successfully."
    if isinstance(action, AddContactAction):
        return (
            f"Cannot link contact {action.contact.name} because dependency {dependency_id} "
            "did not execute successfully."
        )
    if isinstance(action, LinkCompanyCoInvestorAction):
        return (
            f"Cannot link {action.company_name} and {action.co_investor_name} because dependency "
            f"{dependency_id} did not execute successfully."
        )
    return f"Dependency {dependency_id} did not execute successfully."


def _first_exact_match(matches: Sequence[EntityMatch]) -> Optional[UUID]:
    for match in matches:
        if match.confidence >= EXACT_MATCH_CONFIDENCE:
            return match.id
    return None


class NarrativeExecutor:
    def __init__(self, session_factory: Callable[[], AsyncSession] = async_session_maker):
        self.session_factory = session_factory
        self.created_by_action_id: Dict[str, CreatedEntityReference] = {}
        self._pending_reference: Optional[CreatedEntityReference] = None

    async def execute(self, actions: Sequence[NarrativeAction]) -> NarrativeExecutionReport:
        action_by_id = {action.id: action for action in actions}
        results: Dict[str, NarrativeExecutionResult] = {}
        self.created_by_action_id = {}

        for action in actions:
            if not action.include:
                results[action.id] = NarrativeExecutionResult(
                    action_id=action.id, kind=action.kind, status="SKIPPED", message=NOT_SELECTED_MESSAGE
                )

        for action in order_actions_for_execution(actions):
            blocked_by = self._blocking_dependency(action, action_by_id, results)
            if blocked_by:
                results[action.id] = NarrativeExecutionResult(
                    action_id=action.id,
                    kind=action.kind,
                    status="FAILED",
                    message=blocked_dependency_message(action, blocked_by),
                )
                continue
            results[action.id] = await self._run(action)

        ordered_results = [
            results.get(action.id)
            or NarrativeExecutionResult(
                action_id=action.id, kind=action.kind, status="SKIPPED", message=NOT_SELECTED_MESSAGE
            )
            for action in actions
        ]
        executed = sum(1 for result in ordered_results if result.status == "EXECUTED")
        failed = sum(1 for result in ordered_results if result.status == "FAILED")
        skipped = sum(1 for result in ordered_results if result.status == "SKIPPED")

        logger.info("narrative_plan_executed executed=%s failed=%s skipped=%s", executed, failed, skipped)
        return NarrativeExecutionReport(
            summary=f"Executed {executed}, failed {failed}, skipped {skipped}.",
            executed=executed,
            failed=failed,
            skipped=skipped,
            results=ordered_results,
            created_entities=list(self.created_by_action_id.values()),
        )

    def _blocking_dependency(
        self,
        action: NarrativeAction,
        action_by_id: Dict[str, NarrativeAction],
        results: Dict[str, NarrativeExecutionResult],
    ) -> Optional[str]:
        for dependency_id in get_dependency_action_ids(action):
            dependency = action_by_id.get(dependency_id)
            if dependency is None:
                continue
            result = results.get(dependency_id)
            if not dependency.include or result is None or result.status != "EXECUTED":
                return dependency_id
        return None

    async def _run(self, action: NarrativeAction) -> NarrativeExecutionResult:
        self._pending_reference = None
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    if isinstance(action, CreateEntityAction):
                        message, record = await self._create_entity(db, action)
                    elif isinstance(action, UpdateEntityAction):
                        message, record = await self._update_entity(db, action)
                    elif isinstance(action, AddContactAction):
                        message, record = await self._add_contact(db, action)
                    else:
                        message, record = await self._link_company_co_investor(db, action)
            if self._pending_reference is not None:
                self.created_by_action_id[action.id] = self._pending_reference
        except EngineError as exc:
            logger.info("narrative_action_failed action_id=%s code=%s message=%s", action.id, exc.code, exc.message)
            return NarrativeExecutionResult(action_id=action.id, kind=action.kind, status="FAILED", message=exc.message)
        except Exception as exc:  # noqa: BLE001
            logger.exception("narrative_action_error action_id=%s", action.id)
            return NarrativeExecutionResult(
                action_id=action.id,
                kind=action.kind,
                status="FAILED",
                message=str(exc) or "Failed to execute action",
            )

        return NarrativeExecutionResult(
            action_id=action.id, kind=action.kind, status="EXECUTED", message=message, record=record
        )

    async def _resolve_entity_id(
        self,
        service: OrganizationService,
        kind: OrganizationKind,
        name: str,
        selected_id: Optional[UUID],
        create_action_id: Optional[str],
        matches: Sequence[EntityMatch],
    ) -> Optional[UUID]:
        """Selected id, then the id produced in this run, then a confident name match."""
        if selected_id:
            return selected_id
        if create_action_id and create_action_id in self.created_by_action_id:
            return self.created_by_action_id[create_action_id].id
        matched = _first_exact_match(matches)
        if matched:
            return matched
        return _first_exact_match(await service.search_by_name(kind, name, limit=5))

    async def _create_entity(self, db: AsyncSession, action: CreateEntityAction):
        service = OrganizationService(db)
        adapter = get_adapter(action.entity_type)

        if action.selection.mode == "USE_EXISTING":
            existing_id = action.selection.existing_id or (
                action.existing_matches[0].id if action.existing_matches else None
            )
            if not existing_id:
                raise ValidationError(f"No existing {adapter.label} selected for {action.draft.name}.")
            organization = await service.get_organization(adapter.kind, existing_id)
            created = False
        else:
            organization, _ = await service.create_organization(
                adapter.kind,
                action.draft,
                queue_research=action.selection.queue_research,
            )
            created = True

        reference = CreatedEntityReference(
            entity_type=adapter.kind,
            id=organization.id,
            name=organization.name,
            created=created,
        )
        self._pending_reference = reference
        verb = "Created" if created else "Using existing"
        record = ExecutedRecord(entity_type=adapter.kind, id=organization.id, name=organization.name)
        return f"{verb} {adapter.label} {organization.name}.", record

    async def _update_entity(self, db: AsyncSession, action: UpdateEntityAction):
        service = OrganizationService(db)
        adapter = get_adapter(action.entity_type)
        target_id = await self._resolve_entity_id(
            service,
            adapter.kind,
            action.target_name,
            action.selected_target_id,
            action.linked_create_action_id,
            action.target_matches,
        )
        if not target_id:
            raise NotFoundError(f"No {adapter.label} named {action.target_name} was found to update.")

        organization = await service.update_organization(adapter.kind, target_id, action.patch)
        record = ExecutedRecord(entity_type=adapter.kind, id=organization.id, name=organization.name)
        return f"Updated {adapter.label} {organization.name}.", record

    async def _add_contact(self, db: AsyncSession, action: AddContactAction):
        service = OrganizationService(db)
        adapter = get_adapter(action.parent_type)
        parent_id = await self._resolve_entity_id(
            service,
            adapter.kind,
            action.parent_name,
            action.selected_parent_id,
            action.linked_create_action_id,
            action.parent_matches,
        )
        if not parent_id:
            raise NotFoundError(f"No {adapter.label} named {action.parent_name} was found for this contact.")
        parent = await service.get_organization(adapter.kind, parent_id)

        candidate = RoleContactCandidate(**action.contact.model_dump(), role_type=action.role_type)
        linked = await ContactLinkService(db).resolve_and_link(adapter.kind, parent.id, candidate)
        record = ExecutedRecord(entity_type=adapter.kind, id=parent.id, name=parent.name)
        return f"Linked contact {linked.resolution.contact.name} to {adapter.label} {parent.name}.", record

    async def _link_company_co_investor(self, db: AsyncSession, action: LinkCompanyCoInvestorAction):
        service = OrganizationService(db)
        company_id = await self._resolve_entity_id(
            service,
            OrganizationKind.COMPANY,
            action.company_name,
            action.selected_company_id,
            action.company_create_action_id,
            action.company_matches,
        )
        if not company_id:
            raise NotFoundError(f"No company named {action.company_name} was found for this relationship.")
        co_investor_id = await self._resolve_entity_id(
            service,
            OrganizationKind.CO_INVESTOR,
            action.co_investor_name,
            action.selected_co_investor_id,
            action.co_investor_create_action_id,
            action.co_investor_matches,
        )
        if not co_investor_id:
            raise NotFoundError(f"No co-investor named {action.co_investor_name} was found for this relationship.")

        company = await service.get_organization(OrganizationKind.COMPANY, company_id)
        co_investor = await service.get_organization(OrganizationKind.CO_INVESTOR, co_investor_id)

        result = await db.execute(
            select(CompanyCoInvestorLink).where(
                CompanyCoInvestorLink.company_id == company.id,
                CompanyCoInvestorLink.co_investor_id == co_investor.id,
            )
        )
        link = result.scalars().first()
        if link is None:
            link = CompanyCoInvestorLink(company_id=company.id, co_investor_id=co_investor.id)
            db.add(link)
        link.relationship_type = action.relationship_type.value
        link.notes = trim_or_none(action.notes)
        link.investment_amount_usd = action.investment_amount_usd
        link.source = LinkSource.MANUAL.value
        await db.flush()

        record = ExecutedRecord(entity_type=OrganizationKind.COMPANY, id=company.id, name=company.name)
        return f"Linked company {company.name} and co-investor {co_investor.name}.", record
