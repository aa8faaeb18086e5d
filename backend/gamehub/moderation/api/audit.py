"""Admin audit log browsing."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from gamehub.moderation.domain.audit import AuditQuery, AuditReader
from gamehub.moderation.domain.rbac import ReviewerContext
from gamehub.moderation.domain.store import bounded
from gamehub.settings import settings

from .deps import get_admin_context, get_audit_reader_dep
from .schemas import AuditEntryOut, CamelModel


router = APIRouter(prefix="/api/admin/audit", tags=["moderation-audit"])


class AuditListOut(CamelModel):
    items: list[AuditEntryOut]
    total: int


@router.get("", response_model=AuditListOut)
async def list_audit_entries(
    role: str | None = Query(default=None),
    field: str | None = Query(default=None),
    submitter_id: str | None = Query(default=None, alias="submitterId"),
    reviewer_id: str | None = Query(default=None, alias="reviewerId"),
    game: str | None = Query(default=None, description="Target slug"),
    search: str | None = Query(default=None, max_length=200),
    sort: Literal["asc", "desc"] = Query(default="desc"),
    limit: int = Query(default=100, ge=1, le=1000),
    audit: AuditReader = Depends(get_audit_reader_dep),
    admin: ReviewerContext = Depends(get_admin_context),
) -> AuditListOut:
    query = AuditQuery(
        role=role,
        field=field,
        submitter_id=submitter_id,
        reviewer_id=reviewer_id,
        target_slug=game,
        search=search,
        descending=sort == "desc",
        limit=limit,
    )
    entries = await bounded(audit.list(query), settings.store_timeout_seconds)
    total = await bounded(audit.count(), settings.store_timeout_seconds)
    return AuditListOut(items=[AuditEntryOut.from_model(entry) for entry in entries], total=total)


@router.get("/{entry_id}", response_model=AuditEntryOut)
async def get_audit_entry(
    entry_id: str,
    audit: AuditReader = Depends(get_audit_reader_dep),
    admin: ReviewerContext = Depends(get_admin_context),
) -> AuditEntryOut:
    entry = await bounded(audit.get(entry_id), settings.store_timeout_seconds)
    if entry is None:
        raise HTTPException(status_code=404, detail="audit_entry_not_found")
    return AuditEntryOut.from_model(entry)
