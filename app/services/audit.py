from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.logging import get_audit_logger
from app.models.audit_log import AuditLog

# Never copied into audit snapshots.
SENSITIVE_COLUMNS = frozenset({"sin_full", "hashed_password"})

_ENCODERS = {
    Decimal: str,
    datetime: lambda value: value.isoformat(),
    date: lambda value: value.isoformat(),
}

audit_logger = get_audit_logger()


def serialize_for_audit(value: Any) -> Any:
    """JSON-safe copy of ``value``; money stays a string so no precision is lost."""
    return jsonable_encoder(value, custom_encoder=_ENCODERS)


def model_snapshot(model: Any, *, include: Iterable[str] | None = None) -> dict[str, Any]:
    if model is None:
        return {}
    allowed = None if include is None else frozenset(include)
    snapshot = {
        column.name: getattr(model, column.name)
        for column in model.__table__.columns
        if column.name not in SENSITIVE_COLUMNS and (allowed is None or column.name in allowed)
    }
    return serialize_for_audit(snapshot)


def field_changes(before: dict[str, Any] | None, after: dict[str, Any] | None) -> dict[str, dict[str, Any]]:
    before = before or {}
    after = after or {}
    changed: dict[str, dict[str, Any]] = {}
    for field in sorted(before.keys() | after.keys()):
        old, new = before.get(field), after.get(field)
        if old != new:
            changed[field] = {"from": old, "to": new}
    return changed


def describe(action: str, changes: dict[str, Any]) -> str:
    if not changes:
        return action
    fields = list(changes)
    shown = ", ".join(fields[:3])
    if len(fields) > 3:
        shown += f" (+{len(fields) - 3} more)"
    return f"{action}: {shown}"


def record_audit_log(
    db: AsyncSession,
    ctx: deps.TenantContext,
    *,
    actor_id,
    action: str,
    resource_type: str,
    resource_id: str,
    old_value: Any | None = None,
    new_value: Any | None = None,
) -> AuditLog:
    """Stage an audit row in the caller's unit of work; the caller commits."""
    before = None if old_value is None else serialize_for_audit(old_value)
    after = None if new_value is None else serialize_for_audit(new_value)
    changes = field_changes(before, after)
    summary = describe(action, changes)

    entry = AuditLog(
        company_id=ctx.org_id,
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id),
        old_value=before,
        new_value=after,
        changes=changes or None,
        summary=summary,
    )
    db.add(entry)
    audit_logger.info(
        summary,
        extra={"action": action, "resource_type": resource_type, "resource_id": entry.resource_id},
    )
    return entry
