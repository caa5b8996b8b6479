"""Audit log helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from marketplace.models import AuditLog
from marketplace.schemas.auth import Actor


def log_action(
    db: Session,
    *,
    actor: Actor,
    action_type: str,
    order_id: str | None = None,
    sub_order_id: str | None = None,
    before_snapshot: dict[str, Any] | None = None,
    after_snapshot: dict[str, Any] | None = None,
) -> None:
    db.add(
        AuditLog(
            actor_user_id=actor.id,
            actor_role=actor.role,
            action_type=action_type,
            order_id=order_id,
            sub_order_id=sub_order_id,
            before_snapshot=before_snapshot,
            after_snapshot=after_snapshot,
        )
    )
