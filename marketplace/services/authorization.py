"""Pure authorization decisions for order and sub-order operations.

``can_perform`` never touches the database: partner ownership must already be
resolved onto ``actor.partner_id`` (see ``partner_service.resolve_partner_id``)
before a partner-scoped decision is requested. Role and ownership are checked
before state, so a foreign caller learns nothing about the order's status.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, NamedTuple

from marketplace.core.errors import (
    DENY_INVALID_STATE,
    DENY_NOT_OWNER,
    DENY_UNAUTHENTICATED,
    DENY_WRONG_ROLE,
    InvalidStateError,
    NotAuthorizedError,
)
from marketplace.models.order import (
    ORDER_ASSIGNED,
    ORDER_CONFIRMED,
    ORDER_CREATED,
    ORDER_PICKED_UP,
    ORDER_PRICED,
    ORDER_TYPE_CUSTOM,
)
from marketplace.models.sub_order import SUB_ORDER_CREATED
from marketplace.models.user import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DELIVERY, ROLE_PARTNER
from marketplace.schemas.auth import Actor

OP_CREATE_ORDER = "CREATE_ORDER"
OP_PRICE_ORDER = "PRICE_ORDER"
OP_CONFIRM_PRICE = "CONFIRM_PRICE"
OP_ASSIGN_DELIVERY = "ASSIGN_DELIVERY"
OP_ACCEPT_DELIVERY_JOB = "ACCEPT_DELIVERY_JOB"
OP_UPDATE_DELIVERY_STATUS = "UPDATE_DELIVERY_STATUS"
OP_ASSIGN_PARTNER = "ASSIGN_PARTNER"
OP_ACCEPT_SUB_ORDER = "ACCEPT_SUB_ORDER"
OP_REJECT_SUB_ORDER = "REJECT_SUB_ORDER"
OP_PROGRESS_SUB_ORDER = "PROGRESS_SUB_ORDER"
OP_CANCEL_ORDER = "CANCEL_ORDER"
OP_VIEW_ORDER = "VIEW_ORDER"
OP_VIEW_CUSTOM_ORDER_STATUS = "VIEW_CUSTOM_ORDER_STATUS"
OP_ADMIN_ONLY = "ADMIN_ONLY"
OP_PARTNER_ONLY = "PARTNER_ONLY"
OP_SUBMIT_PARTNER_PROFILE = "SUBMIT_PARTNER_PROFILE"

CANCELLABLE_STATUSES: frozenset[str] = frozenset({ORDER_CREATED, ORDER_PRICED, ORDER_CONFIRMED})


class Decision(NamedTuple):
    """Outcome of an authorization check."""

    allowed: bool
    reason: str | None = None
    message: str | None = None


ALLOW = Decision(True)


def deny(reason: str, message: str) -> Decision:
    return Decision(False, reason, message)


def _require_role(actor: Actor, *roles: str) -> Decision | None:
    if actor.role not in roles:
        return deny(DENY_WRONG_ROLE, f"Forbidden: {actor.role.lower()} role not allowed")
    return None


def _require_status(resource: Any, allowed: frozenset[str] | set[str], action: str) -> Decision | None:
    if resource.status not in allowed:
        return deny(DENY_INVALID_STATE, f"Cannot {action} in {resource.status} status")
    return None


def _first_denial(*checks: Decision | None) -> Decision:
    for check in checks:
        if check is not None:
            return check
    return ALLOW


def _create_order(actor: Actor, resource: Any) -> Decision:
    return _first_denial(_require_role(actor, ROLE_CUSTOMER))


def _price_order(actor: Actor, order: Any) -> Decision:
    denial = _require_role(actor, ROLE_ADMIN)
    if denial is not None:
        return denial
    if order.order_type != ORDER_TYPE_CUSTOM:
        return deny(DENY_INVALID_STATE, "Only custom orders can be priced")
    return _first_denial(_require_status(order, {ORDER_CREATED}, "price order"))


def _confirm_price(actor: Actor, order: Any) -> Decision:
    denial = _require_role(actor, ROLE_CUSTOMER)
    if denial is not None:
        return denial
    if order.customer_id != actor.id:
        return deny(DENY_NOT_OWNER, "Order belongs to another customer")
    return _first_denial(_require_status(order, {ORDER_PRICED}, "confirm price"))


def _assign_delivery(actor: Actor, order: Any) -> Decision:
    return _first_denial(
        _require_role(actor, ROLE_ADMIN),
        _require_status(order, {ORDER_CONFIRMED}, "assign delivery"),
    )


def _accept_delivery_job(actor: Actor, order: Any) -> Decision:
    denial = _require_role(actor, ROLE_DELIVERY)
    if denial is not None:
        return denial
    if order.delivery_partner_id is not None:
        return deny(DENY_INVALID_STATE, "Order already assigned")
    return _first_denial(_require_status(order, {ORDER_CONFIRMED}, "accept delivery job"))


def _update_delivery_status(actor: Actor, order: Any) -> Decision:
    # Assignment is the credential here; the role is not re-checked.
    if order.delivery_partner_id is None or order.delivery_partner_id != actor.id:
        return deny(DENY_NOT_OWNER, "Not assigned to this order")
    return _first_denial(_require_status(order, {ORDER_ASSIGNED, ORDER_PICKED_UP}, "update delivery status"))


def _assign_partner(actor: Actor, order: Any) -> Decision:
    denial = _require_role(actor, ROLE_ADMIN)
    if denial is not None:
        return denial
    if order.order_type != ORDER_TYPE_CUSTOM:
        return deny(DENY_INVALID_STATE, "Partners are assigned only to custom orders")
    return _first_denial(_require_status(order, {ORDER_CREATED}, "assign partner"))


def _sub_order_owner(actor: Actor, sub_order: Any) -> Decision | None:
    denial = _require_role(actor, ROLE_PARTNER)
    if denial is not None:
        return denial
    if actor.partner_id is None or sub_order.partner_id != actor.partner_id:
        return deny(DENY_NOT_OWNER, "Sub-order belongs to another partner")
    return None


def _answer_sub_order(action: str) -> Callable[[Actor, Any], Decision]:
    def _rule(actor: Actor, sub_order: Any) -> Decision:
        return _first_denial(
            _sub_order_owner(actor, sub_order),
            _require_status(sub_order, {SUB_ORDER_CREATED}, action),
        )

    return _rule


def _progress_sub_order(actor: Actor, sub_order: Any) -> Decision:
    return _first_denial(_sub_order_owner(actor, sub_order))


def _cancel_order(actor: Actor, order: Any) -> Decision:
    denial = _require_role(actor, ROLE_CUSTOMER)
    if denial is not None:
        return denial
    if order.customer_id != actor.id:
        return deny(DENY_NOT_OWNER, "Order belongs to another customer")
    return _first_denial(_require_status(order, CANCELLABLE_STATUSES, "cancel order"))


def _view_order(actor: Actor, order: Any) -> Decision:
    is_customer = order.customer_id == actor.id
    is_delivery = order.delivery_partner_id is not None and order.delivery_partner_id == actor.id
    is_partner = (
        actor.role == ROLE_PARTNER
        and actor.partner_id is not None
        and order.partner_id == actor.partner_id
    )
    is_admin = actor.role == ROLE_ADMIN
    if is_customer or is_delivery or is_partner or is_admin:
        return ALLOW
    return deny(DENY_NOT_OWNER, "Unauthorized to view this order")


def _view_custom_order_status(actor: Actor, order: Any) -> Decision:
    if order.customer_id != actor.id:
        return deny(DENY_NOT_OWNER, "Access denied")
    return ALLOW


def _admin_only(actor: Actor, resource: Any) -> Decision:
    if actor.role != ROLE_ADMIN:
        return deny(DENY_WRONG_ROLE, "Admin access only")
    return ALLOW


def _partner_only(actor: Actor, resource: Any) -> Decision:
    if actor.role != ROLE_PARTNER:
        return deny(DENY_WRONG_ROLE, "Partner access only")
    return ALLOW


def _submit_partner_profile(actor: Actor, resource: Any) -> Decision:
    return _first_denial(_require_role(actor, ROLE_CUSTOMER, ROLE_PARTNER))


_RULES: dict[str, Callable[[Actor, Any], Decision]] = {
    OP_CREATE_ORDER: _create_order,
    OP_PRICE_ORDER: _price_order,
    OP_CONFIRM_PRICE: _confirm_price,
    OP_ASSIGN_DELIVERY: _assign_delivery,
    OP_ACCEPT_DELIVERY_JOB: _accept_delivery_job,
    OP_UPDATE_DELIVERY_STATUS: _update_delivery_status,
    OP_ASSIGN_PARTNER: _assign_partner,
    OP_ACCEPT_SUB_ORDER: _answer_sub_order("accept sub-order"),
    OP_REJECT_SUB_ORDER: _answer_sub_order("reject sub-order"),
    OP_PROGRESS_SUB_ORDER: _progress_sub_order,
    OP_CANCEL_ORDER: _cancel_order,
    OP_VIEW_ORDER: _view_order,
    OP_VIEW_CUSTOM_ORDER_STATUS: _view_custom_order_status,
    OP_ADMIN_ONLY: _admin_only,
    OP_PARTNER_ONLY: _partner_only,
    OP_SUBMIT_PARTNER_PROFILE: _submit_partner_profile,
}


def can_perform(actor: Actor | None, operation: str, resource: Any = None) -> Decision:
    """Decide whether ``actor`` may run ``operation`` against ``resource``."""
    if actor is None:
        return deny(DENY_UNAUTHENTICATED, "Not authenticated")
    try:
        rule = _RULES[operation]
    except KeyError as exc:
        raise ValueError(f"Unknown operation: {operation}") from exc
    return rule(actor, resource)


def ensure_can_perform(actor: Actor | None, operation: str, resource: Any = None) -> None:
    """Raise the tagged error matching a denial."""
    decision = can_perform(actor, operation, resource)
    if decision.allowed:
        return
    if decision.reason == DENY_INVALID_STATE:
        raise InvalidStateError(decision.message or "Invalid state")
    raise NotAuthorizedError(decision.message or "Unauthorized", reason=decision.reason)
