"""Authorization policy: one rule per entity-action pair.

Every handler asks `authorize(action, actor, resource)` instead of
re-deriving ownership and role checks on its own. `actor` is the caller's
stored User record; `resource` is the stored record being acted on.
"""

from typing import Any, Callable, Dict, Optional

from . import PermissionDeniedError

Rule = Callable[[Dict[str, Any], Optional[Dict[str, Any]]], bool]

def is_admin(actor: Dict[str, Any]) -> bool:
    return actor.get('role') == 'admin'

def _is_self_or_admin(actor, user) -> bool:
    return actor['id'] == user.get('id') or is_admin(actor)

def _owns_listing(actor, listing) -> bool:
    return actor['id'] == listing.get('seller_id')

def _is_order_party(actor, order) -> bool:
    return actor['id'] in (order.get('buyer_id'), order.get('seller_id'))

def _is_order_buyer(actor, order) -> bool:
    return actor['id'] == order.get('buyer_id')

def _admin_only(actor, resource) -> bool:
    return is_admin(actor)

RULES: Dict[str, Rule] = {
    'user:read': _is_self_or_admin,
    'listing:update': _owns_listing,
    'listing:delete': _owns_listing,
    'listing:request-verification': _owns_listing,
    'order:read': _is_order_party,
    'order:update-status': _is_order_party,
    'review:create': _is_order_buyer,
    'verification:list': _admin_only,
    'verification:decide': _admin_only,
    'report:list': _admin_only,
    'report:review': _admin_only,
    'analytics:read': _admin_only,
}

def can(action: str, actor: Dict[str, Any], resource: Optional[Dict[str, Any]] = None) -> bool:
    """Return whether `actor` may perform `action` on `resource`."""
    rule = RULES.get(action)
    if rule is None:
        raise KeyError(f"Unknown action: {action}")
    return bool(actor and actor.get('id')) and rule(actor, resource or {})

def authorize(action: str, actor: Dict[str, Any], resource: Optional[Dict[str, Any]] = None) -> None:
    """Raise PermissionDeniedError unless `actor` may perform `action`."""
    if not can(action, actor, resource):
        if RULES[action] is _admin_only:
            raise PermissionDeniedError("Forbidden - Admin only")
        raise PermissionDeniedError("Forbidden")
