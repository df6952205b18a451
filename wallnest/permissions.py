"""
Authorization rules.

Every guarded service method calls `ensure_allowed(subject, action, resource)`
before touching the database. A rule is either role based (admin only) or
ownership based (the resource's owner field must match the subject), with an
optional admin override.
"""
import enum
import logging
from typing import Any, Optional

from wallnest.exceptions import ForbiddenException, UnauthorizedException
from wallnest.users.models import UserRole

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    WALLPAPER_UPDATE = "wallpaper:update"
    WALLPAPER_DELETE = "wallpaper:delete"
    POST_UPDATE = "post:update"
    POST_DELETE = "post:delete"
    COMMENT_UPDATE = "comment:update"
    COMMENT_DELETE = "comment:delete"
    REPORT_REVIEW = "report:review"
    TAG_MANAGE = "tag:manage"
    USER_MANAGE = "user:manage"
    DASHBOARD_VIEW = "dashboard:view"


# action -> (owner attribute on the resource, admin may act on anyone's resource)
_OWNERSHIP_RULES = {
    Action.WALLPAPER_UPDATE: ("uploader_id", True),
    Action.WALLPAPER_DELETE: ("uploader_id", True),
    Action.POST_UPDATE: ("author_id", False),
    Action.POST_DELETE: ("author_id", False),
    Action.COMMENT_UPDATE: ("author_id", False),
    Action.COMMENT_DELETE: ("author_id", False),
}

_ADMIN_ONLY = {
    Action.REPORT_REVIEW,
    Action.TAG_MANAGE,
    Action.USER_MANAGE,
    Action.DASHBOARD_VIEW,
}


def is_admin(subject: Any) -> bool:
    role = getattr(subject, "role", None)
    return role == UserRole.ADMIN or role == UserRole.ADMIN.value


def authorize(subject: Any, action: Action, resource: Optional[Any] = None) -> bool:
    """
    Decide whether `subject` may perform `action` on `resource`.

    Args:
        subject: The acting user (anything with `id` and `role`), or None
        action: The action being attempted
        resource: The target row for ownership based actions

    Returns:
        bool: True to allow, False to deny
    """
    if subject is None:
        return False

    if action in _ADMIN_ONLY:
        return is_admin(subject)

    rule = _OWNERSHIP_RULES.get(action)
    if rule is None:
        return False
    owner_field, admin_override = rule
    if admin_override and is_admin(subject):
        return True
    if resource is None:
        return False
    return getattr(resource, owner_field, None) == subject.id


def ensure_allowed(
    subject: Any,
    action: Action,
    resource: Optional[Any] = None,
    message: Optional[str] = None,
) -> None:
    """Raise Unauthorized/Forbidden unless `authorize` allows the action."""
    if subject is None:
        raise UnauthorizedException()
    if not authorize(subject, action, resource):
        logger.info("Denied %s for user %s", action.value, getattr(subject, "id", None))
        raise ForbiddenException(message or "You are not allowed to perform this action")
