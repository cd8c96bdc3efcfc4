"""Per-story authorization rules for moderator mutations.

The role gate decides who may reach /moderator routes at all; this policy
decides whether a given actor may update or delete a given story. Rules are
plain predicates ``(actor, story, action) -> bool`` selected by the
``STORY_POLICY`` setting, and the whole policy can be swapped through the
``get_story_policy`` dependency.
"""
from __future__ import annotations

import logging
from typing import Callable

from fastapi import HTTPException, status

from config.settings import settings
from src.db.tables import StoryRow
from src.db.user_tables import UserRow, ROLE_ADMIN

logger = logging.getLogger(__name__)

UPDATE = "update"
DELETE = "delete"

StoryRule = Callable[[UserRow, StoryRow, str], bool]


def staff_rule(actor: UserRow, story: StoryRow, action: str) -> bool:
    return actor.is_staff


def admin_only_rule(actor: UserRow, story: StoryRow, action: str) -> bool:
    return actor.role == ROLE_ADMIN


def deny_all_rule(actor: UserRow, story: StoryRow, action: str) -> bool:
    return False


RULES: dict[str, StoryRule] = {
    "staff": staff_rule,
    "admin_only": admin_only_rule,
    "deny_all": deny_all_rule,
}


class StoryPolicy:
    def __init__(self, rule: StoryRule):
        self.rule = rule

    def allows(self, actor: UserRow, story: StoryRow, action: str) -> bool:
        return bool(self.rule(actor, story, action))

    def authorize(self, actor: UserRow, story: StoryRow, action: str) -> None:
        """Raise 403 unless the rule permits ``action`` on ``story``."""
        if not self.allows(actor, story, action):
            logger.info("Story policy denied %s on story %s for user %s", action, story.id, actor.id)
            raise HTTPException(status.HTTP_403_FORBIDDEN, "This action is unauthorized.")


def policy_from_settings() -> StoryPolicy:
    try:
        rule = RULES[settings.STORY_POLICY]
    except KeyError:
        raise ValueError(f"Unknown STORY_POLICY {settings.STORY_POLICY!r}; expected one of {sorted(RULES)}")
    return StoryPolicy(rule)


def get_story_policy() -> StoryPolicy:
    """FastAPI dependency; override in app.dependency_overrides to plug a custom rule."""
    return policy_from_settings()
