"""Type-tag default rule tables.

Defaults live in code, not in the database. A community row only stores the
sections an administrator has overridden; everything else is computed here.
"""

from __future__ import annotations

from typing import Any

from meriter.core.settings import settings
from meriter.models.community import ALL_ROLES, CommunityRole, TypeTag
from meriter.schemas.community import (
    ActionType,
    InvestingSettings,
    MeritSettings,
    PermissionRule,
    PostingRules,
    TappalkaSettings,
    VotingRules,
)

_NO_VIEWER = [CommunityRole.SUPERADMIN, CommunityRole.LEAD, CommunityRole.PARTICIPANT]

_EDIT_ACTIONS = (
    ActionType.EDIT_PUBLICATION,
    ActionType.DELETE_PUBLICATION,
)
_COMMENT_ACTIONS = (
    ActionType.EDIT_COMMENT,
    ActionType.DELETE_COMMENT,
)


def normalize_type_tag(type_tag: str | None) -> TypeTag:
    """Map unknown or missing tags to ``TypeTag.DEFAULT``."""
    try:
        return TypeTag(type_tag) if type_tag else TypeTag.DEFAULT
    except ValueError:
        return TypeTag.DEFAULT


def default_voting_rules(type_tag: str | None) -> VotingRules:
    tag = normalize_type_tag(type_tag)
    rules = VotingRules(
        allowed_roles=list(ALL_ROLES),
        can_vote_for_own_posts=False,
        participants_cannot_vote_for_lead=False,
        spends_merits=True,
        awards_merits=True,
    )
    if tag is TypeTag.MARATHON_OF_GOOD:
        rules.participants_cannot_vote_for_lead = True
    elif tag is TypeTag.FUTURE_VISION:
        rules.can_vote_for_own_posts = True
    elif tag in (TypeTag.SUPPORT, TypeTag.TEAM):
        rules.allowed_roles = list(_NO_VIEWER)
    return rules


def default_posting_rules(type_tag: str | None) -> PostingRules:
    tag = normalize_type_tag(type_tag)
    rules = PostingRules(
        allowed_roles=list(ALL_ROLES),
        requires_team_membership=False,
        only_team_lead=False,
        auto_membership=False,
    )
    if tag is not TypeTag.DEFAULT:
        rules.allowed_roles = list(_NO_VIEWER)
    if tag is TypeTag.TEAM:
        rules.requires_team_membership = True
    return rules


def default_merit_settings(type_tag: str | None) -> MeritSettings:
    tag = normalize_type_tag(type_tag)
    recipients = list(ALL_ROLES)
    if tag in (TypeTag.FUTURE_VISION, TypeTag.SUPPORT, TypeTag.TEAM):
        recipients = list(_NO_VIEWER)
    return MeritSettings(
        daily_quota=settings.default_daily_quota,
        quota_recipients=recipients,
        can_earn=True,
        can_spend=True,
    )


def default_tappalka_settings(type_tag: str | None) -> TappalkaSettings:
    return TappalkaSettings()


def default_investing_settings(type_tag: str | None) -> InvestingSettings:
    return InvestingSettings()


def derive_permission_rules(
    voting: VotingRules,
    posting: PostingRules,
) -> list[PermissionRule]:
    """Build the full ``(role, action)`` table implied by voting and posting rules."""
    rules: list[PermissionRule] = []
    for role in ALL_ROLES:
        is_viewer = role is CommunityRole.VIEWER
        table: dict[ActionType, bool] = {
            ActionType.VOTE: role in voting.allowed_roles,
            ActionType.CREATE_PUBLICATION: role in posting.allowed_roles,
            ActionType.CREATE_POLL: role in posting.allowed_roles,
            ActionType.WITHDRAW: True,
            ActionType.INVEST: not is_viewer,
        }
        for action in _EDIT_ACTIONS:
            table[action] = not is_viewer
        for action in _COMMENT_ACTIONS:
            table[action] = True
        rules.extend(
            PermissionRule(role=role, action=action, allowed=allowed)
            for action, allowed in table.items()
        )
    return rules


def default_permission_rules(type_tag: str | None) -> list[PermissionRule]:
    return derive_permission_rules(
        default_voting_rules(type_tag),
        default_posting_rules(type_tag),
    )


SECTION_DEFAULTS = {
    "voting_rules": default_voting_rules,
    "posting_rules": default_posting_rules,
    "merit_settings": default_merit_settings,
    "tappalka_settings": default_tappalka_settings,
    "investing_settings": default_investing_settings,
}


def default_section(section: str, type_tag: str | None) -> dict[str, Any]:
    """Return the JSON form of a default rule section."""
    return SECTION_DEFAULTS[section](type_tag).model_dump(mode="json")


def structurally_equal(left: Any, right: Any) -> bool:
    """Compare two JSON-like values.

    Mappings must have the same keys with equal values; lists compare as
    multisets so that ``["lead", "viewer"]`` equals ``["viewer", "lead"]``.
    """
    if isinstance(left, dict) and isinstance(right, dict):
        if left.keys() != right.keys():
            return False
        return all(structurally_equal(left[key], right[key]) for key in left)
    if isinstance(left, list) and isinstance(right, list):
        if len(left) != len(right):
            return False
        remaining = list(right)
        for item in left:
            for index, candidate in enumerate(remaining):
                if structurally_equal(item, candidate):
                    del remaining[index]
                    break
            else:
                return False
        return True
    if isinstance(left, bool) or isinstance(right, bool):
        return left is right
    return left == right
