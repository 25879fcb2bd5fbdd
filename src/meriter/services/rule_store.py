"""Community rule store: stored overrides merged over type-tag defaults."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from meriter.core.errors import NotFoundError, ValidationError
from meriter.db.time import utcnow
from meriter.models import Community
from meriter.schemas.community import (
    CommunityRulesUpdate,
    EffectiveRules,
    InvestingSettings,
    MeritSettings,
    PermissionRule,
    PostingRules,
    TappalkaSettings,
    VotingRules,
)
from meriter.services import community_defaults as defaults

logger = logging.getLogger(__name__)

_SECTION_MODELS = {
    "voting_rules": VotingRules,
    "posting_rules": PostingRules,
    "merit_settings": MeritSettings,
    "tappalka_settings": TappalkaSettings,
    "investing_settings": InvestingSettings,
}


def merge_section(section: str, type_tag: str | None, override: dict[str, Any] | None) -> Any:
    """Return the effective model for one rule section.

    Keys present in ``override`` win; missing keys come from the default.
    """
    merged = defaults.default_section(section, type_tag)
    if override:
        merged.update(override)
    return _SECTION_MODELS[section].model_validate(merged)


def merge_permission_rules(
    stored: list[dict[str, Any]] | None,
    derived: list[PermissionRule],
) -> list[PermissionRule]:
    """Merge stored permission rules over the derived defaults.

    Stored rules come first so that a first-match lookup picks them; defaults
    whose ``(role, action)`` pair was not overridden are appended.
    """
    if not stored:
        return derived
    merged = [PermissionRule.model_validate(rule) for rule in stored]
    seen = {(rule.role, rule.action) for rule in merged}
    merged.extend(rule for rule in derived if (rule.role, rule.action) not in seen)
    return merged


def resolve_effective_rules(community: Community) -> EffectiveRules:
    """Compute the effective rules for a loaded community row."""
    tag = defaults.normalize_type_tag(community.type_tag).value
    voting = merge_section("voting_rules", tag, community.voting_rules)
    posting = merge_section("posting_rules", tag, community.posting_rules)
    return EffectiveRules(
        community_id=community.id,
        type_tag=tag,
        voting_rules=voting,
        posting_rules=posting,
        permission_rules=merge_permission_rules(
            community.permission_rules,
            defaults.derive_permission_rules(voting, posting),
        ),
        merit_settings=merge_section("merit_settings", tag, community.merit_settings),
        tappalka_settings=merge_section("tappalka_settings", tag, community.tappalka_settings),
        investing_settings=merge_section("investing_settings", tag, community.investing_settings),
    )


class CommunityRuleStore:
    """Keyed access to communities and their effective rules."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_community(self, community_id: str) -> Community:
        """Return a community or raise ``NotFoundError``."""
        community = self.db.get(Community, community_id)
        if community is None:
            raise NotFoundError("Community", community_id)
        return community

    def find_by_type_tag(self, type_tag: str) -> Community | None:
        return (
            self.db.query(Community)
            .filter(Community.type_tag == type_tag, Community.is_archived.is_(False))
            .order_by(Community.created_at)
            .first()
        )

    def get_effective_rules(self, community_id: str) -> EffectiveRules:
        return resolve_effective_rules(self.get_community(community_id))

    def update_rules(self, community: Community, update: CommunityRulesUpdate) -> EffectiveRules:
        """Apply a partial rule update and return the new effective rules.

        Each provided section is merged over the current effective section and
        validated as a whole before it is stored.

        Raises:
            ValidationError: If a merged section fails validation.
        """
        current = resolve_effective_rules(community)
        if update.name is not None:
            community.name = update.name

        for section in _SECTION_MODELS:
            patch = getattr(update, section)
            if patch is None:
                continue
            merged = getattr(current, section).model_dump(mode="json")
            merged.update(patch)
            try:
                validated = _SECTION_MODELS[section].model_validate(merged)
            except ValueError as err:
                raise ValidationError(f"Invalid {section}: {err}") from err
            setattr(community, section, validated.model_dump(mode="json"))

        if update.permission_rules is not None:
            community.permission_rules = [
                rule.model_dump(mode="json") for rule in update.permission_rules
            ]

        community.needs_setup = False
        self.db.commit()
        self.db.refresh(community)
        logger.info("Updated rules for community %s", community.id)
        return resolve_effective_rules(community)

    def reset_quota(self, community: Community) -> Community:
        """Start a fresh quota window for every member of ``community``."""
        community.last_quota_reset_at = utcnow()
        self.db.commit()
        self.db.refresh(community)
        logger.info("Quota window reset for community %s", community.id)
        return community
