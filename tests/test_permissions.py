# mypy: ignore-errors
# tests/test_permissions.py
"""Decision-table tests for the vote and action permission evaluators."""

import pytest

from meriter.models import Community
from meriter.schemas.community import ActionType
from meriter.services.permissions import (
    ActionContext,
    Actor,
    DenialReason,
    VoteTarget,
    can_invest,
    can_perform,
    can_vote,
    can_vote_for_beneficiary,
    can_withdraw,
)
from meriter.services.rule_store import resolve_effective_rules

ME = "user-me"
OTHER = "user-other"


def rules_for(type_tag, **overrides):
    community = Community(id=f"c-{type_tag}", name=type_tag, type_tag=type_tag, **overrides)
    return resolve_effective_rules(community)


def actor(role=None, global_role=None, user_id=ME):
    return Actor(user_id=user_id, global_role=global_role, community_role=role)


OTHERS_POST = VoteTarget(author_id=OTHER)
MY_POST = VoteTarget(author_id=ME, is_author=True)
MY_POST_WITH_BENEFICIARY = VoteTarget(author_id=ME, is_author=True, has_beneficiary=True)
BENEFICIARY_OF_POST = VoteTarget(author_id=OTHER, is_beneficiary=True, has_beneficiary=True)
PROJECT = VoteTarget(author_id=OTHER, is_project=True)


@pytest.mark.parametrize(
    ("type_tag", "voter", "target", "allowed", "reason"),
    [
        ("default", Actor(user_id=None), OTHERS_POST, False, DenialReason.NOT_LOGGED_IN),
        ("default", actor("participant"), PROJECT, False, DenialReason.PROJECT_POST),
        ("default", actor(global_role="superadmin"), PROJECT, False, DenialReason.PROJECT_POST),
        ("default", actor(global_role="superadmin"), MY_POST, True, None),
        ("team", actor(global_role="superadmin"), MY_POST, True, None),
        ("team", actor("participant"), MY_POST, False, DenialReason.TEAM_OWN_POST),
        ("team", actor("lead"), MY_POST_WITH_BENEFICIARY, False, DenialReason.TEAM_OWN_POST),
        ("future-vision", actor("participant"), MY_POST, True, None),
        ("future-vision", actor("lead"), BENEFICIARY_OF_POST, True, None),
        ("future-vision", actor("viewer"), MY_POST, False, DenialReason.IS_AUTHOR),
        ("default", actor("participant"), MY_POST, False, DenialReason.IS_AUTHOR),
        ("default", actor("lead"), BENEFICIARY_OF_POST, False, DenialReason.IS_BENEFICIARY),
        ("marathon-of-good", actor("participant"), OTHERS_POST, True, None),
        ("marathon-of-good", actor("viewer"), OTHERS_POST, True, None),
        ("default", actor("viewer"), OTHERS_POST, False, DenialReason.VIEWER_NOT_MARATHON),
        ("support", actor("viewer"), OTHERS_POST, False, DenialReason.ROLE_NOT_ALLOWED),
        ("default", actor(None), OTHERS_POST, False, DenialReason.ROLE_NOT_ALLOWED),
        (
            "default",
            actor("participant"),
            MY_POST_WITH_BENEFICIARY,
            False,
            DenialReason.OWN_POST_NOT_ALLOWED,
        ),
        ("future-vision", actor("participant"), MY_POST_WITH_BENEFICIARY, True, None),
        ("default", actor("participant"), OTHERS_POST, True, None),
        ("default", actor("lead"), OTHERS_POST, True, None),
    ],
)
def test_can_vote_decision_table(type_tag, voter, target, allowed, reason) -> None:
    """Each row pins the single reason code produced by the first matching step."""
    decision = can_vote(voter, rules_for(type_tag), target)
    assert decision.allowed is allowed
    assert decision.reason == reason


def test_can_vote_without_rules_denies() -> None:
    decision = can_vote(actor("participant"), None, OTHERS_POST)
    assert not decision.allowed
    assert decision.reason == DenialReason.NO_COMMUNITY


def test_can_vote_is_pure() -> None:
    """Identical inputs always produce identical decisions."""
    rules = rules_for("team")
    first = can_vote(actor("participant"), rules, MY_POST)
    second = can_vote(actor("participant"), rules, MY_POST)
    assert first == second


def test_own_post_override_allows_self_vote_with_beneficiary() -> None:
    rules = rules_for("default", voting_rules={"can_vote_for_own_posts": True})
    assert can_vote(actor("participant"), rules, MY_POST_WITH_BENEFICIARY).allowed


def test_allowed_roles_override_restricts_voting() -> None:
    rules = rules_for("default", voting_rules={"allowed_roles": ["lead"]})
    decision = can_vote(actor("participant"), rules, OTHERS_POST)
    assert decision.reason == DenialReason.ROLE_NOT_ALLOWED


@pytest.mark.parametrize(
    ("role", "beneficiary_role", "shares_team", "allowed"),
    [
        ("participant", "lead", True, False),
        ("participant", "lead", False, True),
        ("participant", "participant", True, True),
        ("lead", "lead", True, True),
    ],
)
def test_participants_cannot_vote_for_own_lead(role, beneficiary_role, shares_team, allowed) -> None:
    rules = rules_for("marathon-of-good")
    decision = can_vote_for_beneficiary(actor(role), rules, beneficiary_role, shares_team)
    assert decision.allowed is allowed
    if not allowed:
        assert decision.reason == DenialReason.PARTICIPANT_CANNOT_VOTE_FOR_LEAD


class TestCanPerform:
    """Rule-table evaluation for non-vote actions."""

    def test_author_may_edit_untouched_publication(self) -> None:
        context = ActionContext(is_author=True)
        decision = can_perform(actor("participant"), rules_for("default"), ActionType.EDIT_PUBLICATION, context)
        assert decision.allowed

    @pytest.mark.parametrize("context", [
        ActionContext(is_author=True, has_votes=True),
        ActionContext(is_author=True, has_comments=True),
    ])
    def test_votes_or_comments_freeze_author_edits(self, context) -> None:
        decision = can_perform(actor("participant"), rules_for("default"), ActionType.EDIT_PUBLICATION, context)
        assert decision.reason == DenialReason.FROZEN

    def test_participant_cannot_edit_others_publication(self) -> None:
        decision = can_perform(
            actor("participant"),
            rules_for("default"),
            ActionType.DELETE_PUBLICATION,
            ActionContext(is_author=False),
        )
        assert decision.reason == DenialReason.NOT_AUTHOR

    def test_lead_bypasses_freeze(self) -> None:
        context = ActionContext(is_author=False, has_votes=True, has_comments=True)
        decision = can_perform(actor("lead"), rules_for("default"), ActionType.DELETE_PUBLICATION, context)
        assert decision.allowed

    def test_superadmin_bypasses_rules(self) -> None:
        decision = can_perform(
            actor(global_role="superadmin"),
            rules_for("support"),
            ActionType.DELETE_COMMENT,
            ActionContext(has_votes=True),
        )
        assert decision.allowed

    def test_missing_role_is_denied(self) -> None:
        decision = can_perform(actor(None), rules_for("default"), ActionType.CREATE_PUBLICATION)
        assert decision.reason == DenialReason.NO_ROLE

    def test_anonymous_is_denied(self) -> None:
        decision = can_perform(Actor(user_id=None), rules_for("default"), ActionType.CREATE_POLL)
        assert decision.reason == DenialReason.NOT_LOGGED_IN

    def test_viewer_cannot_post_outside_default_communities(self) -> None:
        decision = can_perform(actor("viewer"), rules_for("support"), ActionType.CREATE_PUBLICATION)
        assert decision.reason == DenialReason.RULE_DENIED

    def test_viewer_may_post_in_default_community(self) -> None:
        assert can_perform(actor("viewer"), rules_for("default"), ActionType.CREATE_PUBLICATION).allowed

    def test_team_posting_requires_membership(self) -> None:
        rules = rules_for("team")
        denied = can_perform(actor("participant"), rules, ActionType.CREATE_PUBLICATION)
        assert denied.reason == DenialReason.TEAM_MEMBERSHIP_REQUIRED
        allowed = can_perform(
            actor("participant"),
            rules,
            ActionType.CREATE_PUBLICATION,
            ActionContext(is_team_member=True),
        )
        assert allowed.allowed

    def test_stored_rule_overrides_default(self) -> None:
        rules = rules_for(
            "default",
            permission_rules=[{"role": "participant", "action": "create_poll", "allowed": False}],
        )
        assert can_perform(actor("participant"), rules, ActionType.CREATE_POLL).reason == DenialReason.RULE_DENIED
        assert can_perform(actor("participant"), rules, ActionType.CREATE_PUBLICATION).allowed


class TestCanWithdraw:
    def test_beneficiary_may_withdraw(self) -> None:
        assert can_withdraw(actor("participant"), rules_for("default"), ME).allowed

    def test_non_beneficiary_is_denied(self) -> None:
        decision = can_withdraw(actor("lead"), rules_for("default"), OTHER)
        assert decision.reason == DenialReason.NOT_BENEFICIARY

    def test_earning_disabled(self) -> None:
        rules = rules_for("default", merit_settings={"can_earn": False})
        decision = can_withdraw(actor("participant"), rules, ME)
        assert decision.reason == DenialReason.EARNING_DISABLED


class TestCanInvest:
    def _check(self, role="participant", author_id=OTHER, enabled=True, closed=False):
        return can_invest(
            actor(role),
            rules_for("default"),
            author_id=author_id,
            investing_enabled=enabled,
            closed=closed,
        )

    def test_participant_may_invest(self) -> None:
        assert self._check().allowed

    def test_author_cannot_invest_in_own_post(self) -> None:
        assert self._check(author_id=ME).reason == DenialReason.OWN_POST

    def test_closed_post_refuses(self) -> None:
        assert self._check(closed=True).reason == DenialReason.POST_CLOSED

    def test_investing_must_be_enabled(self) -> None:
        assert self._check(enabled=False).reason == DenialReason.INVESTING_DISABLED

    def test_viewer_cannot_invest(self) -> None:
        assert self._check(role="viewer").reason == DenialReason.RULE_DENIED
