"""Permission evaluators.

All functions here are pure: they take the actor, the effective community
rules and a description of the target, and return a ``PermissionDecision``.
A denial is a normal return value carrying a single reason code; nothing in
this module raises for an ordinary "no".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from meriter.models.community import CommunityRole, TypeTag
from meriter.models.user import GLOBAL_ROLE_SUPERADMIN
from meriter.schemas.community import ActionType, EffectiveRules, PermissionRule

_FUTURE_VISION_SELF_VOTERS = (
    CommunityRole.PARTICIPANT,
    CommunityRole.LEAD,
    CommunityRole.SUPERADMIN,
)
_EDIT_OR_DELETE = (
    ActionType.EDIT_PUBLICATION,
    ActionType.DELETE_PUBLICATION,
    ActionType.EDIT_COMMENT,
    ActionType.DELETE_COMMENT,
)
_CREATE = (ActionType.CREATE_PUBLICATION, ActionType.CREATE_POLL)


class DenialReason(StrEnum):
    """Reason codes surfaced to clients for localized messages."""

    NOT_LOGGED_IN = "notLoggedIn"
    PROJECT_POST = "projectPost"
    NO_COMMUNITY = "noCommunity"
    TEAM_OWN_POST = "teamOwnPost"
    IS_BENEFICIARY = "isBeneficiary"
    IS_AUTHOR = "isAuthor"
    ROLE_NOT_ALLOWED = "roleNotAllowed"
    OWN_POST_NOT_ALLOWED = "ownPostNotAllowed"
    VIEWER_NOT_MARATHON = "viewerNotMarathon"
    PARTICIPANT_CANNOT_VOTE_FOR_LEAD = "participantCannotVoteForLead"
    NO_ROLE = "noRole"
    RULE_DENIED = "ruleDenied"
    NOT_AUTHOR = "notAuthor"
    FROZEN = "frozen"
    TEAM_MEMBERSHIP_REQUIRED = "teamMembershipRequired"
    ONLY_TEAM_LEAD = "onlyTeamLead"
    NOT_BENEFICIARY = "notBeneficiary"
    EARNING_DISABLED = "earningDisabled"
    INVESTING_DISABLED = "investingDisabled"
    OWN_POST = "ownPost"
    POST_CLOSED = "postClosed"


@dataclass(frozen=True)
class PermissionDecision:
    """Outcome of a permission check."""

    allowed: bool
    reason: DenialReason | None = None

    @classmethod
    def allow(cls) -> PermissionDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason) -> PermissionDecision:
        return cls(allowed=False, reason=reason)


@dataclass(frozen=True)
class Actor:
    """Who is asking.

    ``user_id`` is None for anonymous callers. ``community_role`` is None when
    the user has no membership row in the community.
    """

    user_id: str | None
    global_role: str | None = None
    community_role: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def is_superadmin(self) -> bool:
        return self.global_role == GLOBAL_ROLE_SUPERADMIN

    @property
    def role(self) -> CommunityRole | None:
        """Effective role: global superadmin wins over the community row."""
        if self.is_superadmin:
            return CommunityRole.SUPERADMIN
        if self.community_role is None:
            return None
        try:
            return CommunityRole(self.community_role)
        except ValueError:
            return None


@dataclass(frozen=True)
class VoteTarget:
    """Ownership facts about the publication or comment being voted on."""

    author_id: str | None
    is_author: bool = False
    is_beneficiary: bool = False
    has_beneficiary: bool = False
    is_project: bool = False

    @property
    def is_effective_beneficiary(self) -> bool:
        return self.is_beneficiary or (self.is_author and not self.has_beneficiary)


@dataclass(frozen=True)
class ActionContext:
    """Resource facts for the generic rule-table evaluator."""

    is_author: bool = False
    has_votes: bool = False
    has_comments: bool = False
    is_team_member: bool = False
    has_team_membership: bool = False


def can_vote(actor: Actor, rules: EffectiveRules | None, target: VoteTarget) -> PermissionDecision:
    """Decide whether ``actor`` may vote on ``target``.

    The first matching step wins:

    1. anonymous callers are refused;
    2. project posts are never votable;
    3. without community rules nothing can be decided;
    4. a global superadmin is allowed;
    5. in ``team`` communities an author cannot vote on their own post;
    6. in ``future-vision`` members may vote for themselves;
    7. otherwise the effective beneficiary may not vote;
    8. ``marathon-of-good`` participants are allowed;
    9. the role must be listed in ``voting_rules.allowed_roles``;
    10. own posts need ``can_vote_for_own_posts``;
    11. viewers may vote only in ``marathon-of-good``.
    """
    if not actor.is_authenticated:
        return PermissionDecision.deny(DenialReason.NOT_LOGGED_IN)
    if target.is_project:
        return PermissionDecision.deny(DenialReason.PROJECT_POST)
    if rules is None:
        return PermissionDecision.deny(DenialReason.NO_COMMUNITY)
    if actor.is_superadmin:
        return PermissionDecision.allow()

    type_tag = rules.type_tag
    role = actor.role
    owns_post = target.is_author and target.author_id == actor.user_id

    if type_tag == TypeTag.TEAM and owns_post:
        return PermissionDecision.deny(DenialReason.TEAM_OWN_POST)

    if (
        type_tag == TypeTag.FUTURE_VISION
        and role in _FUTURE_VISION_SELF_VOTERS
        and target.is_effective_beneficiary
    ):
        return PermissionDecision.allow()

    if target.is_beneficiary:
        return PermissionDecision.deny(DenialReason.IS_BENEFICIARY)
    if target.is_author and not target.has_beneficiary:
        return PermissionDecision.deny(DenialReason.IS_AUTHOR)

    if type_tag == TypeTag.MARATHON_OF_GOOD and role is CommunityRole.PARTICIPANT:
        return PermissionDecision.allow()

    if role is None or role not in rules.voting_rules.allowed_roles:
        return PermissionDecision.deny(DenialReason.ROLE_NOT_ALLOWED)

    if owns_post and not rules.voting_rules.can_vote_for_own_posts:
        return PermissionDecision.deny(DenialReason.OWN_POST_NOT_ALLOWED)

    if role is CommunityRole.VIEWER:
        if type_tag == TypeTag.MARATHON_OF_GOOD:
            return PermissionDecision.allow()
        return PermissionDecision.deny(DenialReason.VIEWER_NOT_MARATHON)

    return PermissionDecision.allow()


def can_vote_for_beneficiary(
    actor: Actor,
    rules: EffectiveRules,
    beneficiary_role: str | None,
    shares_team: bool,
) -> PermissionDecision:
    """Apply ``participants_cannot_vote_for_lead`` once the beneficiary is known.

    Participants may not vote for a lead of a team they belong to themselves;
    leads of other teams stay votable.
    """
    if (
        rules.voting_rules.participants_cannot_vote_for_lead
        and actor.role is CommunityRole.PARTICIPANT
        and beneficiary_role == CommunityRole.LEAD
        and shares_team
    ):
        return PermissionDecision.deny(DenialReason.PARTICIPANT_CANNOT_VOTE_FOR_LEAD)
    return PermissionDecision.allow()


def find_rule(
    rules: list[PermissionRule],
    role: CommunityRole,
    action: ActionType,
) -> PermissionRule | None:
    """Return the first rule for ``(role, action)``; stored overrides come first."""
    for rule in rules:
        if rule.role == role and rule.action == action:
            return rule
    return None


def can_perform(
    actor: Actor,
    rules: EffectiveRules | None,
    action: ActionType,
    context: ActionContext | None = None,
) -> PermissionDecision:
    """Evaluate ``action`` against the community's permission rule table."""
    context = context or ActionContext()
    if not actor.is_authenticated:
        return PermissionDecision.deny(DenialReason.NOT_LOGGED_IN)
    if rules is None:
        return PermissionDecision.deny(DenialReason.NO_COMMUNITY)
    if actor.is_superadmin:
        return PermissionDecision.allow()

    role = actor.role
    if role is None:
        return PermissionDecision.deny(DenialReason.NO_ROLE)

    rule = find_rule(rules.permission_rules, role, action)
    if rule is None or not rule.allowed:
        return PermissionDecision.deny(DenialReason.RULE_DENIED)

    if action in _EDIT_OR_DELETE and role is not CommunityRole.LEAD:
        if not context.is_author:
            return PermissionDecision.deny(DenialReason.NOT_AUTHOR)
        if context.has_votes or context.has_comments:
            return PermissionDecision.deny(DenialReason.FROZEN)

    if action in _CREATE:
        posting = rules.posting_rules
        if posting.requires_team_membership:
            member = (
                context.is_team_member
                if rules.type_tag == TypeTag.TEAM
                else context.has_team_membership
            )
            if not member:
                return PermissionDecision.deny(DenialReason.TEAM_MEMBERSHIP_REQUIRED)
        if posting.only_team_lead and role is not CommunityRole.LEAD:
            return PermissionDecision.deny(DenialReason.ONLY_TEAM_LEAD)

    return PermissionDecision.allow()


def can_withdraw(
    actor: Actor,
    rules: EffectiveRules | None,
    beneficiary_id: str,
) -> PermissionDecision:
    """Only the effective beneficiary may withdraw, and only where earning is on."""
    if not actor.is_authenticated:
        return PermissionDecision.deny(DenialReason.NOT_LOGGED_IN)
    if rules is None:
        return PermissionDecision.deny(DenialReason.NO_COMMUNITY)
    if actor.user_id != beneficiary_id:
        return PermissionDecision.deny(DenialReason.NOT_BENEFICIARY)
    if not rules.merit_settings.can_earn:
        return PermissionDecision.deny(DenialReason.EARNING_DISABLED)
    if actor.is_superadmin:
        return PermissionDecision.allow()
    role = actor.role
    if role is None:
        return PermissionDecision.deny(DenialReason.NO_ROLE)
    rule = find_rule(rules.permission_rules, role, ActionType.WITHDRAW)
    if rule is None or not rule.allowed:
        return PermissionDecision.deny(DenialReason.RULE_DENIED)
    return PermissionDecision.allow()


def can_invest(
    actor: Actor,
    rules: EffectiveRules | None,
    *,
    author_id: str,
    investing_enabled: bool,
    closed: bool,
) -> PermissionDecision:
    """Decide whether ``actor`` may put wallet merits into a post's pool."""
    if not actor.is_authenticated:
        return PermissionDecision.deny(DenialReason.NOT_LOGGED_IN)
    if rules is None:
        return PermissionDecision.deny(DenialReason.NO_COMMUNITY)
    if not investing_enabled:
        return PermissionDecision.deny(DenialReason.INVESTING_DISABLED)
    if closed:
        return PermissionDecision.deny(DenialReason.POST_CLOSED)
    if actor.user_id == author_id:
        return PermissionDecision.deny(DenialReason.OWN_POST)
    return can_perform(actor, rules, ActionType.INVEST)
