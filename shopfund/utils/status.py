"""
Status values and the transitions allowed between them.

Reward:    pending -> completed -> redeemed (terminal, forward-only);
           pending|completed -> revoked (terminal) when the donation is refunded
Campaign:  admins move between any two states; owners only submit draft -> pending
Shop:      admin-controlled, any state to any other
Donation:  pending -> completed -> refunded
"""

from typing import Dict, FrozenSet, Optional


class InvalidTransition(Exception):
    def __init__(self, kind: str, current: str, target: str):
        self.kind = kind
        self.current = current
        self.target = target
        super().__init__(f"{kind} cannot move from {current} to {target}")


# --- roles ---
SUPPORTER = "SUPPORTER"
BUSINESS_REPRESENTATIVE = "BUSINESS_REPRESENTATIVE"
ADMIN = "ADMIN"
ROOT = "ROOT"
PENDING_ROLE_SELECTION = "PENDING_ROLE_SELECTION"

USER_ROLES = (SUPPORTER, BUSINESS_REPRESENTATIVE, ADMIN, ROOT, PENDING_ROLE_SELECTION)
ADMIN_ROLES = (ADMIN, ROOT)
SELECTABLE_ROLES = (SUPPORTER, BUSINESS_REPRESENTATIVE)
ASSIGNABLE_ROLES = (SUPPORTER, BUSINESS_REPRESENTATIVE, ADMIN)

# --- rewards ---
REWARD_PENDING = "pending"
REWARD_COMPLETED = "completed"
REWARD_REDEEMED = "redeemed"
REWARD_REVOKED = "revoked"
REWARD_STATUSES = (REWARD_PENDING, REWARD_COMPLETED, REWARD_REDEEMED, REWARD_REVOKED)

_REWARD_NEXT: Dict[str, FrozenSet[str]] = {
    REWARD_PENDING: frozenset({REWARD_COMPLETED, REWARD_REVOKED}),
    REWARD_COMPLETED: frozenset({REWARD_REDEEMED, REWARD_REVOKED}),
    REWARD_REDEEMED: frozenset(),
    REWARD_REVOKED: frozenset(),
}

# --- campaigns ---
CAMPAIGN_DRAFT = "draft"
CAMPAIGN_PENDING = "pending"
CAMPAIGN_APPROVED = "approved"
CAMPAIGN_REJECTED = "rejected"
CAMPAIGN_SUSPENDED = "suspended"
CAMPAIGN_STATUSES = (
    CAMPAIGN_DRAFT,
    CAMPAIGN_PENDING,
    CAMPAIGN_APPROVED,
    CAMPAIGN_REJECTED,
    CAMPAIGN_SUSPENDED,
)

# --- shops ---
SHOP_PENDING = "pending"
SHOP_VERIFIED = "verified"
SHOP_REJECTED = "rejected"
SHOP_STATUSES = (SHOP_PENDING, SHOP_VERIFIED, SHOP_REJECTED)

# --- donations ---
DONATION_PENDING = "pending"
DONATION_COMPLETED = "completed"
DONATION_REFUNDED = "refunded"
DONATION_STATUSES = (DONATION_PENDING, DONATION_COMPLETED, DONATION_REFUNDED)

_DONATION_NEXT: Dict[str, FrozenSet[str]] = {
    DONATION_PENDING: frozenset({DONATION_COMPLETED}),
    DONATION_COMPLETED: frozenset({DONATION_REFUNDED}),
    DONATION_REFUNDED: frozenset(),
}


def can_advance_reward(current: str, target: str) -> bool:
    return target in _REWARD_NEXT.get(current, frozenset())


def advance_reward(current: str, target: str) -> str:
    if not can_advance_reward(current, target):
        raise InvalidTransition("reward", current, target)
    return target


def is_terminal_reward(status: str) -> bool:
    return status in _REWARD_NEXT and not _REWARD_NEXT[status]


def proof_notice(status: str) -> Optional[str]:
    """What the proof page tells whoever is looking at it. Never mutates anything."""
    return {
        REWARD_PENDING: "awaiting approval",
        REWARD_COMPLETED: "ready to redeem",
        REWARD_REDEEMED: "already redeemed",
        REWARD_REVOKED: "donation refunded",
    }.get(status)


def admin_campaign_transition(current: str, target: str) -> str:
    if target not in CAMPAIGN_STATUSES:
        raise ValueError(f"invalid campaign status: {target}")
    if target == current:
        raise InvalidTransition("campaign", current, target)
    return target


def owner_campaign_transition(current: str, target: str) -> str:
    if current == CAMPAIGN_DRAFT and target == CAMPAIGN_PENDING:
        return target
    raise InvalidTransition("campaign", current, target)


def admin_shop_transition(current: str, target: str) -> str:
    if target not in SHOP_STATUSES:
        raise ValueError(f"invalid shop status: {target}")
    if target == current:
        raise InvalidTransition("shop", current, target)
    return target


def advance_donation(current: str, target: str) -> str:
    if target not in _DONATION_NEXT.get(current, frozenset()):
        raise InvalidTransition("donation", current, target)
    return target
