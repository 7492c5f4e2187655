"""Context-aware authorization decisions with explicit denial reasons."""

from __future__ import annotations

import enum
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Union

SENSITIVE_TRUST_THRESHOLD = 0.9


class PolicyError(Exception):
    """Base class for every reason an action is denied."""


class UserBanned(PolicyError):
    def __init__(self) -> None:
        super().__init__("User account is banned.")


class UserSuspended(PolicyError):
    def __init__(self) -> None:
        super().__init__("User account is suspended.")


class InsufficientPermissions(PolicyError):
    def __init__(self) -> None:
        super().__init__("Insufficient permissions to perform this action.")


class LowTrustScore(PolicyError):
    """The user's trust score is below what the action requires."""

    def __init__(self, trust_score: float, required: float) -> None:
        self.trust_score = trust_score
        self.required = required
        super().__init__(
            f"User trust score ({trust_score}) is below the required "
            f"threshold ({required}) for this action."
        )


class UserStatus(enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    BANNED = "banned"


class Role(enum.IntEnum):
    """Roles, ordered from least to most privileged."""

    USER = 0
    TRUSTED_USER = 1
    MODERATOR = 2
    ADMIN = 3


_ROLE_NAMES = {
    "user": Role.USER,
    "trusted_user": Role.TRUSTED_USER,
    "moderator": Role.MODERATOR,
    "admin": Role.ADMIN,
}


def parse_role(text: str) -> Role:
    """Parse a role name case-insensitively; raise ValueError if unknown."""
    try:
        return _ROLE_NAMES[text.lower()]
    except KeyError:
        raise ValueError(f"unknown role: {text!r}") from None


@dataclass(frozen=True)
class PolicyContext:
    """Everything known about the caller when making a decision."""

    user_id: uuid.UUID
    roles: tuple[Role, ...] = field(default=())
    status: UserStatus = UserStatus.ACTIVE
    trust_score: float = 0.0

    def __post_init__(self) -> None:
        roles: Iterable[Role] = self.roles
        object.__setattr__(self, "roles", tuple(roles))


@dataclass(frozen=True)
class ReadOwnData:
    pass


@dataclass(frozen=True)
class UpdateOwnProfile:
    pass


@dataclass(frozen=True)
class ReadDeviceData:
    device_id: uuid.UUID


@dataclass(frozen=True)
class ReadUserData:
    target_user_id: uuid.UUID


@dataclass(frozen=True)
class GenerateSecurityReport:
    pass


@dataclass(frozen=True)
class PerformSensitiveTransaction:
    pass


Action = Union[
    ReadOwnData,
    UpdateOwnProfile,
    ReadDeviceData,
    ReadUserData,
    GenerateSecurityReport,
    PerformSensitiveTransaction,
]


def _role_permits(role: Role, context: PolicyContext, action: Action) -> bool:
    match action:
        case ReadOwnData() | UpdateOwnProfile():
            return True
        case ReadDeviceData():
            return role >= Role.MODERATOR
        case ReadUserData(target_user_id=target):
            return context.user_id == target or role >= Role.MODERATOR
        case PerformSensitiveTransaction():
            return role >= Role.TRUSTED_USER
        case GenerateSecurityReport():
            return role >= Role.MODERATOR
    raise TypeError(f"unsupported action: {action!r}")


def can_execute(context: PolicyContext, action: Action) -> None:
    """Return if the action is allowed; otherwise raise the PolicyError saying why."""
    if context.status is UserStatus.BANNED:
        raise UserBanned()
    if context.status is UserStatus.SUSPENDED:
        raise UserSuspended()

    if Role.ADMIN in context.roles:
        return

    if (
        isinstance(action, PerformSensitiveTransaction)
        and context.trust_score < SENSITIVE_TRUST_THRESHOLD
    ):
        raise LowTrustScore(context.trust_score, SENSITIVE_TRUST_THRESHOLD)

    if not any(_role_permits(role, context, action) for role in context.roles):
        raise InsufficientPermissions()