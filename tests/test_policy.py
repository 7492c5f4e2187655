import uuid

import pytest

from geosentry.policy import (
    GenerateSecurityReport,
    InsufficientPermissions,
    LowTrustScore,
    PerformSensitiveTransaction,
    PolicyContext,
    ReadDeviceData,
    ReadOwnData,
    ReadUserData,
    Role,
    UpdateOwnProfile,
    UserBanned,
    UserStatus,
    UserSuspended,
    can_execute,
    parse_role,
)

USER_ID = uuid.uuid4()
OTHER_ID = uuid.uuid4()


def ctx(roles, trust, status=UserStatus.ACTIVE):
    return PolicyContext(user_id=USER_ID, roles=roles, status=status, trust_score=trust)


USER = ctx([Role.USER], 0.7)
TRUSTED = ctx([Role.USER, Role.TRUSTED_USER], 0.95)
MODERATOR = ctx([Role.MODERATOR], 0.8)
ADMIN = ctx([Role.ADMIN], 1.0)


def test_basic_user_permissions():
    assert can_execute(USER, ReadOwnData()) is None
    assert can_execute(USER, ReadUserData(target_user_id=USER_ID)) is None
    with pytest.raises(InsufficientPermissions):
        can_execute(USER, ReadUserData(target_user_id=OTHER_ID))


def test_moderator_permissions():
    assert can_execute(MODERATOR, ReadUserData(target_user_id=OTHER_ID)) is None
    assert can_execute(MODERATOR, GenerateSecurityReport()) is None
    with pytest.raises(InsufficientPermissions):
        can_execute(USER, GenerateSecurityReport())


def test_trust_score_permissions():
    assert can_execute(TRUSTED, PerformSensitiveTransaction()) is None
    with pytest.raises(LowTrustScore) as info:
        can_execute(USER, PerformSensitiveTransaction())
    assert info.value.trust_score == 0.7
    assert info.value.required == 0.9


def test_admin_override():
    assert can_execute(ADMIN, GenerateSecurityReport()) is None
    assert can_execute(ADMIN, ReadUserData(target_user_id=OTHER_ID)) is None


def test_admin_bypasses_trust_threshold():
    low_admin = ctx([Role.ADMIN], 0.1)
    assert can_execute(low_admin, PerformSensitiveTransaction()) is None


def test_high_trust_plain_user_still_needs_role():
    user = ctx([Role.USER], 0.99)
    with pytest.raises(InsufficientPermissions):
        can_execute(user, PerformSensitiveTransaction())


def test_device_data_requires_moderator():
    action = ReadDeviceData(device_id=uuid.uuid4())
    with pytest.raises(InsufficientPermissions):
        can_execute(TRUSTED, action)
    assert can_execute(MODERATOR, action) is None


def test_no_roles_denies_even_own_data():
    with pytest.raises(InsufficientPermissions):
        can_execute(ctx([], 1.0), UpdateOwnProfile())


def test_status_denials():
    suspended = ctx([Role.ADMIN], 1.0, UserStatus.SUSPENDED)
    banned = ctx([Role.ADMIN], 1.0, UserStatus.BANNED)
    with pytest.raises(UserSuspended):
        can_execute(suspended, ReadOwnData())
    with pytest.raises(UserBanned):
        can_execute(banned, ReadOwnData())


def test_role_from_str():
    assert parse_role("user") is Role.USER
    assert parse_role("ADMIN") is Role.ADMIN
    assert parse_role("Trusted_User") is Role.TRUSTED_USER
    with pytest.raises(ValueError):
        parse_role("guest")


def test_parsed_roles_are_ordered():
    user = parse_role("user")
    trusted = parse_role("trusted_user")
    moderator = parse_role("moderator")
    admin = parse_role("admin")
    assert user < trusted < moderator < admin
    assert sorted([admin, user, moderator, trusted]) == [user, trusted, moderator, admin]


def test_low_trust_message_mentions_scores():
    error = LowTrustScore(0.7, 0.9)
    assert "0.7" in str(error) and "0.9" in str(error)