import pytest

from onboarding.exceptions import ActionInProgressError
from onboarding.utils.action_guard import ActionGuard, RedisActionGuard


def test_begin_blocks_second_action_on_same_invitation():
    guard = ActionGuard()

    assert guard.begin("inv-1", "resend") == True
    assert guard.begin("inv-1", "revoke") == False
    assert guard.in_flight("inv-1") == "resend"

    guard.end("inv-1")
    assert guard.in_flight("inv-1") is None
    assert guard.begin("inv-1", "revoke") == True


def test_invitations_are_independent():
    guard = ActionGuard()

    assert guard.begin("inv-1", "resend") == True
    assert guard.begin("inv-2", "resend") == True
    assert guard.begin("inv-3", "delete") == True


def test_unknown_action_rejected():
    with pytest.raises(ValueError):
        ActionGuard().begin("inv-1", "approve")


def test_hold_releases_on_failure():
    """The guard never wedges an invitation, even when the action blows up"""
    guard = ActionGuard()

    with pytest.raises(RuntimeError):
        with guard.hold("inv-1", "revoke"):
            raise RuntimeError("store down")

    assert guard.in_flight("inv-1") is None


def test_hold_raises_when_busy():
    guard = ActionGuard()
    guard.begin("inv-1", "resend")

    with pytest.raises(ActionInProgressError) as exc:
        with guard.hold("inv-1", "delete"):
            pass
    assert exc.value.action == "resend"
    # the running action keeps its mark
    assert guard.in_flight("inv-1") == "resend"


def test_separate_sessions_do_not_share_state():
    tab_one = ActionGuard()
    tab_two = ActionGuard()

    assert tab_one.begin("inv-1", "resend") == True
    assert tab_two.begin("inv-1", "revoke") == True


def test_redis_guard(redis_client):
    guard = RedisActionGuard(redis_client, "tab-1", expire_seconds=30)

    assert guard.begin("inv-1", "resend") == True
    assert guard.begin("inv-1", "revoke") == False
    assert guard.in_flight("inv-1") == "resend"
    assert redis_client.ttl("lock:invitation:tab-1:inv-1") > 0

    guard.end("inv-1")
    assert guard.in_flight("inv-1") is None
    assert guard.begin("inv-1", "revoke") == True


def test_redis_guard_scoped_by_session(redis_client):
    tab_one = RedisActionGuard(redis_client, "tab-1")
    tab_two = RedisActionGuard(redis_client, "tab-2")

    assert tab_one.begin("inv-1", "resend") == True
    assert tab_two.begin("inv-1", "resend") == True


def test_redis_guard_expires(redis_client):
    guard = RedisActionGuard(redis_client, "tab-1", expire_seconds=30)
    guard.begin("inv-1", "delete")

    # simulate the key timing out after a crashed request
    redis_client.delete("lock:invitation:tab-1:inv-1")
    assert guard.begin("inv-1", "delete") == True


def test_redis_guard_end_keeps_newer_mark(redis_client):
    """A request whose mark timed out must not clear the mark of the request after it"""
    slow = RedisActionGuard(redis_client, "tab-1", expire_seconds=30)
    fast = RedisActionGuard(redis_client, "tab-1", expire_seconds=30)
    slow.begin("inv-1", "resend")

    redis_client.delete("lock:invitation:tab-1:inv-1")
    assert fast.begin("inv-1", "revoke") == True

    slow.end("inv-1")
    assert fast.in_flight("inv-1") == "revoke"
    assert slow.begin("inv-1", "delete") == False

    fast.end("inv-1")
    assert fast.in_flight("inv-1") is None


def test_redis_guard_hold_releases_own_mark(redis_client):
    guard = RedisActionGuard(redis_client, "tab-1")

    with guard.hold("inv-1", "delete"):
        assert guard.in_flight("inv-1") == "delete"
    assert redis_client.get("lock:invitation:tab-1:inv-1") is None
