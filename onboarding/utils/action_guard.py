import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Optional

from redis import Redis
from redis.exceptions import WatchError

from onboarding.exceptions import ActionInProgressError

ACTIONS = ('resend', 'revoke', 'delete')


class ActionGuard:
    """
    Tracks which invitation has an action in flight for one client session.
    This is a debounce against double clicks and racing buttons, not a lock:
    two sessions each get their own guard. The store's conditional updates
    are what keep concurrent admins correct.
    """

    def __init__(self):
        self._in_flight: Dict[str, str] = {}
        self._mutex = threading.Lock()

    def begin(self, invitation_id: str, action: str) -> bool:
        """
        Mark an action as started
        :return: False if another action is already running for this invitation
        """
        if action not in ACTIONS:
            raise ValueError(f"Unknown invitation action: {action}")
        with self._mutex:
            if invitation_id in self._in_flight:
                return False
            self._in_flight[invitation_id] = action
            return True

    def end(self, invitation_id: str) -> None:
        with self._mutex:
            self._in_flight.pop(invitation_id, None)

    def in_flight(self, invitation_id: str) -> Optional[str]:
        with self._mutex:
            return self._in_flight.get(invitation_id)

    @contextmanager
    def hold(self, invitation_id: str, action: str):
        if not self.begin(invitation_id, action):
            raise ActionInProgressError(self.in_flight(invitation_id) or action)
        try:
            yield
        finally:
            self.end(invitation_id)


class RedisActionGuard(ActionGuard):
    """
    Same contract, kept in Redis so every worker process serving a session
    sees it. Keys expire so a crashed request can't wedge an invitation.
    Each mark carries a token, so a guard whose mark timed out never clears
    a mark taken after it.
    """

    def __init__(self, redis_client: Redis, session_id: str, expire_seconds: int = 30):
        super().__init__()
        self.redis = redis_client
        self.session_id = session_id
        self.expire_seconds = expire_seconds
        self._owned: Dict[str, str] = {}

    def _key(self, invitation_id: str) -> str:
        return f"lock:invitation:{self.session_id}:{invitation_id}"

    def begin(self, invitation_id: str, action: str) -> bool:
        if action not in ACTIONS:
            raise ValueError(f"Unknown invitation action: {action}")
        value = f"{action}:{uuid.uuid4().hex}"
        # only set if key doesn't exist
        acquired = bool(self.redis.set(
            self._key(invitation_id),
            value,
            ex=self.expire_seconds,
            nx=True
        ))
        if acquired:
            with self._mutex:
                self._owned[invitation_id] = value
        return acquired

    def end(self, invitation_id: str) -> None:
        """Release the mark if this guard still owns it"""
        with self._mutex:
            value = self._owned.pop(invitation_id, None)
        if value is None:
            return

        key = self._key(invitation_id)
        with self.redis.pipeline() as pipe:
            try:
                pipe.watch(key)
                if _decode(pipe.get(key)) != value:
                    return
                pipe.multi()
                pipe.delete(key)
                pipe.execute()
            except WatchError:
                # replaced between the read and the delete, so not ours
                pass

    def in_flight(self, invitation_id: str) -> Optional[str]:
        value = _decode(self.redis.get(self._key(invitation_id)))
        if value is None:
            return None
        return value.split(':', 1)[0]


def _decode(value) -> Optional[str]:
    return value.decode() if isinstance(value, bytes) else value
