"""Single active meeting per coach session."""

from threading import Lock


class MeetingSlot:
    """Holds the one meeting a coach session is currently in.

    Joining the meeting that already holds the slot is a rejoin and always
    succeeds. A pending join attempt blocks other meetings the same way an
    active meeting does.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._current_meeting_id: str | None = None
        self._attempts: set[str] = set()

    @property
    def current_meeting_id(self) -> str | None:
        return self._current_meeting_id

    @property
    def is_in_meeting(self) -> bool:
        return self._current_meeting_id is not None

    def can_join(self, meeting_id: str) -> bool:
        with self._lock:
            return self._can_join(meeting_id)

    def try_acquire(self, meeting_id: str) -> bool:
        with self._lock:
            if not self._can_join(meeting_id):
                return False
            if self._attempts - {meeting_id}:
                return False
            self._current_meeting_id = meeting_id
            self._attempts.discard(meeting_id)
            return True

    def release(self, meeting_id: str | None = None) -> None:
        with self._lock:
            if meeting_id is not None and meeting_id != self._current_meeting_id:
                return
            self._current_meeting_id = None

    def register_attempt(self, meeting_id: str) -> bool:
        with self._lock:
            if not self._can_join(meeting_id):
                return False
            if meeting_id in self._attempts or meeting_id == self._current_meeting_id:
                return True
            if self.is_in_meeting or self._attempts:
                return False
            self._attempts.add(meeting_id)
            return True

    def unregister_attempt(self, meeting_id: str) -> None:
        with self._lock:
            self._attempts.discard(meeting_id)

    def _can_join(self, meeting_id: str) -> bool:
        return self._current_meeting_id is None or self._current_meeting_id == meeting_id
