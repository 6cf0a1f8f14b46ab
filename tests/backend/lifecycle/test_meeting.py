from backend.lifecycle.meeting import MeetingSlot


def test_try_acquire_claims_free_slot() -> None:
    slot = MeetingSlot()

    assert slot.try_acquire('meeting-a')
    assert slot.current_meeting_id == 'meeting-a'
    assert slot.is_in_meeting


def test_try_acquire_same_meeting_is_rejoin() -> None:
    slot = MeetingSlot()
    slot.try_acquire('meeting-a')

    assert slot.can_join('meeting-a')
    assert slot.try_acquire('meeting-a')
    assert slot.current_meeting_id == 'meeting-a'


def test_try_acquire_other_meeting_keeps_current() -> None:
    slot = MeetingSlot()
    slot.try_acquire('meeting-a')

    assert not slot.can_join('meeting-b')
    assert not slot.try_acquire('meeting-b')
    assert slot.current_meeting_id == 'meeting-a'


def test_release_frees_slot_only_for_matching_meeting() -> None:
    slot = MeetingSlot()
    slot.try_acquire('meeting-a')

    slot.release('meeting-b')
    assert slot.current_meeting_id == 'meeting-a'

    slot.release('meeting-a')
    assert slot.current_meeting_id is None
    assert slot.try_acquire('meeting-b')


def test_pending_attempt_blocks_other_meetings() -> None:
    slot = MeetingSlot()

    assert slot.register_attempt('meeting-a')
    assert slot.register_attempt('meeting-a')
    assert not slot.register_attempt('meeting-b')
    assert not slot.try_acquire('meeting-b')

    slot.unregister_attempt('meeting-a')
    assert slot.register_attempt('meeting-b')


def test_attempt_becomes_active_meeting_on_acquire() -> None:
    slot = MeetingSlot()
    slot.register_attempt('meeting-a')

    assert slot.try_acquire('meeting-a')
    assert slot.register_attempt('meeting-a')
    assert not slot.register_attempt('meeting-b')
