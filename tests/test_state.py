from datetime import date

from studio_booking.schemas import BookingUpdate
from studio_booking.state import BookingState
from tests.helpers import new_booking, utc


async def started_state(studio, **kwargs) -> BookingState:
    state = BookingState(studio.bookings, studio.changes, **kwargs)
    await state.start()
    return state


def ids(state):
    return [b.id for b in state.bookings]


async def test_start_loads_everything(studio):
    created = (await studio.bookings.create(new_booking(utc(2026, 1, 8, 10), utc(2026, 1, 8, 12)))).data

    state = await started_state(studio)

    assert not state.is_loading
    assert ids(state) == [created.id]
    state.close()


async def test_mutations_are_reflected_exactly_once(studio):
    state = await started_state(studio)

    assert await state.add_booking(new_booking(utc(2026, 1, 8, 10), utc(2026, 1, 8, 12)))
    await studio.changes.drain()
    assert len(state.bookings) == 1
    booking_id = state.bookings[0].id

    assert await state.update_booking(booking_id, BookingUpdate(reason="Recording"))
    await studio.changes.drain()
    assert ids(state) == [booking_id]
    assert state.bookings[0].reason == "Recording"

    assert await state.update_booking_status(booking_id, "approved")
    await studio.changes.drain()
    assert ids(state) == [booking_id]
    assert state.bookings[0].status == "approved"

    assert await state.delete_booking(booking_id)
    await studio.changes.drain()
    assert state.bookings == []
    state.close()


async def test_own_mutation_visible_without_waiting_for_feed(studio):
    state = await started_state(studio)

    assert await state.add_booking(new_booking(utc(2026, 1, 8, 10), utc(2026, 1, 8, 12)))

    assert len(state.bookings) == 1
    await studio.changes.drain()
    state.close()


async def test_failed_mutation_leaves_collection(studio):
    state = await started_state(studio)

    assert not await state.add_booking(new_booking(utc(2026, 1, 8, 12), utc(2026, 1, 8, 10)))
    assert not await state.update_booking_status("missing", "approved")
    assert state.bookings == []
    state.close()


async def test_other_clients_see_changes(studio):
    pushed = []
    watcher = await started_state(studio, on_replace=pushed.append)
    writer = await started_state(studio)

    await writer.add_booking(new_booking(utc(2026, 1, 8, 10), utc(2026, 1, 8, 12)))
    await studio.changes.drain()

    assert len(watcher.bookings) == 1
    assert pushed[-1] == watcher.bookings

    watcher.close()
    await writer.add_booking(new_booking(utc(2026, 1, 9, 10), utc(2026, 1, 9, 12)))
    await studio.changes.drain()
    assert len(watcher.bookings) == 1
    assert len(writer.bookings) == 2
    writer.close()


async def test_selectors(studio):
    state = await started_state(studio)
    await state.add_booking(new_booking(utc(2026, 1, 8, 10), utc(2026, 1, 8, 12)))
    await state.add_booking(new_booking(utc(2026, 1, 9, 10), utc(2026, 1, 9, 11), user_id="user-b"))
    await studio.changes.drain()
    approved_id = state.get_user_bookings("user-b")[0].id
    await state.update_booking_status(approved_id, "approved")
    await studio.changes.drain()

    assert len(state.get_bookings_for_date("2026-01-08")) == 1
    assert [b.id for b in state.get_approved_bookings()] == [approved_id]
    assert [b.id for b in state.filter("today", on=date(2026, 1, 9))] == [approved_id]
    assert state.counts().pending == 1
    assert await state.get_taken_slots("2026-01-08") == ["10:00", "11:00"]
    state.close()
