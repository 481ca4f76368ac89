"""Delivery gate, thread reconstruction and the mailbox service on the in-memory store."""
from datetime import timedelta

import pytest

from diary.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    StoreError,
    ValidationError,
)
from diary.letters.delivery import DeliveryGate
from diary.letters.service import LetterService
from diary.letters.store import InMemoryLetterStore
from diary.letters.thread import ThreadReconstructor
from diary.models.participant import Participant

HIM = Participant.HIM
HER = Participant.HER


@pytest.fixture
def store():
    return InMemoryLetterStore()


@pytest.fixture
def service(store, clock):
    return LetterService(store, clock)


def test_unscheduled_letter_is_delivered_on_compose(service, clock):
    resp = service.compose(HER, "It rained today and I thought of you.")

    letter = resp.letter
    assert resp.message == "Letter sent"
    assert letter.delivered_at == letter.created_at == clock.now
    assert letter.is_delivered
    assert not letter.is_read

    inbox = service.list_letters(HIM, box="inbox")
    assert [l.id for l in inbox.letters] == [letter.id]
    assert inbox.unread_count == 1


def test_content_is_trimmed_and_validated(service):
    resp = service.compose(HER, "   hello there   ", title="  hi  ")
    assert resp.letter.content == "hello there"
    assert resp.letter.title == "hi"

    with pytest.raises(ValidationError):
        service.compose(HER, "   ")
    with pytest.raises(ValidationError):
        service.compose(HER, "x" * 2001)
    with pytest.raises(ValidationError):
        service.compose(HER, "ok", title="t" * 101)


def test_content_at_the_limit_is_accepted(service):
    resp = service.compose(HIM, "x" * 2000, title="t" * 100)
    assert len(resp.letter.content) == 2000


def test_schedule_must_be_in_the_future(service, clock):
    with pytest.raises(ValidationError, match="must be in the future"):
        service.compose(HER, "too late", scheduled_delivery_at=clock.now)
    with pytest.raises(ValidationError):
        service.compose(HER, "too late", scheduled_delivery_at=clock.now - timedelta(minutes=1))


def test_scheduled_letter_arrives_on_first_request_after_its_time(service, clock):
    sent_at = clock.now
    resp = service.compose(HER, "see you soon", scheduled_delivery_at=sent_at + timedelta(hours=1))
    assert resp.message == "Letter scheduled for delivery"
    assert resp.letter.delivered_at is None

    # the sender can see it waiting in the sent box
    sent = service.list_letters(HER, box="sent")
    assert [l.id for l in sent.letters] == [resp.letter.id]

    clock.advance(minutes=59, seconds=59)
    assert service.list_letters(HIM, box="inbox").letters == []
    with pytest.raises(NotFoundError):
        service.get_letter(HIM, resp.letter.id)

    clock.advance(seconds=1)
    inbox = service.list_letters(HIM, box="inbox")
    assert [l.id for l in inbox.letters] == [resp.letter.id]
    assert inbox.letters[0].delivered_at == sent_at + timedelta(hours=1)


def test_sweep_delivers_each_letter_once(store, clock):
    gate = DeliveryGate(store, clock)
    gate.compose(HIM, "one", scheduled_delivery_at=clock.now + timedelta(minutes=5))
    gate.compose(HIM, "two", scheduled_delivery_at=clock.now + timedelta(minutes=10))

    assert gate.sweep() == 0
    clock.advance(minutes=7)
    assert gate.sweep() == 1
    assert gate.sweep() == 0
    clock.advance(hours=1)
    assert gate.sweep() == 1


def test_sweep_failure_is_swallowed(clock):
    class BrokenStore(InMemoryLetterStore):
        def deliver_due(self, now):
            raise StoreError("Failed to deliver scheduled letters")

    service = LetterService(BrokenStore(), clock)
    service.compose(HER, "still readable")

    assert service.gate.sweep() == 0
    assert service.list_letters(HIM, box="inbox").total == 1


def _conversation(service, clock):
    l1 = service.compose(HER, "L1: how was your day?").letter
    clock.advance(minutes=5)
    l2 = service.compose(HIM, "L2: long, but better now", reply_to=l1.id).letter
    clock.advance(minutes=5)
    l3 = service.compose(HER, "L3: glad to hear it", reply_to=l2.id).letter
    clock.advance(minutes=5)
    return l1, l2, l3


def test_thread_is_the_same_from_every_letter(service, clock):
    l1, l2, l3 = _conversation(service, clock)

    for start in (l1, l2, l3):
        for viewer in (HIM, HER):
            thread = service.thread(viewer, start.id)
            assert thread.root_id == l1.id
            assert [l.id for l in thread.thread] == [l1.id, l2.id, l3.id]
            assert [l.thread_level for l in thread.thread] == [0, 1, 1]
            assert thread.total_messages == 3


def test_thread_reconstruction_is_idempotent(store, service, clock):
    _, l2, _ = _conversation(service, clock)
    threads = ThreadReconstructor(store)

    first = threads.reconstruct(l2.id, HIM)
    second = threads.reconstruct(l2.id, HIM)
    assert [l.id for l in first.letters] == [l.id for l in second.letters]


def test_undelivered_reply_stays_out_of_the_thread(service, clock):
    l1 = service.compose(HER, "are you free on Sunday?").letter
    clock.advance(minutes=1)
    later = service.compose(
        HIM, "yes! surprise details soon", reply_to=l1.id,
        scheduled_delivery_at=clock.now + timedelta(hours=2),
    ).letter

    assert [l.id for l in service.thread(HER, l1.id).thread] == [l1.id]
    assert [l.id for l in service.thread(HIM, l1.id).thread] == [l1.id]

    clock.advance(hours=2)
    assert [l.id for l in service.thread(HER, l1.id).thread] == [l1.id, later.id]


def test_thread_survives_a_missing_parent(clock):
    store = InMemoryLetterStore()
    service = LetterService(store, clock)
    l1, l2, l3 = _conversation(service, clock)

    # a row removed behind the service's back
    del store._rows[l1.id]

    thread = service.thread(HER, l3.id)
    assert thread.root_id == l2.id
    assert [l.id for l in thread.thread] == [l2.id, l3.id]


def test_thread_walk_stops_on_a_reply_cycle(clock):
    store = InMemoryLetterStore()
    service = LetterService(store, clock)
    l1, l2, l3 = _conversation(service, clock)

    # l1 and l2 now reply to each other
    store._rows[l1.id].reply_to = l2.id

    expected = {l1.id, l2.id, l3.id}
    for start in (l1, l2, l3):
        thread = service.thread(HER, start.id)
        ids = [l.id for l in thread.thread]
        assert len(ids) == len(set(ids))
        assert set(ids) <= expected
        assert start.id in ids
        assert thread.root_id in expected
        assert thread.total_messages == len(ids)


def test_thread_of_unknown_letter(service):
    with pytest.raises(NotFoundError):
        service.thread(HIM, "no-such-letter")


def test_reply_rules(service, clock):
    mine = service.compose(HIM, "hello").letter
    with pytest.raises(ValidationError, match="your own letter"):
        service.compose(HIM, "talking to myself", reply_to=mine.id)
    with pytest.raises(ValidationError, match="does not exist"):
        service.compose(HER, "hm?", reply_to="missing")

    pending = service.compose(HIM, "later", scheduled_delivery_at=clock.now + timedelta(days=1)).letter
    with pytest.raises(ValidationError, match="does not exist"):
        service.compose(HER, "I can't see this yet", reply_to=pending.id)


def test_mark_read(service, clock):
    letter = service.compose(HER, "read me").letter
    clock.advance(minutes=3)

    with pytest.raises(PermissionDenied):
        service.mark_read(HER, letter.id)

    read = service.mark_read(HIM, letter.id)
    assert read.is_read
    assert read.read_at == clock.now

    # reading again keeps the first timestamp
    first_read = read.read_at
    clock.advance(minutes=3)
    assert service.mark_read(HIM, letter.id).read_at == first_read
    assert service.list_letters(HIM, box="inbox").unread_count == 0


def test_scheduled_letter_is_hidden_from_the_recipient(store, service, clock):
    pending = service.compose(HER, "later", scheduled_delivery_at=clock.now + timedelta(hours=1)).letter

    with pytest.raises(NotFoundError, match="Letter not found"):
        service.mark_read(HIM, pending.id)
    with pytest.raises(NotFoundError, match="Letter not found"):
        service.delete(HIM, pending.id)
    assert store.get(pending.id) is not None

    # the sender still gets the usual answers
    with pytest.raises(PermissionDenied):
        service.mark_read(HER, pending.id)
    service.delete(HER, pending.id)
    assert store.get(pending.id) is None


def test_delete_rules(store, service):
    letter = service.compose(HER, "oops").letter

    with pytest.raises(PermissionDenied):
        service.delete(HIM, letter.id)
    assert store.get(letter.id) is not None

    service.delete(HER, letter.id)
    assert store.get(letter.id) is None
    assert service.list_letters(HIM, box="inbox").letters == []

    with pytest.raises(NotFoundError):
        service.delete(HER, letter.id)


def test_letter_with_replies_cannot_be_deleted(service, clock):
    l1, l2, _ = _conversation(service, clock)
    with pytest.raises(ConflictError):
        service.delete(HER, l1.id)
    with pytest.raises(ConflictError):
        service.delete(HIM, l2.id)


def test_list_boxes_and_pagination(service, clock):
    for i in range(3):
        service.compose(HER, f"from her {i}")
        clock.advance(minutes=1)
    service.compose(HIM, "from him")
    clock.advance(minutes=1)

    inbox = service.list_letters(HIM, box="inbox", limit=2)
    assert inbox.total == 3
    assert inbox.has_more
    assert [l.content for l in inbox.letters] == ["from her 2", "from her 1"]
    assert all(not l.is_sent_by_current_user for l in inbox.letters)

    page2 = service.list_letters(HIM, box="inbox", limit=2, offset=2)
    assert [l.content for l in page2.letters] == ["from her 0"]
    assert not page2.has_more

    sent = service.list_letters(HIM, box="sent")
    assert [l.content for l in sent.letters] == ["from him"]
    assert sent.letters[0].sender_name == "Him"
    assert sent.letters[0].receiver_name == "Her"

    assert service.list_letters(HIM, box="all").total == 4

    with pytest.raises(ValidationError):
        service.list_letters(HIM, box="drafts")
    with pytest.raises(ValidationError):
        service.list_letters(HIM, limit=0)


def test_script_content_is_rejected(service):
    with pytest.raises(ValidationError):
        service.compose(HER, "<script>alert(1)</script>")
