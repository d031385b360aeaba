from __future__ import annotations

import pytest

from relay_service.application.exceptions import InvalidPayloadError, UnknownEventError
from relay_service.domain.value_objects.enums import OutboundEvent
from relay_service.domain.value_objects.ids import ConnectionId
from tests.conftest import join, make_relay, of_event, recipients

A = ConnectionId("A")
B = ConnectionId("B")
EVERYONE = ["A", "B", "C"]


# -- join ------------------------------------------------------------------


def test_join_registers_and_broadcasts_presence(relay):
    directives = join(relay, "A", "k1", "  Alice  ")

    assert relay.registry.lookup(A).display_name == "Alice"
    assert len(directives) == 1
    assert directives[0].event == OutboundEvent.PRESENCE_USERS
    assert recipients(directives[0], EVERYONE) == EVERYONE


def test_join_rejects_blank_name(relay):
    with pytest.raises(InvalidPayloadError):
        join(relay, "A", "k1", "   ")
    assert len(relay.registry) == 0


def test_join_rejects_overlong_name():
    relay = make_relay(max_display_name_length=5)

    with pytest.raises(InvalidPayloadError):
        join(relay, "A", "k1", "Bartholomew")


def test_join_requires_device_key(relay):
    with pytest.raises(InvalidPayloadError):
        relay.router.route(A, "join", {"display_name": "Alice"})


def test_on_connect_sends_snapshot_to_newcomer_only(alice_and_bob):
    directives = alice_and_bob.router.on_connect(ConnectionId("C"))

    assert len(directives) == 1
    assert directives[0].to == "C"
    assert len(directives[0].data["users"]) == 2


# -- classification --------------------------------------------------------


def test_unknown_event_type(relay):
    with pytest.raises(UnknownEventError) as exc_info:
        relay.router.route(A, "teleport", {})
    assert exc_info.value.event_type == "teleport"


def test_malformed_payload(alice_and_bob):
    with pytest.raises(InvalidPayloadError):
        alice_and_bob.router.route(A, "dm.send", {"text": "no recipient"})


def test_ping_answers_pong_to_sender(relay):
    directives = relay.router.route(A, "ping", {})

    assert [(d.event, d.to) for d in directives] == [(OutboundEvent.PONG, "A")]


# -- broadcast chat --------------------------------------------------------


def test_broadcast_reaches_everyone_including_sender(alice_and_bob):
    directives = alice_and_bob.router.route(A, "message.send", {"text": "hello all"})

    assert len(directives) == 1
    message = directives[0]
    assert message.event == OutboundEvent.MESSAGE_CREATED
    assert recipients(message, EVERYONE) == EVERYONE
    assert message.data["text"] == "hello all"
    assert message.data["sender_name"] == "Alice"
    assert message.data["sender_device_key"] == "k1"
    assert message.data["avatar"] == alice_and_bob.registry.lookup(A).avatar.to_dict()
    assert message.data["timestamp"] == alice_and_bob.clock.now().isoformat()


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_broadcast_is_dropped(alice_and_bob, text):
    assert alice_and_bob.router.route(A, "message.send", {"text": text}) == []


def test_broadcast_from_unjoined_connection_is_dropped(alice_and_bob):
    assert alice_and_bob.router.route(ConnectionId("ghost"), "message.send", {"text": "hi"}) == []


def test_message_ids_are_unique_within_same_instant(alice_and_bob):
    ids = {
        alice_and_bob.router.route(A, "message.send", {"text": "x"})[0].data["id"]
        for _ in range(100)
    }

    assert len(ids) == 100


def test_avatar_is_snapshotted_at_send_time(alice_and_bob):
    before = alice_and_bob.router.route(A, "message.send", {"text": "x"})[0]
    join(alice_and_bob, "A", "k1", "Zed")

    assert before.data["avatar"]["initial"] == "A"
    assert before.data["sender_name"] == "Alice"


# -- direct messages -------------------------------------------------------


def test_dm_to_live_target_delivers_once_each_way(alice_and_bob):
    directives = alice_and_bob.router.route(A, "dm.send", {"to": "B", "text": "psst"})

    to_b = [d for d in directives if d.to == "B"]
    to_a = [d for d in directives if d.to == "A"]
    assert len(directives) == 2
    assert len(to_b) == 1 and len(to_a) == 1
    assert to_b[0].event == to_a[0].event == OutboundEvent.DM_CREATED
    assert to_b[0].data["from"] == "A"
    assert to_a[0].data["from"] == "B"
    assert to_b[0].data["message"] == to_a[0].data["message"]
    assert to_a[0].data["message"]["sender_device_key"] == "k1"
    assert "delivered" not in to_a[0].data


def test_dm_to_missing_target_only_echoes(alice_and_bob):
    directives = alice_and_bob.router.route(A, "dm.send", {"to": "nobody", "text": "hello?"})

    assert len(directives) == 1
    assert directives[0].to == "A"
    assert directives[0].data["from"] == "nobody"


@pytest.mark.parametrize("text", ["", "  "])
def test_blank_dm_is_dropped(alice_and_bob, text):
    assert alice_and_bob.router.route(A, "dm.send", {"to": "B", "text": text}) == []


def test_dm_from_unjoined_sender_is_dropped(alice_and_bob):
    assert alice_and_bob.router.route(ConnectionId("ghost"), "dm.send", {"to": "B", "text": "hi"}) == []


def test_dm_delivery_status_when_enabled():
    relay = make_relay(dm_delivery_status=True)
    join(relay, "A", "k1", "Alice")
    join(relay, "B", "k2", "Bob")

    ok = relay.router.route(A, "dm.send", {"to": "B", "text": "hi"})
    lost = relay.router.route(A, "dm.send", {"to": "gone", "text": "hi"})

    assert [d.data["delivered"] for d in ok if d.to == "A"] == [True]
    assert [d.data["delivered"] for d in lost] == [False]
    assert all("delivered" not in d.data for d in ok if d.to == "B")


# -- typing ----------------------------------------------------------------


def test_typing_on_then_off_broadcasts_twice_excluding_sender(alice_and_bob):
    on = alice_and_bob.router.route(A, "typing", {"is_typing": True})
    assert alice_and_bob.router.typing == {A}
    off = alice_and_bob.router.route(A, "typing", {"is_typing": False})

    for directives, flag in ((on, True), (off, False)):
        assert len(directives) == 1
        assert directives[0].event == OutboundEvent.USER_TYPING
        assert recipients(directives[0], EVERYONE) == ["B", "C"]
        assert directives[0].data == {"connection_id": "A", "display_name": "Alice", "is_typing": flag}
    assert alice_and_bob.router.typing == frozenset()


def test_repeated_typing_signals_are_idempotent(alice_and_bob):
    for _ in range(5):
        assert len(alice_and_bob.router.route(A, "typing", {"is_typing": True})) == 1
    assert alice_and_bob.router.typing == {A}

    for _ in range(3):
        alice_and_bob.router.route(A, "typing", {"is_typing": False})
    assert alice_and_bob.router.typing == frozenset()


def test_typing_from_unjoined_connection_is_ignored(relay):
    assert relay.router.route(A, "typing", {"is_typing": True}) == []
    assert relay.router.typing == frozenset()


def test_disconnect_while_typing_clears_indicator(alice_and_bob):
    alice_and_bob.router.route(A, "typing", {"is_typing": True})

    directives = alice_and_bob.router.on_disconnect(A)

    typing = of_event(directives, OutboundEvent.USER_TYPING)
    assert len(typing) == 1
    assert typing[0].data["is_typing"] is False
    assert typing[0].exclude == "A"
    assert alice_and_bob.router.typing == frozenset()
    assert len(of_event(directives, OutboundEvent.PRESENCE_USERS)) == 1


# -- call signaling --------------------------------------------------------


def test_call_offer_is_enriched_with_caller_name(alice_and_bob):
    directives = alice_and_bob.router.route(A, "call.offer", {"to": "B", "offer": {"sdp": "v=0"}})

    assert len(directives) == 1
    assert directives[0].to == "B"
    assert directives[0].data == {"from": "A", "from_name": "Alice", "offer": {"sdp": "v=0"}}


def test_call_offer_from_unjoined_connection_is_dropped(alice_and_bob):
    assert alice_and_bob.router.route(ConnectionId("ghost"), "call.offer", {"to": "B", "offer": {}}) == []


def test_disconnect_mid_call_notifies_peer(alice_and_bob):
    alice_and_bob.router.route(A, "call.offer", {"to": "B", "offer": {}})
    alice_and_bob.router.route(B, "call.answer", {"to": "A", "answer": {}})

    directives = alice_and_bob.router.on_disconnect(B)

    ended = of_event(directives, OutboundEvent.CALL_ENDED)
    assert len(ended) == 1
    assert ended[0].to == "A"
    assert ended[0].data == {"peer": "B", "reason": "disconnected"}
