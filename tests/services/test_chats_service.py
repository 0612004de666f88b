import pytest

from nakama.errs import Error, ErrorKind
from nakama.models.chat import ParticipantStatus
from nakama.validator import ValidationErrors


def test_pending_chat_becomes_active_after_reply(service, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")

    chat = service.create_chat(bob.id, "hi", alice.id)
    assert chat.participation.status is ParticipantStatus.PENDING_SENDER
    assert chat.participation.other_user.username == "bob"
    assert service.chat(chat.id, bob.id).participation.status is ParticipantStatus.PENDING_RECEIVER

    with pytest.raises(Error) as excinfo:
        service.create_message(chat.id, "are you there?", alice.id)
    assert excinfo.value.kind is ErrorKind.PERMISSION_DENIED

    reply = service.create_message(chat.id, "hello", bob.id)
    assert reply.mine
    assert service.chat(chat.id, alice.id).participation.status is ParticipantStatus.ACTIVE
    assert service.chat(chat.id, bob.id).participation.status is ParticipantStatus.ACTIVE

    followup = service.create_message(chat.id, "great", alice.id)
    page = service.messages(chat.id, bob.id)
    assert [m.content for m in page.items] == ["great", "hello", "hi"]
    assert page.items[0].id == followup.id
    assert not page.items[0].mine


def test_mutual_followers_start_active(service, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    service.toggle_follow(bob.id, alice.id)
    service.wait_background(5)
    service.toggle_follow(alice.id, bob.id)
    service.wait_background(5)

    chat = service.create_chat(bob.id, "hi", alice.id)
    assert chat.participation.status is ParticipantStatus.ACTIVE
    service.create_message(chat.id, "still there?", alice.id)


def test_one_way_follow_is_still_pending(service, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    service.toggle_follow(bob.id, alice.id)
    service.wait_background(5)

    chat = service.create_chat(bob.id, "hi", alice.id)
    assert chat.participation.status is ParticipantStatus.PENDING_SENDER


def test_create_chat_errors(service, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    service.create_chat(bob.id, "hi", alice.id)

    with pytest.raises(Error) as excinfo:
        service.create_chat(bob.id, "again", alice.id)
    assert excinfo.value.kind is ErrorKind.ALREADY_EXISTS

    with pytest.raises(Error) as excinfo:
        service.create_chat(alice.id, "me", alice.id)
    assert excinfo.value.kind is ErrorKind.INVALID_ARGUMENT

    with pytest.raises(ValidationErrors) as excinfo:
        service.create_chat(bob.id, "   ", alice.id)
    assert "content" in excinfo.value.errors

    with pytest.raises(Error) as excinfo:
        service.create_chat(bob.id, "hi", None)
    assert excinfo.value.kind is ErrorKind.UNAUTHENTICATED


def test_unread_flag_follows_messages(service, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    chat = service.create_chat(bob.id, "hi", alice.id)

    assert not service.chat(chat.id, alice.id).participation.has_unread
    assert service.chat(chat.id, bob.id).participation.has_unread

    service.messages(chat.id, bob.id)
    assert not service.chat(chat.id, bob.id).participation.has_unread

    service.create_message(chat.id, "hello", bob.id)
    assert service.chat(chat.id, alice.id).participation.has_unread


def test_outsiders_cannot_read_or_write(service, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    mallory = make_user("mallory")
    chat = service.create_chat(bob.id, "hi", alice.id)

    for call in (
        lambda: service.messages(chat.id, mallory.id),
        lambda: service.chat(chat.id, mallory.id),
        lambda: service.create_message(chat.id, "let me in", mallory.id),
    ):
        with pytest.raises(Error) as excinfo:
            call()
        assert excinfo.value.kind is ErrorKind.NOT_FOUND


def test_chats_and_chat_from_participants(service, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    with_bob = service.create_chat(bob.id, "hi bob", alice.id)
    with_carol = service.create_chat(carol.id, "hi carol", alice.id)

    page = service.chats(alice.id)
    assert [c.id for c in page.items] == [with_carol.id, with_bob.id]
    assert service.chat_from_participants(bob.id, alice.id).id == with_bob.id
    assert service.chat_from_participants(alice.id, carol.id).id == with_carol.id

    with pytest.raises(Error) as excinfo:
        service.chat_from_participants(carol.id, bob.id)
    assert excinfo.value.kind is ErrorKind.NOT_FOUND
