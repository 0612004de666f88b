import threading

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.sql.dml import Insert

from nakama.errs import Error, ErrorKind
from nakama.models.notification import NotificationKind
from nakama.services import CreatePost


def test_follow_notifications_coalesce_until_read(service, make_user) -> None:
    dave = make_user("dave")
    carol = make_user("carol")
    eve = make_user("eve")
    frank = make_user("frank")

    service.toggle_follow(dave.id, carol.id)
    service.wait_background(5)
    [first] = service.notifications(dave.id).items
    assert first.kind is NotificationKind.FOLLOW
    assert first.actor_user_ids == [carol.id]

    service.toggle_follow(dave.id, eve.id)
    service.wait_background(5)
    [coalesced] = service.notifications(dave.id).items
    assert coalesced.id == first.id
    assert coalesced.actor_user_ids == [eve.id, carol.id]
    assert [actor.username for actor in coalesced.actors] == ["eve", "carol"]

    service.read_notification(first.id, dave.id)
    assert not service.has_unread_notifications(dave.id)

    service.toggle_follow(dave.id, frank.id)
    service.wait_background(5)
    latest, older = service.notifications(dave.id).items
    assert latest.id != first.id
    assert latest.actor_user_ids == [frank.id]
    assert latest.read_at is None
    assert older.read_at is not None
    assert service.has_unread_notifications(dave.id)


def test_refollow_does_not_repeat_the_actor(service, make_user) -> None:
    dave = make_user("dave")
    carol = make_user("carol")
    for _ in range(3):
        service.toggle_follow(dave.id, carol.id)
        service.wait_background(5)

    [notification] = service.notifications(dave.id).items
    assert notification.actor_user_ids == [carol.id]


def test_comment_notifications_move_repeat_actors_to_front(service, make_user, make_post) -> None:
    dave = make_user("dave")
    carol = make_user("carol")
    eve = make_user("eve")
    post_id = make_post(dave, "first post").id

    service.create_comment(post_id, "nice", carol.id)
    service.wait_background(5)
    service.create_comment(post_id, "agreed", eve.id)
    service.wait_background(5)
    service.create_comment(post_id, "thanks both", carol.id)
    service.wait_background(5)

    [for_dave] = service.notifications(dave.id).items
    assert for_dave.kind is NotificationKind.COMMENT
    assert for_dave.post_id == post_id
    assert for_dave.actor_user_ids == [carol.id, eve.id]

    [for_carol] = service.notifications(carol.id).items
    assert for_carol.actor_user_ids == [eve.id]
    assert service.notifications(eve.id).items[0].actor_user_ids == [carol.id]


@pytest.mark.asyncio
async def test_post_mentions_notify_each_user_once_per_post(service, make_user) -> None:
    author = make_user("author")
    dave = make_user("dave")

    await service.create_post(CreatePost(content="hey @dave and @Dave and @ghost and @author"), author.id)
    service.wait_background(5)
    await service.create_post(CreatePost(content="@dave again"), author.id)
    service.wait_background(5)

    items = service.notifications(dave.id).items
    assert [n.kind for n in items] == [NotificationKind.POST_MENTION] * 2
    assert len({n.post_id for n in items}) == 2
    assert all(n.actor_user_ids == [author.id] for n in items)
    assert service.notifications(author.id).items == []


def test_comment_mentions(service, make_user, make_post) -> None:
    author = make_user("author")
    dave = make_user("dave")
    post_id = make_post(author, "post").id

    service.create_comment(post_id, "cc @dave", author.id)
    service.wait_background(5)

    [mention] = service.notifications(dave.id).items
    assert mention.kind is NotificationKind.COMMENT_MENTION
    assert mention.post_id == post_id


def test_read_notification_of_someone_else_is_a_no_op(service, make_user) -> None:
    dave = make_user("dave")
    carol = make_user("carol")
    service.toggle_follow(dave.id, carol.id)
    service.wait_background(5)
    [notification] = service.notifications(dave.id).items

    service.read_notification(notification.id, carol.id)
    assert service.has_unread_notifications(dave.id)

    service.read_all_notifications(dave.id)
    assert not service.has_unread_notifications(dave.id)
    assert service.notifications(dave.id).items[0].read_at is not None


def test_inbox_requires_login(service) -> None:
    for call in (
        lambda: service.notifications(None),
        lambda: service.has_unread_notifications(None),
        lambda: service.read_all_notifications(None),
    ):
        with pytest.raises(Error) as excinfo:
            call()
        assert excinfo.value.kind is ErrorKind.UNAUTHENTICATED


@pytest.fixture()
def notification_inserts_in_lockstep(mocker):
    """Hold the first notification INSERT of each of two threads until both got there.

    Both writers have then looked for an unread row and found none.
    """
    barrier = threading.Barrier(2, timeout=5)
    held: set[int] = set()
    execute = Session.execute

    def lockstep_execute(session, statement, *args, **kwargs):
        if (
            isinstance(statement, Insert)
            and statement.table.name == "notifications"
            and threading.get_ident() not in held
        ):
            held.add(threading.get_ident())
            barrier.wait()
        return execute(session, statement, *args, **kwargs)

    mocker.patch.object(Session, "execute", autospec=True, side_effect=lockstep_execute)


def test_concurrent_follows_share_one_unread_notification(
    service, make_user, run_concurrently, notification_inserts_in_lockstep
) -> None:
    dave = make_user("dave")
    carol = make_user("carol")
    eve = make_user("eve")

    errors = run_concurrently(
        (service._notify_follow, dave.id, carol.id),
        (service._notify_follow, dave.id, eve.id),
    )

    assert errors == []
    [notification] = service.notifications(dave.id).items
    assert notification.kind is NotificationKind.FOLLOW
    assert sorted(notification.actor_user_ids) == sorted([carol.id, eve.id])


def test_concurrent_comments_share_one_unread_notification(
    service, make_user, make_post, run_concurrently, notification_inserts_in_lockstep
) -> None:
    dave = make_user("dave")
    carol = make_user("carol")
    eve = make_user("eve")
    post = make_post(dave)

    errors = run_concurrently(
        (service._notify_comment, post.id, carol.id),
        (service._notify_comment, post.id, eve.id),
    )

    assert errors == []
    [notification] = service.notifications(dave.id).items
    assert notification.kind is NotificationKind.COMMENT
    assert notification.post_id == post.id
    assert sorted(notification.actor_user_ids) == sorted([carol.id, eve.id])
