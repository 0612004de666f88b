import asyncio

import pytest

from nakama.errs import Error, ErrorKind
from nakama.services import CreatePost


@pytest.fixture()
def alice_and_followers(service, make_user):
    alice = make_user("alice")
    followers = [make_user(f"follower{n}") for n in range(3)]
    for follower in followers:
        service.toggle_follow(alice.id, follower.id)
        service.wait_background(5)
    return alice, followers


@pytest.mark.asyncio
async def test_new_post_fans_out_to_followers_and_author(service, make_user, alice_and_followers) -> None:
    alice, followers = alice_and_followers
    stranger = make_user("stranger")

    post = await service.create_post(CreatePost(content="hello friends"), alice.id)
    service.wait_background(5)

    for user in [alice, *followers]:
        items = service.timeline(user.id).items
        assert [item.post_id for item in items] == [post.id]
        assert items[0].post.content == "hello friends"
        assert items[0].post.mine is (user.id == alice.id)
    assert service.timeline(stranger.id).items == []


@pytest.mark.asyncio
async def test_timeline_is_newest_first(service, alice_and_followers) -> None:
    alice, [follower, *_] = alice_and_followers
    first = await service.create_post(CreatePost(content="one"), alice.id)
    service.wait_background(5)
    second = await service.create_post(CreatePost(content="two"), alice.id)
    service.wait_background(5)

    page = service.timeline(follower.id)
    assert [item.post_id for item in page.items] == [second.id, first.id]


@pytest.mark.asyncio
async def test_delete_timeline_item_only_hides_it_for_the_viewer(service, alice_and_followers) -> None:
    alice, [first, second, _] = alice_and_followers
    post = await service.create_post(CreatePost(content="hello"), alice.id)
    service.wait_background(5)
    [item] = service.timeline(first.id).items

    with pytest.raises(Error) as excinfo:
        service.delete_timeline_item(item.id, second.id)
    assert excinfo.value.kind is ErrorKind.NOT_FOUND

    service.delete_timeline_item(item.id, first.id)
    assert service.timeline(first.id).items == []
    assert [i.post_id for i in service.timeline(second.id).items] == [post.id]
    assert service.post(post.id).id == post.id

    with pytest.raises(Error) as excinfo:
        service.delete_timeline_item(item.id, first.id)
    assert excinfo.value.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_subscribers_receive_new_posts(service, alice_and_followers) -> None:
    alice, [follower, *_] = alice_and_followers

    async with service.subscribe_timeline(follower.id) as timeline, service.subscribe_posts() as posts:
        post = await service.create_post(CreatePost(content="live"), alice.id)
        service.wait_background(5)

        item = await asyncio.wait_for(anext(timeline), 1)
        assert item["post_id"] == post.id
        assert item["user_id"] == follower.id
        assert item["post"]["content"] == "live"

        published = await asyncio.wait_for(anext(posts), 1)
        assert published["id"] == post.id
        assert published["mine"] is False


def test_timeline_requires_login(service) -> None:
    with pytest.raises(Error) as excinfo:
        service.timeline(None)
    assert excinfo.value.kind is ErrorKind.UNAUTHENTICATED
