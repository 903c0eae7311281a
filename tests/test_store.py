from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from gator.errors import (
    DuplicateFeedError,
    DuplicateFollowError,
    DuplicateUserError,
    NoFeedsError,
    StoreError,
    UnknownFeedError,
    UnknownUserError,
)
from gator.store import FeedWithOwner, Store

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_create_and_get_user(store: Store) -> None:
    created = store.create_user("alice")
    fetched = store.get_user("alice")

    assert fetched == created
    assert store.get_users() == ["alice"]


def test_duplicate_user_rejected(store: Store) -> None:
    store.create_user("alice")
    with pytest.raises(DuplicateUserError):
        store.create_user("alice")
    assert store.get_users() == ["alice"]


def test_unknown_user(store: Store) -> None:
    with pytest.raises(UnknownUserError):
        store.get_user("nobody")


def test_feed_url_is_unique(store: Store) -> None:
    alice = store.create_user("alice")
    store.add_feed("Blog", "http://x/feed.xml", alice.id)
    with pytest.raises(DuplicateFeedError):
        store.add_feed("Other", "http://x/feed.xml", alice.id)


def test_get_feeds_includes_owner(store: Store) -> None:
    alice = store.create_user("alice")
    store.add_feed("Blog", "http://x/feed.xml", alice.id)

    assert store.get_feeds() == [FeedWithOwner("Blog", "http://x/feed.xml", "alice")]
    assert store.get_feed_by_url("http://x/feed.xml").name == "Blog"
    with pytest.raises(UnknownFeedError):
        store.get_feed_by_url("http://nope/")


def test_next_feed_empty_store(store: Store) -> None:
    with pytest.raises(NoFeedsError):
        store.next_feed_to_fetch()


def test_next_feed_prefers_never_fetched_then_oldest(store: Store) -> None:
    alice = store.create_user("alice")
    a = store.add_feed("A", "http://a/", alice.id)
    b = store.add_feed("B", "http://b/", alice.id)
    c = store.add_feed("C", "http://c/", alice.id)

    store.mark_feed_fetched(a.id, T0 + timedelta(minutes=5))
    store.mark_feed_fetched(b.id, T0)

    assert store.next_feed_to_fetch().id == c.id
    assert [f.id for f in store.feeds_to_fetch()] == [c.id, b.id, a.id]


def test_ties_broken_by_id(store: Store) -> None:
    alice = store.create_user("alice")
    a = store.add_feed("A", "http://a/", alice.id)
    store.add_feed("B", "http://b/", alice.id)

    assert store.next_feed_to_fetch().id == a.id


def test_round_robin_under_monotonic_marking(store: Store) -> None:
    alice = store.create_user("alice")
    ids = [store.add_feed(n, f"http://{n}/", alice.id).id for n in "abcd"]

    picked = []
    for i in range(8):
        feed = store.next_feed_to_fetch()
        picked.append(feed.id)
        store.mark_feed_fetched(feed.id, T0 + timedelta(seconds=i))

    assert picked == ids + ids


def test_mark_fetched_never_moves_backwards(store: Store) -> None:
    alice = store.create_user("alice")
    feed = store.add_feed("A", "http://a/", alice.id)

    store.mark_feed_fetched(feed.id, T0 + timedelta(hours=1))
    store.mark_feed_fetched(feed.id, T0)

    stored = store.get_feed_by_url("http://a/").last_fetched_at
    assert stored is not None
    assert datetime.fromisoformat(stored) == T0 + timedelta(hours=1)


def test_follow_is_unique_per_user_and_feed(store: Store) -> None:
    alice = store.create_user("alice")
    feed = store.add_feed("Blog", "http://x/feed.xml", alice.id)

    follow = store.create_feed_follow(alice.id, feed.id)
    assert (follow.user_name, follow.feed_name) == ("alice", "Blog")

    with pytest.raises(DuplicateFollowError):
        store.create_feed_follow(alice.id, feed.id)
    assert store.get_feed_names_by_user(alice.id) == ["Blog"]


def test_remove_follow(store: Store) -> None:
    alice = store.create_user("alice")
    feed = store.add_feed("Blog", "http://x/feed.xml", alice.id)
    store.create_feed_follow(alice.id, feed.id)

    assert store.remove_feed_follow(feed.id, alice.id) == 1
    assert store.remove_feed_follow(feed.id, alice.id) == 0
    assert store.get_feed_names_by_user(alice.id) == []


def test_reset_cascades_to_feeds_and_follows(store: Store) -> None:
    alice = store.create_user("alice")
    feed = store.add_feed("Blog", "http://x/feed.xml", alice.id)
    store.create_feed_follow(alice.id, feed.id)

    assert store.reset_users() == 1
    assert store.get_users() == []
    assert store.get_feeds() == []
    with pytest.raises(NoFeedsError):
        store.next_feed_to_fetch()


def test_add_feed_with_follow(store: Store) -> None:
    alice = store.create_user("alice")
    store.add_feed("Blog", "http://x/feed.xml", alice.id, follow=True)

    assert store.get_feed_names_by_user(alice.id) == ["Blog"]


def test_add_feed_with_follow_is_atomic(store: Store) -> None:
    alice = store.create_user("alice")
    with store._conn() as conn:
        conn.execute(
            """
            CREATE TRIGGER refuse_follows BEFORE INSERT ON feed_follows
            BEGIN SELECT RAISE(ABORT, 'follows disabled'); END
            """
        )

    with pytest.raises(StoreError):
        store.add_feed("Blog", "http://x/feed.xml", alice.id, follow=True)
    assert store.get_feeds() == []


def test_blank_names_are_store_errors(store: Store) -> None:
    with pytest.raises(StoreError):
        store.create_user("  ")
    alice = store.create_user("alice")
    with pytest.raises(StoreError):
        store.add_feed("Blog", " ", alice.id)
