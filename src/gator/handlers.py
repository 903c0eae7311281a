from __future__ import annotations

from typing import Callable, Optional

from .commands import Command, CommandRouter, Session, middleware_logged_in
from .errors import ArgumentError, NotFollowingError
from .scraper import Scraper, format_interval, parse_interval
from .store import User


def _expect_args(cmd: Command, count: int, usage: str) -> None:
    if len(cmd.arguments) != count or any(not a.strip() for a in cmd.arguments):
        raise ArgumentError(usage)


# -----------------------------
# Users
# -----------------------------

def handler_login(session: Session, cmd: Command) -> None:
    _expect_args(cmd, 1, "login <username>")
    user = session.store.get_user(cmd.arguments[0])
    session.config.set_current_user(user.name)
    print(f"Username set to {user.name}")


def handler_register(session: Session, cmd: Command) -> None:
    _expect_args(cmd, 1, "register <username>")
    user = session.store.create_user(cmd.arguments[0])
    print(f"User {user.name} created")
    session.config.set_current_user(user.name)
    print(f"Username set to {user.name}")


def handler_reset(session: Session, cmd: Command) -> None:
    _expect_args(cmd, 0, "reset")
    deleted = session.store.reset_users()
    print(f"Users table reset ({deleted} user(s) deleted)")


def handler_users(session: Session, cmd: Command) -> None:
    _expect_args(cmd, 0, "users")
    current = session.current_username
    for name in session.store.get_users():
        suffix = " (current)" if name == current else ""
        print(f"* {name}{suffix}")


# -----------------------------
# Feeds
# -----------------------------

def make_handler_agg(scraper_factory: Optional[Callable[[Session], Scraper]] = None):
    def handler_agg(session: Session, cmd: Command) -> None:
        _expect_args(cmd, 1, "agg <interval, e.g. 30s, 1m, 1h>")
        interval = parse_interval(cmd.arguments[0])

        if scraper_factory is not None:
            scraper = scraper_factory(session)
        else:
            scraper = Scraper(session.store)
            scraper.install_signal_handlers()

        print(f"Collecting feeds every {format_interval(interval)}")
        scraper.run(interval)

    return handler_agg


def handler_add_feed(session: Session, cmd: Command, user: User) -> None:
    _expect_args(cmd, 2, "addfeed <name> <url>")
    name, url = cmd.arguments
    feed = session.store.add_feed(name, url, user.id, follow=True)
    print(f"Added feed id={feed.id} name={feed.name} url={feed.url} user={user.name}")


def handler_feeds(session: Session, cmd: Command) -> None:
    _expect_args(cmd, 0, "feeds")
    feeds = session.store.get_feeds()
    if not feeds:
        print("No feeds registered.")
        return
    for f in feeds:
        print(f"{f.name}\t{f.url}\t{f.username}")


# -----------------------------
# Follows
# -----------------------------

def handler_follow(session: Session, cmd: Command, user: User) -> None:
    _expect_args(cmd, 1, "follow <url>")
    feed = session.store.get_feed_by_url(cmd.arguments[0])
    follow = session.store.create_feed_follow(user.id, feed.id)
    print(f"{follow.user_name} now follows {follow.feed_name}")


def handler_following(session: Session, cmd: Command, user: User) -> None:
    _expect_args(cmd, 0, "following")
    for name in session.store.get_feed_names_by_user(user.id):
        print(name)


def handler_unfollow(session: Session, cmd: Command, user: User) -> None:
    _expect_args(cmd, 1, "unfollow <url>")
    url = cmd.arguments[0]
    feed = session.store.get_feed_by_url(url)
    if session.store.remove_feed_follow(feed.id, user.id) == 0:
        raise NotFollowingError(user.name, url)
    print(f"{user.name} unfollowed {feed.name}")


def build_router(scraper_factory: Optional[Callable[[Session], Scraper]] = None) -> CommandRouter:
    router = CommandRouter()
    router.register("login", handler_login)
    router.register("register", handler_register)
    router.register("reset", handler_reset)
    router.register("users", handler_users)
    router.register("agg", make_handler_agg(scraper_factory))
    router.register("addfeed", middleware_logged_in(handler_add_feed))
    router.register("feeds", handler_feeds)
    router.register("follow", middleware_logged_in(handler_follow))
    router.register("following", middleware_logged_in(handler_following))
    router.register("unfollow", middleware_logged_in(handler_unfollow))
    return router
