from __future__ import annotations


class GatorError(Exception):
    """Base class for every error gator reports at the process boundary."""


class ConfigError(GatorError):
    pass


class ArgumentError(GatorError):
    def __init__(self, usage: str):
        super().__init__(f"usage: {usage}")
        self.usage = usage


class UnknownCommandError(GatorError):
    def __init__(self, name: str):
        super().__init__(f"unknown command: {name!r}")
        self.name = name


class UnknownUserError(GatorError):
    def __init__(self, name: str):
        super().__init__(f"user {name!r} does not exist")
        self.name = name


class UnknownFeedError(GatorError):
    def __init__(self, url: str):
        super().__init__(f"no feed registered for {url}")
        self.url = url


class NotFollowingError(GatorError):
    def __init__(self, username: str, url: str):
        super().__init__(f"{username} does not follow {url}")
        self.username = username
        self.url = url


# -----------------------------
# Store
# -----------------------------

class StoreError(GatorError):
    pass


class DuplicateUserError(StoreError):
    def __init__(self, name: str):
        super().__init__(f"user {name!r} already exists")
        self.name = name


class DuplicateFeedError(StoreError):
    def __init__(self, url: str):
        super().__init__(f"feed {url} already exists")
        self.url = url


class DuplicateFollowError(StoreError):
    def __init__(self, username: str, feed_name: str):
        super().__init__(f"{username} already follows {feed_name}")
        self.username = username
        self.feed_name = feed_name


class NoFeedsError(StoreError):
    def __init__(self) -> None:
        super().__init__("no feeds to fetch")


# -----------------------------
# Fetching / scheduling
# -----------------------------

class NetworkError(GatorError):
    pass


class ParseError(GatorError):
    pass


class InvalidIntervalError(GatorError):
    def __init__(self, value: object):
        super().__init__(f"invalid interval: {value!r}")
        self.value = value
