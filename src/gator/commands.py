from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from .config import SessionConfig
from .errors import UnknownCommandError
from .store import Store, User

logger = logging.getLogger("gator.commands")


@dataclass(frozen=True)
class Command:
    name: str
    arguments: List[str] = field(default_factory=list)


@dataclass
class Session:
    """Everything a handler needs for one CLI invocation."""

    config: SessionConfig
    store: Store

    @property
    def current_username(self) -> str:
        return self.config.config.current_user_name


Handler = Callable[[Session, Command], None]
UserHandler = Callable[[Session, Command, User], None]


def middleware_logged_in(handler: UserHandler) -> Handler:
    """
    Resolve the session's current user before calling handler.
    UnknownUserError from the lookup propagates and handler never runs.
    """

    @functools.wraps(handler)
    def wrapped(session: Session, cmd: Command) -> None:
        user = session.store.get_user(session.current_username)
        return handler(session, cmd, user)

    return wrapped


class CommandRouter:
    def __init__(self) -> None:
        self._handlers: Dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        self._handlers[name] = handler

    def names(self) -> List[str]:
        return sorted(self._handlers)

    def run(self, session: Session, cmd: Command) -> None:
        handler = self._handlers.get(cmd.name)
        if handler is None:
            raise UnknownCommandError(cmd.name)
        logger.debug("dispatching %s %s", cmd.name, cmd.arguments)
        handler(session, cmd)
