from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator

from sqlalchemy.orm import Session

SessionScope = Callable[[], ContextManager[Session]]


@contextmanager
def _scope(session_factory: Callable[[], Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def session_scope_factory(session_factory: Callable[[], Session]) -> SessionScope:
    """Bind ``session_factory`` into a zero-argument commit/rollback scope."""

    def session_scope() -> ContextManager[Session]:
        return _scope(session_factory)

    return session_scope
