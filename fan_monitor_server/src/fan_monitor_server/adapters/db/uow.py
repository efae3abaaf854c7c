from contextlib import AbstractContextManager
from typing import Callable, Optional

from sqlalchemy.orm import Session

from fan_monitor_server.adapters.db.session import SessionLocal


class SqlAlchemyUoW(AbstractContextManager):
    def __init__(
        self,
        session: Session | None = None,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self._external = session is not None
        self._session = session
        self._session_factory = session_factory or SessionLocal

    @property
    def session(self) -> Session:
        # opened on first use so that building a UoW never touches the database
        if self._session is None:
            self._session = self._session_factory()
        return self._session

    def __enter__(self):
        return self

    def __exit__(self, exc_type, *_):
        if self._external or self._session is None:
            return
        try:
            if exc_type:
                self._session.rollback()
            else:
                self._session.commit()
        finally:
            self._session.close()
            self._session = None

    def history_repo(self):
        from fan_monitor_server.adapters.db.repository import SqlAlchemyHistoryRepository

        return SqlAlchemyHistoryRepository(self.session)
