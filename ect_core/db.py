from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

from ect_core.config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str, **kwargs) -> Engine:
    eng = create_engine(url, **kwargs)
    if eng.dialect.name == "sqlite":
        _enable_sqlite_savepoints(eng)
    return eng


def _enable_sqlite_savepoints(eng: Engine) -> None:
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; take over transaction control
    @event.listens_for(eng, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = make_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker[Session](bind=engine, expire_on_commit=False)
