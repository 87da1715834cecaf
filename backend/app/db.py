from __future__ import annotations

from pathlib import Path

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .core.config import Settings

Base = declarative_base()


def _ensure_sqlite_path(url: str) -> None:
    if not url.startswith("sqlite"):
        return

    parsed = make_url(url)
    database = parsed.database
    if not database or database == ":memory:":
        return

    path = Path(database)
    path.parent.mkdir(parents=True, exist_ok=True)


def create_db_engine(url: str, *, echo: bool = False, pool_size: int = 5) -> Engine:
    connect_args: dict[str, object] = {}
    engine_kwargs: dict[str, object] = {
        "echo": echo,
        "future": True,
        "pool_pre_ping": True,
    }

    parsed = make_url(url)
    backend = parsed.get_backend_name()

    if backend == "sqlite":
        connect_args["check_same_thread"] = False
        _ensure_sqlite_path(url)
    else:
        engine_kwargs["pool_size"] = pool_size
        engine_kwargs["max_overflow"] = 0
        # Connections sit idle between sync cycles.
        engine_kwargs["pool_recycle"] = 300

        if backend.startswith("postgresql"):
            connect_args.setdefault("keepalives", 1)
            connect_args.setdefault("keepalives_idle", 120)
            connect_args.setdefault("keepalives_interval", 30)
            connect_args.setdefault("keepalives_count", 5)

    if connect_args:
        engine_kwargs["connect_args"] = connect_args

    return create_engine(url, **engine_kwargs)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=True, autocommit=False, future=True)


def build_db_components(settings: Settings) -> tuple[Engine, sessionmaker[Session]]:
    engine = create_db_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=settings.database_pool_size,
    )
    return engine, create_session_factory(engine)


def init_db(engine: Engine, *, create_projection_tables: bool = False) -> None:
    """Create the block state table, seed the cursor row and optionally the projection tables.

    ``events`` and ``bets`` belong to the application that owns the betting
    data; they are only created here for local development and tests.
    """

    from . import models
    from .repositories import BlockStateRepository

    tables = [models.BlockStateTrunk.__table__]
    if create_projection_tables:
        tables.extend([models.EventRecord.__table__, models.BetRecord.__table__])
    Base.metadata.create_all(bind=engine, tables=tables)

    with Session(engine) as session:
        created = BlockStateRepository(session).ensure_initialized()
        session.commit()
    if created:
        logger.info("Initialized block state cursor at block 0")
