# gts/db.py
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base

# local key/value store and remote relational backend live in separate schemas
LocalBase = declarative_base()
RemoteBase = declarative_base()


def make_engine(url: str):
    connect_args = {}
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args=connect_args)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine, base):
    # import models so classes register to their Base
    import gts.models  # noqa: F401
    base.metadata.create_all(bind=engine)
