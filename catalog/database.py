# catalog/database.py
# ------------------------------------------------------------
# SQLAlchemy setup for the catalog store (attributes, products, enrichment jobs)
# - DATABASE_URL wins when set
# - Otherwise PostgreSQL from DB_* parts when DB_USER is configured
# - Otherwise a local SQLite file for development
# - Table creation happens in the FastAPI startup hook
# ------------------------------------------------------------
from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import declarative_base, sessionmaker
from decouple import config

DATABASE_URL = config("DATABASE_URL", default="")
DB_USER = config("DB_USER", default="")
DB_PASSWORD = config("DB_PASSWORD", default="")
DB_HOST = config("DB_HOST", default="localhost")
DB_PORT = config("DB_PORT", default=5432, cast=int)
DB_NAME = config("DB_NAME", default="catalog")

Base = declarative_base()


def build_database_url():
    if DATABASE_URL:
        return DATABASE_URL
    if DB_USER:
        return URL.create(
            drivername="postgresql+psycopg2",
            username=DB_USER,
            password=DB_PASSWORD,
            host=DB_HOST,
            port=DB_PORT,
            database=DB_NAME,
        )
    return "sqlite:///./catalog.db"


def make_engine(url=None, **kwargs):
    url = url or build_database_url()
    if str(url).startswith("sqlite"):
        # Background jobs run on Starlette's threadpool
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, **kwargs)


def make_session_factory(bind):
    return sessionmaker(bind=bind, autoflush=False, autocommit=False)


engine = make_engine()
SessionLocal = make_session_factory(engine)
