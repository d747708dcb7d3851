from sqlalchemy.engine import Engine
from sqlmodel import create_engine, Session, SQLModel
from ..core.config import settings


# Helper function to ensure URL format is correct
def get_db_url() -> str:
    url = settings.DATABASE_URL
    if not url:
        return "sqlite:///./todo.db"
    # The API runs on sync sessions; strip async drivers from copied URLs
    url = url.replace("+aiosqlite", "").replace("+asyncpg", "")
    return url.replace("postgres://", "postgresql://")


def build_engine(db_url: str, echo: bool = False, timeout: float = 10.0, **kwargs) -> Engine:
    # --- CONFIGURATION FOR SQLITE ---
    if db_url.startswith("sqlite"):
        # "timeout" bounds how long a connection waits on a locked database file
        return create_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": timeout},
            **kwargs,
        )

    # --- CONFIGURATION FOR POSTGRESQL (uses psycopg2-binary) ---
    return create_engine(
        db_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=timeout,
        connect_args={
            "connect_timeout": int(timeout),
            "options": f"-c statement_timeout={int(timeout * 1000)} -c lock_timeout={int(timeout * 1000)}",
        },
        **kwargs,
    )


engine = build_engine(get_db_url(), echo=settings.DB_ECHO, timeout=settings.DB_TIMEOUT_SECONDS)


def create_db_and_tables(bind: Engine = engine) -> None:
    # Import models so their tables are registered on the metadata
    from .. import models  # noqa: F401

    SQLModel.metadata.create_all(bind)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
