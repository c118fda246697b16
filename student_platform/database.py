from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from student_platform.core import config


def _connect_args(database_url: str) -> dict:
    # SQLite connections are handed across FastAPI's threadpool workers.
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    config.DATABASE_URL,
    echo=config.DATABASE_ECHO,
    connect_args=_connect_args(config.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_indexes_checked = False

INDEX_STATEMENTS = {
    'messages': [
        'CREATE INDEX IF NOT EXISTS idx_messages_sender_timestamp ON messages(sender_id, timestamp)',
        'CREATE INDEX IF NOT EXISTS idx_messages_receiver_timestamp ON messages(receiver_id, timestamp)',
    ],
    'images': [
        'CREATE INDEX IF NOT EXISTS idx_images_user_sent_at ON images(user_id, sent_at)',
    ],
}


def ensure_indexes(bind: Engine | None = None) -> None:
    global _indexes_checked

    if _indexes_checked:
        return

    with _schema_lock:
        if _indexes_checked:
            return

        bind = bind or engine
        existing_tables = set(inspect(bind).get_table_names())

        with bind.begin() as connection:
            for table_name, statements in INDEX_STATEMENTS.items():
                if table_name not in existing_tables:
                    continue
                for statement in statements:
                    connection.execute(text(statement))

        _indexes_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
