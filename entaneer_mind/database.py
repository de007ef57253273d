from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from entaneer_mind.core import config


DATABASE_URL = config.DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_checked_tables: set[str] = set()

# Columns added after the first release; existing databases are patched in place.
USER_MIGRATIONS = [
    ('gender', 'ALTER TABLE users ADD COLUMN gender VARCHAR'),
    ('major', 'ALTER TABLE users ADD COLUMN major VARCHAR'),
    ('urgency_details', 'ALTER TABLE users ADD COLUMN urgency_details VARCHAR'),
    ('urgency_submitted_at', 'ALTER TABLE users ADD COLUMN urgency_submitted_at TIMESTAMP'),
]
USER_INDEXES = [
    'CREATE INDEX IF NOT EXISTS idx_users_role_status ON users(role, status)',
]

APPOINTMENT_MIGRATIONS = [
    ('notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR'),
    ('google_event_id', 'ALTER TABLE appointments ADD COLUMN google_event_id VARCHAR'),
]
APPOINTMENT_INDEXES = [
    'CREATE INDEX IF NOT EXISTS idx_appointments_client_status ON appointments(client_id, status)',
    'CREATE INDEX IF NOT EXISTS idx_appointments_counselor_date ON appointments(counselor_id, date)',
]

SCHEDULE_MIGRATIONS = [
    ('room', 'ALTER TABLE schedule_slots ADD COLUMN room VARCHAR'),
    ('client_name', 'ALTER TABLE schedule_slots ADD COLUMN client_name VARCHAR'),
]
SCHEDULE_INDEXES = [
    'CREATE INDEX IF NOT EXISTS idx_schedule_slots_week ON schedule_slots(counselor_id, week_start)',
    'CREATE INDEX IF NOT EXISTS idx_schedule_slots_open ON schedule_slots(week_start, available)',
]


def _ensure_table_schema(table_name: str, migration_steps: list[tuple[str, str]], indexes: list[str]) -> None:
    if table_name in _checked_tables:
        return

    with _schema_lock:
        if table_name in _checked_tables:
            return

        inspector = inspect(engine)

        if table_name not in inspector.get_table_names():
            _checked_tables.add(table_name)
            return

        existing_columns = {column['name'] for column in inspector.get_columns(table_name)}

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            for statement in indexes:
                connection.execute(text(statement))

        _checked_tables.add(table_name)


def ensure_user_schema() -> None:
    _ensure_table_schema('users', USER_MIGRATIONS, USER_INDEXES)


def ensure_appointment_schema() -> None:
    _ensure_table_schema('appointments', APPOINTMENT_MIGRATIONS, APPOINTMENT_INDEXES)


def ensure_schedule_schema() -> None:
    _ensure_table_schema('schedule_slots', SCHEDULE_MIGRATIONS, SCHEDULE_INDEXES)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
