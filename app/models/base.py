"""Database base configuration"""
from datetime import datetime, timezone

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import declarative_base, sessionmaker

from app.config import settings

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if "sqlite" in settings.database_url else {},
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def utcnow() -> datetime:
    """UTC 'now' as tz-naive datetime (consistent with GitHub parsing)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db():
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _ensure_issue_number_unique_index(bind):
    """
    Best-effort schema hardening:
    Databases created before the unique constraint existed may allow two local
    issues to point at the same GitHub issue. Add the index if it is missing.
    """
    with bind.begin() as conn:
        if bind.dialect.name == "sqlite":
            tables = {
                row[0]
                for row in conn.exec_driver_sql(
                    "SELECT name FROM sqlite_master WHERE type='table'"
                ).fetchall()
            }
            if "issues" not in tables:
                return

        sql = (
            "CREATE UNIQUE INDEX IF NOT EXISTS uq_issues_project_github_number "
            "ON issues(project_id, github_issue_number)"
        )
        try:
            conn.exec_driver_sql(sql)
        except Exception:
            # Some dialects may not support IF NOT EXISTS; try without it.
            try:
                conn.exec_driver_sql(sql.replace(" IF NOT EXISTS", ""))
            except Exception:
                # Index already present under the constraint name; nothing to do.
                pass


def _ensure_issue_push_pending_column(bind):
    """
    Schema upgrade:
    Databases created before push retries were tracked per issue lack
    `issues.github_push_pending`. Add it with a false default.
    """
    columns = {col["name"] for col in inspect(bind).get_columns("issues")}
    if "github_push_pending" in columns:
        return
    with bind.begin() as conn:
        conn.exec_driver_sql(
            "ALTER TABLE issues ADD COLUMN github_push_pending BOOLEAN NOT NULL DEFAULT FALSE"
        )


def init_db(bind=None):
    """Initialize database"""
    # Ensure all models are imported so SQLAlchemy metadata is populated.
    import app.models  # noqa: F401  (import for side-effects)

    bind = bind if bind is not None else engine
    Base.metadata.create_all(bind=bind)
    _ensure_issue_push_pending_column(bind)
    _ensure_issue_number_unique_index(bind)
