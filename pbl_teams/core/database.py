# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
SQLAlchemy engine singleton and table definitions.

Uniqueness constraints here are the authoritative guard for team membership:
member rows carry their team's (year, subject) so the database rejects a
second team claiming the same email or roll number in that scope.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from pbl_teams.core.config import settings
from pbl_teams.models.domain import (
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_ROLL_LENGTH,
    MAX_SECTION_LENGTH,
    MAX_TITLE_LENGTH,
)

metadata = MetaData()

years = Table(
    "years",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(MAX_NAME_LENGTH), nullable=False),
    Column("code", String(64), nullable=False, unique=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

subjects = Table(
    "subjects",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("year_id", String(36), ForeignKey("years.id"), nullable=False, index=True),
    Column("name", String(MAX_NAME_LENGTH), nullable=False),
    Column("code", String(64), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("year_id", "code", name="uq_subjects_year_code"),
)

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(MAX_NAME_LENGTH), nullable=False),
    Column("email", String(MAX_EMAIL_LENGTH), nullable=False, unique=True),
    Column("role", String(16), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

teams = Table(
    "teams",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("year_id", String(36), ForeignKey("years.id"), nullable=False, index=True),
    Column("subject_id", String(36), ForeignKey("subjects.id"), nullable=False, index=True),
    Column("team_name", String(MAX_NAME_LENGTH), nullable=False),
    Column("mentor_name", String(MAX_NAME_LENGTH), nullable=False, default=""),
    Column("mentor_email", String(MAX_EMAIL_LENGTH), nullable=False, default="", index=True),
    Column("created_by", String(36), ForeignKey("users.id"), nullable=False),
    Column("status", String(16), nullable=False, default="FINALIZED"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("year_id", "subject_id", "team_name", name="uq_teams_scope_name"),
)

team_members = Table(
    "team_members",
    metadata,
    Column("team_id", String(36), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
    Column("position", Integer, nullable=False),
    Column("year_id", String(36), nullable=False),
    Column("subject_id", String(36), nullable=False),
    Column("name", String(MAX_NAME_LENGTH), nullable=False),
    Column("email", String(MAX_EMAIL_LENGTH), nullable=False, index=True),
    Column("roll_number", String(MAX_ROLL_LENGTH), nullable=False),
    Column("section", String(MAX_SECTION_LENGTH), nullable=False, default=""),
    Column("role", String(16), nullable=False, default="member"),
    Column("score", Float, nullable=True),
    Column("remarks", Text, nullable=True),
    Column("graded_at", DateTime(timezone=True), nullable=True),
    Column("graded_by", String(MAX_EMAIL_LENGTH), nullable=True),
    PrimaryKeyConstraint("team_id", "position", name="pk_team_members"),
    UniqueConstraint("year_id", "subject_id", "email", name="uq_members_scope_email"),
    UniqueConstraint("year_id", "subject_id", "roll_number", name="uq_members_scope_roll"),
)

messages = Table(
    "messages",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("sender_id", String(36), ForeignKey("users.id"), nullable=False, index=True),
    Column("title", String(MAX_TITLE_LENGTH), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

message_teams = Table(
    "message_teams",
    metadata,
    Column("message_id", String(36), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False),
    Column("team_id", String(36), ForeignKey("teams.id"), nullable=False, index=True),
    PrimaryKeyConstraint("message_id", "team_id", name="pk_message_teams"),
)

settings_table = Table(
    "settings",
    metadata,
    Column("key", String(128), primary_key=True),
    Column("value", JSON, nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


def build_engine(url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if url.startswith("sqlite"):
        if url in ("sqlite://", "sqlite:///:memory:", "sqlite+pysqlite://"):
            return create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.POOL_SIZE,
        max_overflow=settings.MAX_OVERFLOW,
        pool_recycle=settings.POOL_RECYCLE,
    )


def init_schema(bind: Engine) -> None:
    metadata.create_all(bind)


def insert_for(conn: Connection, table: Table):
    """Dialect insert supporting ON CONFLICT clauses."""
    if conn.dialect.name == "postgresql":
        return postgresql.insert(table)
    if conn.dialect.name == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Upserts not supported on dialect '{conn.dialect.name}'")


engine = build_engine(settings.DATABASE_URL)
