"""
Database setup and the activity working set
"""

from typing import List, Optional

from loguru import logger
from sqlalchemy import create_engine, Column, Integer, String, Boolean
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL
from models import ActivityRecord, ActivityStatus


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # Single shared connection so every session sees the same in-memory data
        options["poolclass"] = StaticPool
    return options


# Create engine and session
engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class ActivityDB(Base):
    """Database model for activities awaiting approval"""
    __tablename__ = "activities"

    id = Column(String, primary_key=True, index=True)
    position = Column(Integer, index=True)  # load order of the working set
    worker_id = Column(String, index=True)
    worker_name = Column(String)
    plot_id = Column(String, index=True)
    plot_name = Column(String)
    activity_type = Column(String)
    enter_time = Column(String, nullable=True)  # ISO strings, kept verbatim
    exit_time = Column(String, nullable=True)
    duration = Column(Integer, nullable=True)  # minutes
    status = Column(String, default=ActivityStatus.NEW.value)
    note = Column(String, nullable=True)
    has_missing_exit = Column(Boolean, default=False)
    created_at = Column(String, nullable=True)
    updated_at = Column(String, nullable=True)


def to_record(row: ActivityDB) -> ActivityRecord:
    return ActivityRecord(
        id=row.id,
        worker_id=row.worker_id,
        worker_name=row.worker_name,
        plot_id=row.plot_id,
        plot_name=row.plot_name,
        activity_type=row.activity_type,
        enter_time=row.enter_time,
        exit_time=row.exit_time,
        duration=row.duration,
        status=ActivityStatus(row.status),
        note=row.note,
        has_missing_exit=bool(row.has_missing_exit),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def to_row(record: ActivityRecord, position: int) -> ActivityDB:
    return ActivityDB(
        id=record.id,
        position=position,
        worker_id=record.worker_id,
        worker_name=record.worker_name,
        plot_id=record.plot_id,
        plot_name=record.plot_name,
        activity_type=record.activity_type,
        enter_time=record.enter_time,
        exit_time=record.exit_time,
        duration=record.duration,
        status=record.status.value,
        note=record.note,
        has_missing_exit=record.has_missing_exit,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def load_activities(db: Session) -> List[ActivityRecord]:
    """All activities of the working set, in load order"""
    rows = db.query(ActivityDB).order_by(ActivityDB.position.asc()).all()
    return [to_record(r) for r in rows]


def get_activity(db: Session, activity_id: str) -> Optional[ActivityRecord]:
    row = db.query(ActivityDB).filter(ActivityDB.id == activity_id).first()
    return to_record(row) if row else None


def replace_activities(db: Session, records: List[ActivityRecord]) -> int:
    """Replace the whole working set"""
    try:
        db.query(ActivityDB).delete()
        db.add_all(to_row(record, position) for position, record in enumerate(records))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Working set replaced with {len(records)} activities")
    return len(records)


def save_activities(db: Session, records: List[ActivityRecord]) -> int:
    """Persist changed activities in a single commit"""
    if not records:
        return 0
    saved = 0
    try:
        for record in records:
            row = db.query(ActivityDB).filter(ActivityDB.id == record.id).first()
            if row is None:
                continue
            saved += 1
            row.activity_type = record.activity_type
            row.status = record.status.value
            row.note = record.note
            row.updated_at = record.updated_at
        db.commit()
    except Exception:
        db.rollback()
        raise
    return saved


def init_db():
    """Initialize the database - create all tables"""
    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized successfully")


def get_db():
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


if __name__ == "__main__":
    # Run this file directly to initialize the database
    init_db()
