from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import Column, Integer, String, DateTime, Enum, JSON, Index, UniqueConstraint, text
from sqlalchemy.orm import declarative_base

from shared.enums import FormStatus, JobKind

Base = declarative_base()

# Global timezone configuration
# Uses zoneinfo for proper DST handling (AEST/AEDT)
APP_TIMEZONE = ZoneInfo('Australia/Sydney')


def now():
    """Return current datetime in application timezone (timezone-aware).

    Note: When stored in SQLite, timezone info is stripped (SQLite limitation).
    """
    return datetime.now(APP_TIMEZONE)


class CompletionFormRecord(Base):
    """Locally cached completion form, one row per (job, template) pair."""
    __tablename__ = 'completion_form_record'
    id = Column(Integer, primary_key=True, nullable=False)
    job_kind = Column(Enum(JobKind), default=JobKind.LOCAL, nullable=False, server_default=text("'LOCAL'"))
    job_id = Column(String(100), nullable=False, server_default="")
    template_id = Column(String(100), nullable=False, server_default="")
    tc_job_code = Column(String(100), server_default="")
    form_data = Column(JSON, default=dict)
    status = Column(Enum(FormStatus), default=FormStatus.DRAFT, nullable=False, server_default=text("'DRAFT'"))
    created_at = Column(DateTime, default=now)
    updated_at = Column(DateTime, default=now, onupdate=now)
    submitted_at = Column(DateTime)

    __table_args__ = (
        UniqueConstraint('job_kind', 'job_id', 'template_id', name='uq_form_record_job_template'),
    )

Index('idx_form_record_job', CompletionFormRecord.job_kind, CompletionFormRecord.job_id)
