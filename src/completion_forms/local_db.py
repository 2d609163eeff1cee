import logging
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from shared.models import Base
from .repositories.form_repository import FormRepository


class LocalFormDatabase:
    """SQLite cache of completion form records, used when working offline."""

    def __init__(self, db_path='local_forms.db'):
        """Initialize the local database"""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.logger.info(f"Initializing LocalFormDatabase with path: {db_path}")

        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        # Sessions are opened from worker threads
        self.engine = create_engine(
            f'sqlite:///{self.db_path}',
            connect_args={'check_same_thread': False},
        )
        Base.metadata.create_all(self.engine)
        self.logger.info(f"SQLAlchemy engine created for database: {self.db_path}")

        self.Session = sessionmaker(bind=self.engine)
        self.repository = FormRepository(self.Session)

    def get_form(self, job_kind, job_id, template_id=None):
        return self.repository.get_form(job_kind, job_id, template_id)

    def save_form(self, job_kind, job_id, template_id, form_data, status, tc_job_code=None):
        return self.repository.save_form(job_kind, job_id, template_id, form_data, status, tc_job_code)

    def set_status(self, job_kind, job_id, status, template_id=None):
        return self.repository.set_status(job_kind, job_id, status, template_id)

    def close(self):
        """Dispose of the engine's pooled connections."""
        self.engine.dispose()
        self.logger.info("LocalFormDatabase closed")
