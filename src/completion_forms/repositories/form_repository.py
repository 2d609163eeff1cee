"""Repository for completion form record CRUD operations."""
import logging

from shared.enums import FormStatus
from shared.models import CompletionFormRecord, now
from shared.schemas import FormRecord


class FormRepository:
    """Pure database CRUD operations for locally cached completion forms.

    Rows are handed out as FormRecord schemas so nothing outlives its session.
    """

    def __init__(self, session_factory):
        """Initialize repository with session factory."""
        self.session_factory = session_factory
        self.logger = logging.getLogger(self.__class__.__name__)

    def _get_session(self):
        """Get a database session."""
        return self.session_factory()

    @staticmethod
    def _query(session, job_kind, job_id, template_id=None):
        query = session.query(CompletionFormRecord).filter_by(job_kind=job_kind, job_id=str(job_id))
        if template_id is not None:
            query = query.filter_by(template_id=str(template_id))
        return query.order_by(CompletionFormRecord.updated_at.desc(), CompletionFormRecord.id.desc())

    def get_form(self, job_kind, job_id, template_id=None):
        """Get the form of a job, the most recently updated one when no template is given."""
        session = self._get_session()
        try:
            record = self._query(session, job_kind, job_id, template_id).first()
            return FormRecord.model_validate(record) if record else None
        finally:
            session.close()

    def save_form(self, job_kind, job_id, template_id, form_data, status=FormStatus.DRAFT, tc_job_code=None):
        """Insert or update the single record of a (job, template) pair."""
        session = self._get_session()
        try:
            record = self._query(session, job_kind, job_id, template_id).first()
            if record is None:
                record = CompletionFormRecord(
                    job_kind=job_kind,
                    job_id=str(job_id),
                    template_id=str(template_id),
                )
                session.add(record)
                self.logger.debug(f"Creating form record for {job_kind.value} job {job_id}")
            record.form_data = dict(form_data or {})
            record.status = status
            if tc_job_code is not None:
                record.tc_job_code = tc_job_code
            session.commit()
            session.refresh(record)
            return FormRecord.model_validate(record)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def set_status(self, job_kind, job_id, status, template_id=None):
        """Change the status of a job's form. Returns None when there is no form."""
        session = self._get_session()
        try:
            record = self._query(session, job_kind, job_id, template_id).first()
            if not record:
                return None
            record.status = status
            if status == FormStatus.SUBMITTED:
                record.submitted_at = now()
            session.commit()
            session.refresh(record)
            return FormRecord.model_validate(record)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
