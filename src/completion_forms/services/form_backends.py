"""Draft persistence: one FormBackend contract, one implementation per job kind.

The backend is picked once per session from the kind of job the form belongs
to. All operations are coroutines; blocking work runs in a worker thread.
"""
import asyncio
import logging
import os
import shutil
from pathlib import Path

from shared.enums import FormStatus, JobKind
from shared.schemas import FormSaveRequest, PhotoUploadResult
from shared.utils import compute_photo_hash
from .api_service import APIError


class FormNotFoundError(Exception):
    """No completion form exists for the job."""
    pass


class FormAlreadySubmittedError(Exception):
    """The form was submitted before and cannot be submitted again."""
    pass


class PreconditionError(Exception):
    """An operation needs a saved form first, e.g. a photo upload on a brand new form."""
    pass


class FormBackend:
    """Load, save and submit the completion form of one job, and attach photos to it."""

    job_kind = None

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    async def load_form(self, job_id):
        """Return the job's FormRecord, or None when it has none yet."""
        raise NotImplementedError

    async def save_form(self, job_id, template_id, answers, status=FormStatus.DRAFT):
        """Create or update the job's form and return the stored FormRecord."""
        raise NotImplementedError

    async def submit_form(self, job_id):
        """Move the job's form from draft to submitted."""
        record = await self.load_form(job_id)
        if record is None:
            raise FormNotFoundError(f"No completion form for job {job_id}")
        if record.status == FormStatus.SUBMITTED:
            raise FormAlreadySubmittedError(f"Completion form for job {job_id} was already submitted")
        return await self._submit(job_id, record)

    async def _submit(self, job_id, record):
        raise NotImplementedError

    async def upload_photo(self, job_id, question_id, path):
        """Store a photo for a file question, returning its PhotoUploadResult."""
        raise NotImplementedError


class JobFormBackend(FormBackend):
    """Forms of plain jobs, stored by our backend."""

    job_kind = JobKind.JOB

    def __init__(self, forms_api):
        super().__init__()
        self.api = forms_api

    async def load_form(self, job_id):
        return await asyncio.to_thread(self.api.get_job_form, job_id)

    async def save_form(self, job_id, template_id, answers, status=FormStatus.DRAFT):
        request = FormSaveRequest(template_id=str(template_id), form_data=dict(answers), status=status)
        record = await asyncio.to_thread(self.api.save_job_form, job_id, request)
        self.logger.info(f"Saved {status.value} form for job {job_id}")
        return record

    async def _submit(self, job_id, record):
        submitted = await asyncio.to_thread(self.api.submit_job_form, job_id)
        self.logger.info(f"Submitted form for job {job_id}")
        return submitted or record.model_copy(update={'status': FormStatus.SUBMITTED})

    async def upload_photo(self, job_id, question_id, path):
        return await asyncio.to_thread(self.api.upload_job_photo, job_id, path, question_id)


class TCJobFormBackend(FormBackend):
    """Forms of TradieConnect jobs, stored by our backend under the TC job id."""

    job_kind = JobKind.TC_JOB

    def __init__(self, forms_api, tc_job_code=None):
        super().__init__()
        self.api = forms_api
        self.tc_job_code = tc_job_code

    async def load_form(self, job_id):
        return await asyncio.to_thread(self.api.get_tc_form, job_id)

    async def save_form(self, job_id, template_id, answers, status=FormStatus.DRAFT):
        request = FormSaveRequest(
            template_id=str(template_id),
            form_data=dict(answers),
            status=status,
            tc_job_code=self.tc_job_code,
        )
        record = await asyncio.to_thread(self.api.save_tc_form, job_id, request)
        self.logger.info(f"Saved {status.value} form for TC job {job_id}")
        return record

    async def _submit(self, job_id, record):
        submitted = await asyncio.to_thread(self.api.submit_tc_form, job_id)
        self.logger.info(f"Submitted form for TC job {job_id}")
        return submitted or record.model_copy(update={'status': FormStatus.SUBMITTED})

    async def upload_photo(self, job_id, question_id, path):
        try:
            return await asyncio.to_thread(self.api.upload_tc_form_photo, job_id, path, question_id)
        except APIError as e:
            # The endpoint refuses photos for a job without a stored form
            if e.status_code == 404:
                raise PreconditionError(f"TC job {job_id} has no saved form to attach photos to") from e
            raise


class LocalFormBackend(FormBackend):
    """Forms kept in the on-device SQLite cache.

    Photos are copied into the cache's photo directory under their content hash.
    """

    def __init__(self, local_db, photos_dir, job_kind=JobKind.LOCAL, tc_job_code=None):
        super().__init__()
        self.db = local_db
        self.job_kind = job_kind
        self.tc_job_code = tc_job_code
        self.photos_dir = Path(photos_dir)
        self.photos_dir.mkdir(parents=True, exist_ok=True)

    async def load_form(self, job_id):
        return await asyncio.to_thread(self.db.get_form, self.job_kind, job_id)

    async def save_form(self, job_id, template_id, answers, status=FormStatus.DRAFT):
        record = await asyncio.to_thread(
            self.db.save_form, self.job_kind, job_id, template_id, answers, status, self.tc_job_code
        )
        self.logger.debug(f"Cached {status.value} form {record.id} for job {job_id}")
        return record

    async def _submit(self, job_id, record):
        return await asyncio.to_thread(
            self.db.set_status, self.job_kind, job_id, FormStatus.SUBMITTED, record.template_id
        )

    def _store_photo(self, path):
        photo_hash = compute_photo_hash(path)
        target = self.photos_dir / f"{photo_hash}{os.path.splitext(path)[1] or '.jpg'}"
        if not target.exists():
            shutil.copyfile(path, target)
        return target.resolve().as_uri()

    async def upload_photo(self, job_id, question_id, path):
        record = await self.load_form(job_id)
        if record is None:
            raise PreconditionError(f"Job {job_id} has no saved form to attach photos to")
        url = await asyncio.to_thread(self._store_photo, path)
        self.logger.info(f"Stored photo for question {question_id} of job {job_id}")
        return PhotoUploadResult(url=url, question_id=question_id)
