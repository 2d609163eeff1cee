"""Completion form handler: draft editing of a job's form through a FormBackend."""
import asyncio
import logging

from shared.enums import FieldType, FormStatus, JobKind, PhotoSource, UploadTarget
from shared.schemas import FormRecord
from ..fields import field_for
from .. import navigator
from ..services.api_service import APIError
from ..services.form_backends import FormNotFoundError, FormAlreadySubmittedError
from ..services.image_service import (
    PhotoPipeline, PermissionDeniedError, UploadInProgressError, UploadError,
)


class CompletionFormHandler:
    """Handles one completion form session for a plain, TC or offline job.

    Network failures are reported through state.status_message and
    state.last_error; the answers stay as the user left them.
    """

    def __init__(self, app):
        self.app = app
        self.backend = None
        self.photos = None
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def state(self):
        return self.app.state

    @property
    def store(self):
        return self.app.store

    @property
    def template(self):
        return self.state.template

    def _ready(self):
        if self.template is None:
            self.state.report("No template selected")
            return False
        return True

    def _fail(self, message, error):
        self.logger.error(f"{message}: {error}")
        self.state.report(message, str(error))

    async def start(self, job_id, template_id=None, job_kind=JobKind.JOB, tc_job_code=None):
        """Open the job's form, creating an empty draft when a template is chosen.

        Returns True when the form is ready for editing.
        """
        self.state.reset_form_state()
        self.state.job_id = str(job_id)
        self.state.job_kind = job_kind
        self.state.tc_job_code = tc_job_code
        self.state.template = None
        self.state.form_id = None
        self.state.no_template = False
        self.state.submitted = False
        self.state.loading = True
        self.backend = self.app.backend_for(job_kind, tc_job_code)

        try:
            record = await self.backend.load_form(job_id)
            if record is not None:
                # The stored form decides which template it was started from
                template_id = record.template_id
            elif template_id:
                # Photo uploads need a stored form to attach to
                record = await self.backend.save_form(job_id, template_id, {}, FormStatus.DRAFT)
                record = record or FormRecord(template_id=str(template_id))
                self.logger.info(f"Created empty draft for job {job_id} from template {template_id}")
            else:
                self.state.no_template = True
                self.state.report("No template selected")
                self.logger.warning(f"Job {job_id} has no completion form and no template")
                return False

            template = await asyncio.to_thread(self.app.forms_api.get_template, template_id)
        except APIError as e:
            self._fail("Failed to load completion form", e.message)
            return False
        finally:
            self.state.loading = False

        self.state.template = template
        self.state.form_id = record.id
        self.state.submitted = record.status == FormStatus.SUBMITTED
        self.store.prefill(record.form_data)
        self.photos = PhotoPipeline(
            self.store,
            self.app.forms_api,
            backend=self.backend,
            image_provider=self.app.image_provider,
            work_dir=self.app.config.photo_work_dir,
            quality=self.app.config.image_compression_quality,
            tc_rotation=self.app.config.tc_photo_rotation,
        )
        self.state.report(f"Loaded {template.name or 'completion form'}")
        return True

    # Editing
    def update_field(self, question_id, value):
        self.store.update_field(question_id, value)

    def set_widget_value(self, question_id, raw):
        """Store raw widget input, e.g. a date from a picker, as the canonical answer value."""
        if not self._ready():
            return None
        question = self.template.question(question_id)
        if question is None:
            raise ValueError(f"Unknown question {question_id}")
        value = field_for(question).normalize(raw)
        self.store.update_field(question_id, value)
        return value

    def toggle_option(self, question_id, option=None):
        """Flip a checkbox, or add/remove one option of a multi-choice question."""
        if not self._ready():
            return None
        question = self.template.question(question_id)
        field = field_for(question)
        current = self.store.value(question_id)
        if question.field_type == FieldType.CHECKBOX:
            value = field.toggle(current)
        elif question.field_type == FieldType.MULTI_CHECKBOX:
            value = field.toggle(current, option)
        else:
            value = field.select(option)
        self.store.update_field(question_id, value)
        return value

    def current_views(self):
        """FieldViews of the current group, with the errors the user may see."""
        group = navigator.current_group(self.state, self.template)
        if group is None:
            return []
        visible = self.store.visible_errors(self.template)
        return [
            field_for(q).render(
                self.store.value(q.id),
                visible.get(q.id),
                uploading=q.id in self.state.uploading,
            )
            for q in group.questions
        ]

    # Navigation
    def next(self):
        if not self._ready():
            return self.state.current_group_index
        navigator.next_group(self.state, self.template)
        self.store.validate(self.template)
        return self.state.current_group_index

    def previous(self):
        if not self._ready():
            return self.state.current_group_index
        navigator.previous_group(self.state, self.template)
        self.store.validate(self.template)
        return self.state.current_group_index

    def progress(self):
        return navigator.progress(self.state, self.template)

    def is_last_group(self):
        return navigator.is_last_group(self.state, self.template)

    # Persistence
    async def save_draft(self):
        if not self._ready():
            return False
        if self.state.submitted:
            self.state.report("Form was already submitted")
            return False

        self.state.saving = True
        try:
            record = await self.backend.save_form(
                self.state.job_id, self.template.id, self.state.answers, FormStatus.DRAFT
            )
        except APIError as e:
            self._fail("Failed to save draft", e.message)
            return False
        finally:
            self.state.saving = False

        self.state.form_id = record.id if record else self.state.form_id
        self.state.dirty = False
        self.state.report("Draft saved")
        return True

    async def submit(self):
        """Validate every group, then save and submit. Nothing is sent while errors remain."""
        if not self._ready():
            return False

        if self.state.submitted:
            self.state.report("Form was already submitted")
            return False

        navigator.mark_all_visited(self.state, self.template)
        errors = self.store.validate(self.template)
        if errors:
            first = min(self.template.group_index_of(qid) for qid in errors)
            self.state.current_group_index = first
            self.state.report(f"Please fix {len(errors)} answer(s) before submitting")
            return False

        self.state.saving = True
        try:
            await self.backend.save_form(
                self.state.job_id, self.template.id, self.state.answers, FormStatus.DRAFT
            )
            await self.backend.submit_form(self.state.job_id)
        except FormAlreadySubmittedError as e:
            self.state.submitted = True
            self._fail("Form was already submitted", e)
            return False
        except FormNotFoundError as e:
            self._fail("Completion form not found", e)
            return False
        except APIError as e:
            self._fail("Failed to submit form", e.message)
            return False
        finally:
            self.state.saving = False

        self.state.submitted = True
        self.state.dirty = False
        self.state.report("Form submitted")
        self.logger.info(f"Completion form for job {self.state.job_id} submitted")
        return True

    # Photos
    async def capture_photo(self, question_id, source=PhotoSource.CAMERA):
        """Take or pick a photo for a file question and upload it.

        Returns the uploaded URL, or None when cancelled or failed.
        """
        if not self._ready():
            return None
        question = self.template.question(question_id)
        if question is None or question.field_type != FieldType.FILE:
            raise ValueError(f"Question {question_id} does not take photos")

        try:
            path = await self.photos.capture(source)
            if path is None:
                return None
            url = await self.photos.upload(
                question_id, path, UploadTarget.INTERNAL, self.state.job_id,
                multiple=question.allow_multiple,
            )
        except PermissionDeniedError as e:
            self.logger.warning(f"Photo permission denied: {e}")
            self.state.report("Camera permission is required to take photos", str(e))
            return None
        except (UploadInProgressError, UploadError) as e:
            self._fail("Failed to upload photo", e)
            return None

        self.state.report("Photo uploaded successfully")
        return url

    def remove_photo(self, question_id, url=None):
        self.store.remove_photo(question_id, url)

    def get_photo_url(self, question_id):
        return self.store.get_photo_url(question_id)
