"""Live form handler: TradieConnect-owned forms synced group by group."""
import logging

from shared.enums import FieldType, JobKind, PhotoSource, SyncStatus, UploadTarget
from ..fields import field_for
from .. import navigator
from ..services.live_sync import LiveSyncAdapter, SyncError
from ..services.image_service import (
    PhotoPipeline, PermissionDeniedError, UploadInProgressError, UploadError,
)


class LiveFormHandler:
    """Handles a TradieConnect live form session.

    TradieConnect owns the questions, answers and files; every sync sends the
    full answer map. Sync failures leave the answers untouched.
    """

    def __init__(self, app):
        self.app = app
        self.sync = None
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

    async def start(self, tc_job_id):
        """Fetch the live form and pre-fill whatever TradieConnect already holds."""
        self.state.reset_form_state()
        self.state.job_id = str(tc_job_id)
        self.state.job_kind = JobKind.TC_JOB
        self.state.template = None
        self.state.no_template = False
        self.state.submitted = False
        self.state.loading = True
        self.sync = LiveSyncAdapter(self.app.forms_api, self.state)

        try:
            definition = await self.sync.fetch_definition(tc_job_id)
        except SyncError as e:
            self.logger.error(f"Failed to load live form for TC job {tc_job_id}: {e}")
            self.state.report("Failed to load form from TradieConnect", str(e))
            return False
        finally:
            self.state.loading = False

        if not definition.template.groups:
            self.state.no_template = True
            self.state.report("No template selected")
            self.logger.warning(f"TC job {tc_job_id} has no form questions")
            return False

        self.state.template = definition.template
        self.store.prefill(definition.saved_answers, definition.saved_files)
        if definition.saved_answers or definition.saved_files:
            self.state.sync_status = SyncStatus.SYNCED

        self.photos = PhotoPipeline(
            self.store,
            self.app.forms_api,
            image_provider=self.app.image_provider,
            work_dir=self.app.config.photo_work_dir,
            quality=self.app.config.image_compression_quality,
            tc_rotation=self.app.config.tc_photo_rotation,
        )
        self.state.report(f"Loaded {definition.template.name or 'TC live form'}")
        return True

    def update_field(self, question_id, value):
        self.store.update_field(question_id, value)

    def set_widget_value(self, question_id, raw):
        """Store raw widget input as the question's canonical answer value."""
        if not self._ready():
            return None
        question = self.template.question(question_id)
        if question is None:
            raise ValueError(f"Unknown question {question_id}")
        value = field_for(question).normalize(raw)
        self.store.update_field(question_id, value)
        return value

    def current_views(self):
        group = navigator.current_group(self.state, self.template)
        if group is None:
            return []
        visible = self.store.visible_errors(self.template)
        return [
            field_for(q).render(self.store.value(q.id), visible.get(q.id), uploading=q.id in self.state.uploading)
            for q in group.questions
        ]

    def get_photo_url(self, question_id):
        return self.store.get_photo_url(question_id)

    def progress(self):
        return navigator.progress(self.state, self.template)

    def is_last_group(self):
        return navigator.is_last_group(self.state, self.template)

    def _ready(self):
        if self.state.no_template or self.template is None:
            self.state.report("No template selected")
            return False
        return True

    async def _sync(self, group_number=None, is_complete=False):
        outcome = await self.sync.sync_answers(
            self.state.job_id, self.state.answers, group_number=group_number, is_complete=is_complete
        )
        if outcome.stale:
            return outcome.success
        if outcome.outdated:
            self.state.report("Answers changed while syncing, not yet sent to TradieConnect")
            return False
        if outcome.success:
            self.state.dirty = False
            self.state.report("Answers synced to TradieConnect")
        else:
            self.state.report("Failed to sync answers to TradieConnect", outcome.error)
        return outcome.success

    async def save_and_sync(self):
        """Sync the full answer map, scoped to the current group."""
        if not self._ready():
            return False
        group = navigator.current_group(self.state, self.template)
        return await self._sync(group_number=group.csv_group_id)

    async def next(self):
        """Sync the group being left, then move on."""
        if not self._ready():
            return self.state.current_group_index
        group = navigator.current_group(self.state, self.template)
        await self._sync(group_number=group.csv_group_id)
        # A failed sync is reported but does not hold the user on this group
        navigator.next_group(self.state, self.template)
        self.store.validate(self.template)
        return self.state.current_group_index

    def previous(self):
        if not self._ready():
            return self.state.current_group_index
        navigator.previous_group(self.state, self.template)
        self.store.validate(self.template)
        return self.state.current_group_index

    async def submit(self):
        """Validate every group, then mark the form complete in TradieConnect."""
        if not self._ready():
            return False

        navigator.mark_all_visited(self.state, self.template)
        errors = self.store.validate(self.template)
        if errors:
            self.state.current_group_index = min(self.template.group_index_of(qid) for qid in errors)
            self.state.report(f"Please fix {len(errors)} answer(s) before submitting")
            return False

        success = await self._sync(is_complete=True)
        if success:
            self.state.submitted = True
            self.state.report("Form completed and synced to TradieConnect")
            self.logger.info(f"Live form for TC job {self.state.job_id} completed")
        return success

    async def capture_photo(self, question_id, source=PhotoSource.CAMERA):
        """Take or pick a photo and store it in TradieConnect file storage."""
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
                question_id, path, UploadTarget.EXTERNAL, self.state.job_id,
                multiple=question.allow_multiple,
            )
        except PermissionDeniedError as e:
            self.logger.warning(f"Photo permission denied: {e}")
            self.state.report("Camera permission is required to take photos", str(e))
            return None
        except (UploadInProgressError, UploadError) as e:
            self.logger.error(f"Failed to upload photo: {e}")
            self.state.report("Failed to upload photo", str(e))
            return None

        self.state.report("Photo uploaded successfully")
        return url
