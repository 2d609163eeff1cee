"""Live synchronization of answers with TradieConnect."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError as SchemaError

from shared.enums import FieldType, SyncStatus
from shared.schemas import LiveFormDefinition, SyncAnswersRequest
from ..fields import field_for
from .api_service import APIError


class SyncError(Exception):
    """TradieConnect refused or could not provide the live form."""
    pass


@dataclass
class SyncOutcome:
    sequence: int
    success: bool
    error: Optional[str] = None
    stale: bool = False
    synced_answers: Optional[int] = None
    # Answers changed while the request was in flight, so it did not send them
    outdated: bool = False


class LiveSyncAdapter:
    """Sends answers to TradieConnect and tracks the session's sync status.

    The status lives on the session state so that editing an answer can drop
    it back to idle. Every sync takes a sequence number; only the newest call
    may change the status, older results are logged and ignored.
    """

    def __init__(self, forms_api, state):
        self.api = forms_api
        self.state = state
        self.template = None
        self.latest_sequence = 0
        self.last_error = None
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def status(self):
        return self.state.sync_status

    async def fetch_definition(self, tc_job_id):
        """Fetch the live form, its saved answers and its saved file URLs."""
        try:
            body = await asyncio.to_thread(self.api.get_form_definition, tc_job_id)
        except APIError as e:
            raise SyncError(e.message) from e

        if not body.get('success') or not body.get('form'):
            raise SyncError(body.get('error') or 'Failed to fetch form definition')

        try:
            definition = LiveFormDefinition.from_response(body)
        except (SchemaError, KeyError) as e:
            raise SyncError(f"Malformed form definition: {e}") from e

        self.template = definition.template
        self.logger.info(
            f"Loaded live form '{definition.template.name}' for TC job {tc_job_id}: "
            f"{len(definition.saved_answers)} saved answers, {len(definition.saved_files)} files"
        )
        return definition

    def photo_urls(self, answers):
        """{question_id: [url, ...]} for every answered file question."""
        if self.template is None:
            return None
        urls = {}
        for question in self.template.questions():
            if question.field_type != FieldType.FILE:
                continue
            question_urls = field_for(question).urls(answers.get(question.id))
            if question_urls:
                urls[question.id] = question_urls
        return urls or None

    async def sync_answers(self, tc_job_id, answers, group_number=None, is_complete=False):
        """Send the whole answer map, optionally scoped to one group.

        Failures set the error status and are never retried here.
        """
        self.latest_sequence += 1
        sequence = self.latest_sequence
        edit_version = self.state.edit_version
        self.state.sync_status = SyncStatus.SYNCING

        request = SyncAnswersRequest(
            answers=dict(answers),
            photo_urls=self.photo_urls(answers),
            group_no=group_number,
            is_complete=is_complete,
        )
        self.logger.info(f"Sync #{sequence} for TC job {tc_job_id} (group {group_number}, complete={is_complete})")

        try:
            response = await asyncio.to_thread(self.api.sync_answers, tc_job_id, request)
        except APIError as e:
            return self._finish(sequence, edit_version, False, e.message)

        if response.success:
            return self._finish(sequence, edit_version, True, synced_answers=response.synced_answers)
        return self._finish(sequence, edit_version, False, response.error or response.message or 'Failed to sync answers')

    def _finish(self, sequence, edit_version, success, error=None, synced_answers=None):
        if sequence != self.latest_sequence:
            self.logger.info(f"Discarding stale result of sync #{sequence} (latest is #{self.latest_sequence})")
            return SyncOutcome(sequence, success, error, stale=True, synced_answers=synced_answers)

        if success and edit_version != self.state.edit_version:
            # The edit already dropped the status back to idle; keep it there
            self.last_error = None
            self.logger.info(f"Sync #{sequence} succeeded but answers changed while it was in flight")
            return SyncOutcome(sequence, success, error, synced_answers=synced_answers, outdated=True)

        if success:
            self.state.sync_status = SyncStatus.SYNCED
            self.last_error = None
        else:
            self.state.sync_status = SyncStatus.ERROR
            self.last_error = error
            self.logger.error(f"Sync #{sequence} failed: {error}")
        return SyncOutcome(sequence, success, error, synced_answers=synced_answers)
