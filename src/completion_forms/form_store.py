"""Form state store: answers, errors and dirtiness for one session."""
import logging

from shared.enums import SyncStatus
from shared.validation import Validator, ValidationError
from .fields import field_for


class FormStateStore:
    """Owns the answer map of a FormSessionState.

    Writes are stored exactly as given; shape problems are reported by
    validate() and never coerced away.
    """

    def __init__(self, state):
        self.state = state
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def answers(self):
        return self.state.answers

    def value(self, question_id, default=None):
        return self.state.answers.get(question_id, default)

    def _touch(self, question_id):
        self.state.errors.pop(question_id, None)
        self.state.dirty = True
        self.state.edit_version += 1
        if self.state.sync_status != SyncStatus.IDLE:
            self.state.sync_status = SyncStatus.IDLE

    def update_field(self, question_id, value):
        """Replace one answer and clear that question's error."""
        self.state.answers[question_id] = value
        self._touch(question_id)

    def validate(self, template, answers=None):
        """Check every question of the template, returning {question_id: reason}.

        Also stored as the session's current error map.
        """
        answers = self.state.answers if answers is None else answers
        errors = {}
        for question in template.questions():
            value = answers.get(question.id)
            try:
                if question.is_required:
                    Validator.validate_required(value, question.question_text or question.id)
                if Validator.is_empty(value):
                    continue
                field_for(question).check(value)
            except ValidationError as e:
                errors[question.id] = e.reason
        self.state.errors = errors
        if errors:
            self.logger.debug(f"Validation found {len(errors)} problem(s): {errors}")
        return errors

    def visible_errors(self, template):
        """Errors for groups the user has already left or that a submit attempt revealed."""
        visible = {}
        for question_id, reason in self.state.errors.items():
            if template.group_index_of(question_id) in self.state.visited_groups:
                visible[question_id] = reason
        return visible

    def reset(self):
        self.state.reset_form_state()

    def prefill(self, answers, files=None):
        """Load previously saved answers without marking the session dirty."""
        self.state.answers.update(answers or {})
        self.state.saved_files.update(files or {})
        self.state.errors = {}
        self.state.dirty = False

    def bind_photo(self, question_id, url, multiple=False):
        """Record an uploaded photo URL as the question's answer."""
        self.state.local_photos[question_id] = url
        if multiple:
            current = self.state.answers.get(question_id)
            if isinstance(current, list):
                urls = list(current)
            elif current:
                urls = [current]
            else:
                urls = []
            urls.append(url)
            self.state.answers[question_id] = urls
        else:
            self.state.answers[question_id] = url
        self._touch(question_id)

    def remove_photo(self, question_id, url=None):
        """Remove one URL of a multi-photo answer, or the whole photo answer."""
        current = self.state.answers.get(question_id)
        if url is not None and isinstance(current, list) and len(current) > 1:
            remaining = [u for u in current if u != url]
            self.state.answers[question_id] = remaining
            if self.state.local_photos.get(question_id) == url:
                self.state.local_photos[question_id] = remaining[-1]
        else:
            self.state.answers.pop(question_id, None)
            self.state.local_photos.pop(question_id, None)
            self.state.saved_files.pop(question_id, None)
        self._touch(question_id)

    def get_photo_url(self, question_id):
        """Freshly uploaded photo first, then the one TradieConnect already had."""
        return self.state.local_photos.get(question_id) or self.state.saved_files.get(question_id)
