"""Typed wrappers around the completion form endpoints."""
import logging
from functools import wraps

from shared.schemas import (
    Template, TemplateSummary, FormRecord, FormSaveRequest,
    SyncAnswersResponse, PhotoUploadResult,
)
from .api_service import APIError

TC_JOBS = '/integrations/tradieconnect/jobs'


def parses_response(func):
    """Report a 2xx body that is not JSON or not the expected shape as an APIError.

    JSON decoding and pydantic validation errors are both ValueErrors.
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            self.logger.error(f"Unexpected response to {func.__name__}: {e}")
            raise APIError(f"Unexpected response from server: {e}") from e

    return wrapper


class FormsAPI:
    """Blocking endpoint calls; every method raises APIError on failure.

    Callers on the event loop run these through asyncio.to_thread.
    """

    def __init__(self, api_service, upload_timeout=60):
        self.api = api_service
        self.upload_timeout = upload_timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    # Templates
    @parses_response
    def list_templates(self):
        body = self.api.get('/completion-forms/templates').json()
        return [TemplateSummary.model_validate(t) for t in body.get('templates') or []]

    @parses_response
    def get_template(self, template_id):
        body = self.api.get(f'/completion-forms/templates/{template_id}').json()
        # Some deployments wrap the template, most return it bare
        if 'template' in body and isinstance(body['template'], dict):
            body = body['template']
        return Template.model_validate(body)

    # Plain job forms
    @staticmethod
    def _form_or_none(body):
        form = body.get('form') if isinstance(body, dict) else None
        return FormRecord.model_validate(form) if form else None

    @parses_response
    def get_job_form(self, job_id):
        return self._form_or_none(self.api.get(f'/jobs/{job_id}/completion-form').json())

    @parses_response
    def save_job_form(self, job_id, request):
        body = self.api.post(f'/jobs/{job_id}/completion-form',
                             json=request.model_dump(exclude_none=True)).json()
        return self._form_or_none(body)

    @parses_response
    def submit_job_form(self, job_id):
        return self._form_or_none(self.api.put(f'/jobs/{job_id}/completion-form/submit').json())

    @parses_response
    def upload_job_photo(self, job_id, photo_path, question_id, caption=''):
        response = self.api.upload_photo(
            f'/jobs/{job_id}/photos', photo_path,
            data={'caption': caption, 'photoType': 'completion_form', 'question_id': question_id},
            timeout=self.upload_timeout,
        )
        return PhotoUploadResult.from_response(response.json(), question_id)

    # TradieConnect job forms, stored on our backend
    @parses_response
    def get_tc_form(self, tc_job_id):
        return self._form_or_none(self.api.get(f'{TC_JOBS}/{tc_job_id}/completion-form').json())

    @parses_response
    def save_tc_form(self, tc_job_id, request):
        body = self.api.post(f'{TC_JOBS}/{tc_job_id}/completion-form',
                             json=request.model_dump(exclude_none=True)).json()
        return self._form_or_none(body)

    @parses_response
    def submit_tc_form(self, tc_job_id):
        return self._form_or_none(self.api.put(f'{TC_JOBS}/{tc_job_id}/completion-form/submit').json())

    @parses_response
    def upload_tc_form_photo(self, tc_job_id, photo_path, question_id, caption=''):
        """Attach a photo to the job's stored form; the form must already exist."""
        response = self.api.upload_photo(
            f'{TC_JOBS}/{tc_job_id}/completion-form/photos', photo_path,
            data={'caption': caption, 'photo_type': 'completion_form', 'question_id': question_id},
            timeout=self.upload_timeout, field_name='file',
        )
        return PhotoUploadResult.from_response(response.json(), question_id)

    # TradieConnect live forms
    @parses_response
    def get_form_definition(self, tc_job_id):
        body = self.api.get(f'{TC_JOBS}/{tc_job_id}/form-definition').json()
        if not isinstance(body, dict):
            raise ValueError("form definition is not a JSON object")
        return body

    @parses_response
    def sync_answers(self, tc_job_id, request):
        body = self.api.post(f'{TC_JOBS}/{tc_job_id}/sync-answers', json=request.to_payload()).json()
        return SyncAnswersResponse.model_validate(body)

    @parses_response
    def upload_tc_live_photo(self, tc_job_id, photo_path, question_id):
        response = self.api.upload_photo(
            f'{TC_JOBS}/{tc_job_id}/photos', photo_path,
            data={'question_key': question_id},
            timeout=self.upload_timeout, field_name='file',
        )
        return PhotoUploadResult.from_response(response.json(), question_id)
