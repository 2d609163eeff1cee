"""Scenario tests for the completion form and live form handlers."""
import asyncio
import threading
from unittest.mock import Mock, AsyncMock

import pytest

from shared.enums import FormStatus, JobKind, PhotoSource, SyncStatus
from shared.schemas import FormRecord, PhotoUploadResult, SyncAnswersResponse
from src.completion_forms.app import FormApp
from src.completion_forms.services.api_service import APIError
from src.completion_forms.services.form_backends import JobFormBackend, TCJobFormBackend, LocalFormBackend
from src.completion_forms.fields import FieldView


@pytest.fixture
def provider(image_path):
    provider = Mock()
    provider.request_permission = AsyncMock(return_value=True)
    provider.pick_image = AsyncMock(return_value=image_path)
    return provider


@pytest.fixture
def app(config, forms_api, test_db, provider):
    app = FormApp(config=config, forms_api=forms_api, local_db=test_db, image_provider=provider)
    yield app


@pytest.fixture
def handler(app):
    return app.completion_form_handler


@pytest.fixture
def live(app):
    return app.live_form_handler


def start_new_job_form(handler, forms_api, template):
    forms_api.get_job_form.return_value = None
    forms_api.save_job_form.return_value = FormRecord(id='55', template_id='t1', job_id='job-1')
    forms_api.get_template.return_value = template
    assert asyncio.run(handler.start('job-1', template_id='t1'))


def test_backend_selection(app):
    assert isinstance(app.backend_for(JobKind.JOB), JobFormBackend)
    tc = app.backend_for(JobKind.TC_JOB, tc_job_code='TC-5')
    assert isinstance(tc, TCJobFormBackend)
    assert tc.tc_job_code == 'TC-5'
    assert isinstance(app.backend_for(JobKind.LOCAL), LocalFormBackend)


class TestCompletionFormHandler:

    def test_new_form_saves_empty_draft_first(self, handler, forms_api, template, app):
        start_new_job_form(handler, forms_api, template)

        job_id, request = forms_api.save_job_form.call_args[0]
        assert job_id == 'job-1'
        assert request.form_data == {}
        assert request.status == 'draft'
        forms_api.get_template.assert_called_once_with('t1')
        assert app.state.form_id == '55'
        assert app.state.dirty is False

    def test_existing_form_template_wins(self, handler, forms_api, template, app):
        forms_api.get_job_form.return_value = FormRecord(
            id='8', template_id='t1', form_data={'q1': 'Sam'}, status=FormStatus.DRAFT)
        forms_api.get_template.return_value = template

        assert asyncio.run(handler.start('job-1', template_id='other'))

        forms_api.get_template.assert_called_once_with('t1')
        forms_api.save_job_form.assert_not_called()
        assert app.store.value('q1') == 'Sam'
        assert app.state.dirty is False

    def test_required_question_blocks_submit(self, handler, forms_api, template, app):
        """Required q1 left empty, move to group 2, submit: q1 reported, nothing submitted."""
        start_new_job_form(handler, forms_api, template)

        assert handler.next() == 1
        assert handler.is_last_group()
        assert handler.progress() == 1.0
        assert asyncio.run(handler.submit()) is False

        assert app.state.errors == {'q1': 'required'}
        assert app.store.visible_errors(template) == {'q1': 'required'}
        assert app.state.current_group_index == 0
        forms_api.submit_job_form.assert_not_called()
        assert forms_api.save_job_form.call_count == 1

    def test_errors_hidden_until_group_left(self, handler, forms_api, template):
        start_new_job_form(handler, forms_api, template)
        views = handler.current_views()
        assert all(isinstance(v, FieldView) for v in views)
        assert [v.error for v in views] == [None, None]

        handler.next()
        handler.previous()
        views = handler.current_views()
        assert views[0].error == 'This field is required'
        assert views[0].label == 'Site contact *'

    def test_submit_success(self, handler, forms_api, template, app):
        start_new_job_form(handler, forms_api, template)
        handler.update_field('q1', 'Sam')
        handler.update_field('q2', '3')
        forms_api.get_job_form.return_value = FormRecord(id='55', template_id='t1')
        forms_api.submit_job_form.return_value = FormRecord(id='55', template_id='t1', status=FormStatus.SUBMITTED)

        assert asyncio.run(handler.submit()) is True

        request = forms_api.save_job_form.call_args[0][1]
        assert request.form_data == {'q1': 'Sam', 'q2': '3'}
        forms_api.submit_job_form.assert_called_once_with('job-1')
        assert app.state.submitted is True
        assert app.state.status_message == "Form submitted"

        # A submitted form is not submitted again
        assert asyncio.run(handler.submit()) is False
        forms_api.submit_job_form.assert_called_once()

    def test_failed_save_keeps_answers_and_retry_succeeds(self, handler, forms_api, template, app):
        start_new_job_form(handler, forms_api, template)
        handler.update_field('q1', 'Sam')

        forms_api.save_job_form.side_effect = APIError('Network error: connection refused')
        assert asyncio.run(handler.save_draft()) is False
        assert app.store.value('q1') == 'Sam'
        assert app.state.dirty is True
        assert app.state.status_message == 'Failed to save draft'
        assert app.state.last_error == 'Network error: connection refused'

        forms_api.save_job_form.side_effect = None
        forms_api.save_job_form.return_value = FormRecord(id='55', template_id='t1', form_data={'q1': 'Sam'})
        assert asyncio.run(handler.save_draft()) is True
        assert app.state.dirty is False
        assert app.state.last_error is None

    def test_load_failure_reported(self, handler, forms_api, app):
        forms_api.get_job_form.side_effect = APIError('502 Bad Gateway', 502)
        assert asyncio.run(handler.start('job-1', template_id='t1')) is False
        assert app.state.last_error == '502 Bad Gateway'
        assert app.state.loading is False

    def test_tc_job_without_template_or_form(self, handler, forms_api, app):
        forms_api.get_tc_form.return_value = None

        assert asyncio.run(handler.start('9001', job_kind=JobKind.TC_JOB, tc_job_code='TC-9001')) is False

        assert app.state.no_template is True
        assert app.state.status_message == 'No template selected'
        forms_api.save_tc_form.assert_not_called()
        forms_api.get_template.assert_not_called()
        forms_api.sync_answers.assert_not_called()
        assert asyncio.run(handler.save_draft()) is False

    def test_photo_capture_binds_uploaded_url(self, handler, forms_api, template, app):
        start_new_job_form(handler, forms_api, template)
        forms_api.upload_job_photo.return_value = PhotoUploadResult(url='https://blob/switchboard.jpg')

        url = asyncio.run(handler.capture_photo('q_photo', PhotoSource.CAMERA))

        assert url == 'https://blob/switchboard.jpg'
        assert handler.get_photo_url('q_photo') == url
        assert app.store.value('q_photo') == url
        assert forms_api.upload_job_photo.call_args[0][0] == 'job-1'
        assert app.state.status_message == 'Photo uploaded successfully'

    def test_photo_permission_denied_is_recoverable(self, handler, forms_api, template, app, provider):
        start_new_job_form(handler, forms_api, template)
        provider.request_permission.return_value = False

        assert asyncio.run(handler.capture_photo('q_photo')) is None
        assert 'q_photo' not in app.state.answers
        assert app.state.status_message == 'Camera permission is required to take photos'

    def test_photo_on_non_file_question(self, handler, forms_api, template):
        start_new_job_form(handler, forms_api, template)
        with pytest.raises(ValueError):
            asyncio.run(handler.capture_photo('q1'))

    def test_toggle_option(self, handler, forms_api):
        from shared.schemas import Template
        forms_api.get_job_form.return_value = FormRecord(id='1', template_id='t2')
        forms_api.get_template.return_value = Template.model_validate({'id': 't2', 'groups': [{'id': 'g', 'questions': [
            {'id': 'c', 'field_type': 'checkbox'},
            {'id': 'm', 'field_type': 'checkboxlist', 'answer_options': [{'id': 1, 'text': 'A'}, {'id': 2, 'text': 'B'}]},
            {'id': 'r', 'field_type': 'radio', 'answer_options': [{'id': 1, 'text': 'A'}]},
        ]}]})
        asyncio.run(handler.start('job-2'))

        assert handler.toggle_option('c') is True
        assert handler.toggle_option('m', 'B') == ['B']
        assert handler.toggle_option('m', '1') == ['B', 'A']
        assert handler.toggle_option('r', 'A') == 'A'

    def test_offline_form_end_to_end(self, handler, forms_api, template, test_db):
        forms_api.get_template.return_value = template

        assert asyncio.run(handler.start('local-7', template_id='t1', job_kind=JobKind.LOCAL))
        url = asyncio.run(handler.capture_photo('q_photo'))
        assert url.startswith('file://')

        handler.update_field('q1', 'Sam')
        assert asyncio.run(handler.submit()) is True

        record = test_db.get_form(JobKind.LOCAL, 'local-7')
        assert record.status == FormStatus.SUBMITTED
        assert record.form_data == {'q1': 'Sam', 'q_photo': url}


    def test_widget_values_are_normalized(self, handler, forms_api, app):
        from datetime import date
        from shared.schemas import Template
        forms_api.get_job_form.return_value = FormRecord(id='1', template_id='t3')
        forms_api.get_template.return_value = Template.model_validate({'id': 't3', 'groups': [{'id': 'g', 'questions': [
            {'id': 'd', 'field_type': 'datepicker'},
            {'id': 'c', 'field_type': 'checkbox'},
        ]}]})
        forms_api.save_job_form.return_value = FormRecord(id='1', template_id='t3')
        asyncio.run(handler.start('job-3'))

        assert handler.set_widget_value('d', date(2026, 3, 4)) == '2026-03-04'
        assert handler.set_widget_value('c', 'yes') is True
        assert asyncio.run(handler.save_draft()) is True
        request = forms_api.save_job_form.call_args[0][1]
        assert request.form_data == {'d': '2026-03-04', 'c': True}

        with pytest.raises(ValueError):
            handler.set_widget_value('nope', 'x')

    def test_actions_before_start_are_refused(self, handler, app):
        assert handler.next() == 0
        assert handler.previous() == 0
        assert handler.toggle_option('q1', 'A') is None
        assert handler.set_widget_value('q1', 'x') is None
        assert asyncio.run(handler.capture_photo('q_photo')) is None
        assert app.state.status_message == 'No template selected'
        assert app.state.answers == {}

    def test_vanished_offline_photo_is_recoverable(self, handler, forms_api, template, app, provider, tmp_path):
        forms_api.get_template.return_value = template
        assert asyncio.run(handler.start('local-8', template_id='t1', job_kind=JobKind.LOCAL))
        provider.pick_image.return_value = str(tmp_path / 'gone.jpg')

        assert asyncio.run(handler.capture_photo('q_photo')) is None

        assert app.state.status_message == 'Failed to upload photo'
        assert 'q_photo' not in app.state.answers
        assert app.state.uploading == set()


LIVE_DEFINITION = {
    'success': True,
    'form': {
        'template_id': 'tc_form_3',
        'template_name': 'Hot Water Service',
        'groups': [
            {'id': 'tc_g_1', 'name': 'Unit', 'sort_order': 0, 'csv_group_id': 11, 'questions': [
                {'id': 'tc_q_1', 'question_text': 'Serial', 'field_type': 'text', 'required': True},
                {'id': 'tc_q_2', 'question_text': 'Unit photo', 'field_type': 'file'},
            ]},
            {'id': 'tc_g_2', 'name': 'Checks', 'sort_order': 1, 'csv_group_id': 12, 'questions': [
                {'id': 'tc_q_3', 'question_text': 'Tested', 'field_type': 'checkbox'},
            ]},
        ],
    },
    'saved_answers': {'tc_q_1': 'SN-1'},
    'saved_files': {'tc_q_2': 'https://tc/files/unit.jpg'},
}


class TestLiveFormHandler:

    def test_start_prefills_and_reports_synced(self, live, forms_api, app):
        forms_api.get_form_definition.return_value = LIVE_DEFINITION

        assert asyncio.run(live.start('777'))

        assert app.store.value('tc_q_1') == 'SN-1'
        assert live.get_photo_url('tc_q_2') == 'https://tc/files/unit.jpg'
        assert app.state.sync_status == SyncStatus.SYNCED
        assert app.state.dirty is False

        live.update_field('tc_q_1', 'SN-2')
        assert app.state.sync_status == SyncStatus.IDLE

    def test_empty_definition_starts_idle(self, live, forms_api, app):
        forms_api.get_form_definition.return_value = {**LIVE_DEFINITION, 'saved_answers': {}, 'saved_files': {}}
        assert asyncio.run(live.start('777'))
        assert app.state.sync_status == SyncStatus.IDLE

    def test_save_and_sync_scopes_current_group(self, live, forms_api, app):
        forms_api.get_form_definition.return_value = LIVE_DEFINITION
        forms_api.sync_answers.return_value = SyncAnswersResponse(success=True)
        asyncio.run(live.start('777'))

        assert asyncio.run(live.save_and_sync()) is True

        tc_job_id, request = forms_api.sync_answers.call_args[0]
        assert tc_job_id == '777'
        assert request.group_no == 11
        assert request.is_complete is False
        assert request.answers == {'tc_q_1': 'SN-1'}
        assert app.state.sync_status == SyncStatus.SYNCED

    def test_next_syncs_group_being_left(self, live, forms_api, app):
        forms_api.get_form_definition.return_value = LIVE_DEFINITION
        forms_api.sync_answers.return_value = SyncAnswersResponse(success=False, error='TC rejected')
        asyncio.run(live.start('777'))

        assert asyncio.run(live.next()) == 1
        assert forms_api.sync_answers.call_args[0][1].group_no == 11
        assert app.state.sync_status == SyncStatus.ERROR
        assert app.state.last_error == 'TC rejected'
        assert app.store.value('tc_q_1') == 'SN-1'
        assert 0 in app.state.visited_groups

    def test_submit_validates_then_completes(self, live, forms_api, app):
        forms_api.get_form_definition.return_value = LIVE_DEFINITION
        forms_api.sync_answers.return_value = SyncAnswersResponse(success=True)
        asyncio.run(live.start('777'))

        live.update_field('tc_q_1', '')
        assert asyncio.run(live.submit()) is False
        forms_api.sync_answers.assert_not_called()
        assert app.state.errors == {'tc_q_1': 'required'}

        live.update_field('tc_q_1', 'SN-3')
        assert asyncio.run(live.submit()) is True
        request = forms_api.sync_answers.call_args[0][1]
        assert request.is_complete is True
        assert request.group_no is None
        assert app.state.submitted is True

    def test_no_template_never_syncs(self, live, forms_api, app):
        forms_api.get_form_definition.return_value = {
            'success': True, 'form': {'template_name': '', 'groups': []},
        }

        assert asyncio.run(live.start('778')) is False
        assert app.state.no_template is True
        assert asyncio.run(live.save_and_sync()) is False
        assert asyncio.run(live.submit()) is False
        forms_api.sync_answers.assert_not_called()

    def test_definition_error_reported(self, live, forms_api, app):
        forms_api.get_form_definition.return_value = {'error': 'TradieConnect not connected'}
        assert asyncio.run(live.start('777')) is False
        assert app.state.last_error == 'TradieConnect not connected'

    def test_live_photo_goes_to_tc_storage(self, live, forms_api, app):
        forms_api.get_form_definition.return_value = LIVE_DEFINITION
        forms_api.upload_tc_live_photo.return_value = PhotoUploadResult(url='https://blob/tc-live/new.jpg')
        asyncio.run(live.start('777'))

        url = asyncio.run(live.capture_photo('tc_q_2', PhotoSource.LIBRARY))

        assert url == 'https://blob/tc-live/new.jpg'
        assert live.get_photo_url('tc_q_2') == url
        assert app.state.sync_status == SyncStatus.IDLE
        forms_api.upload_tc_live_photo.assert_called_once()

    def test_edit_during_sync_keeps_form_dirty(self, live, forms_api, app):
        """An answer changed while a sync is in flight is not reported as synced."""
        forms_api.get_form_definition.return_value = LIVE_DEFINITION
        asyncio.run(live.start('777'))
        release = threading.Event()

        def held_sync(tc_job_id, request):
            release.wait(5)
            return SyncAnswersResponse(success=True)

        forms_api.sync_answers.side_effect = held_sync

        async def scenario():
            pending = asyncio.create_task(live.save_and_sync())
            await asyncio.sleep(0)
            live.update_field('tc_q_1', 'SN-EDITED')
            release.set()
            return await pending

        assert asyncio.run(scenario()) is False
        assert forms_api.sync_answers.call_args[0][1].answers['tc_q_1'] == 'SN-1'
        assert app.state.sync_status == SyncStatus.IDLE
        assert app.state.dirty is True
        assert app.store.value('tc_q_1') == 'SN-EDITED'

        forms_api.sync_answers.side_effect = None
        forms_api.sync_answers.return_value = SyncAnswersResponse(success=True)
        assert asyncio.run(live.save_and_sync()) is True
        assert forms_api.sync_answers.call_args[0][1].answers['tc_q_1'] == 'SN-EDITED'
        assert app.state.sync_status == SyncStatus.SYNCED
        assert app.state.dirty is False

    def test_widget_value_is_normalized(self, live, forms_api, app):
        forms_api.get_form_definition.return_value = LIVE_DEFINITION
        asyncio.run(live.start('777'))
        assert live.set_widget_value('tc_q_3', 'on') is True
        assert app.store.value('tc_q_3') is True

    def test_actions_before_start_are_refused(self, live, forms_api, app):
        assert live.previous() == 0
        assert asyncio.run(live.next()) == 0
        assert asyncio.run(live.capture_photo('tc_q_2')) is None
        assert app.state.status_message == 'No template selected'
        forms_api.sync_answers.assert_not_called()
