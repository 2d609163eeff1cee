"""Pytest configuration and fixtures for completion form tests."""
import pytest
import tempfile
import os
from unittest.mock import Mock

from shared.schemas import Template


TWO_GROUP_TEMPLATE = {
    'id': 't1',
    'name': 'Install Checklist',
    'groups': [
        {
            'id': 'g1',
            'name': 'Site',
            'sort_order': 1,
            'csv_group_id': 101,
            'questions': [
                {'id': 'q1', 'question_text': 'Site contact', 'field_type': 'text', 'is_required': True},
                {'id': 'q_email', 'question_text': 'Contact email', 'field_type': 'email'},
            ],
        },
        {
            'id': 'g2',
            'name': 'Work',
            'sort_order': 2,
            'csv_group_id': 102,
            'questions': [
                {'id': 'q2', 'question_text': 'Hours', 'field_type': 'number'},
                {'id': 'q_photo', 'question_text': 'Switchboard photo', 'field_type': 'file'},
            ],
        },
    ],
}


@pytest.fixture
def template_data():
    """Raw template payload as the template endpoint returns it."""
    return TWO_GROUP_TEMPLATE


@pytest.fixture
def template():
    """Two-group template: required text q1 in group 1, number and photo in group 2."""
    return Template.model_validate(TWO_GROUP_TEMPLATE)


@pytest.fixture
def test_db():
    """Create a temporary form cache database."""
    from src.completion_forms.local_db import LocalFormDatabase

    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    test_db = LocalFormDatabase(db_path)

    yield test_db

    # Cleanup
    test_db.close()
    os.close(db_fd)
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def config(tmp_path):
    """ConfigManager pointed at temporary directories."""
    from src.completion_forms.config_manager import ConfigManager

    return ConfigManager(
        local_db_path=str(tmp_path / 'forms.db'),
        photo_work_dir=str(tmp_path / 'work'),
    )


@pytest.fixture
def forms_api():
    """FormsAPI stand-in; tests set return values per endpoint."""
    return Mock()


@pytest.fixture
def image_path(tmp_path):
    """A small JPEG on disk."""
    from PIL import Image

    path = tmp_path / 'capture.jpg'
    Image.new('RGB', (40, 20), color=(200, 30, 30)).save(path, format='JPEG')
    return str(path)
