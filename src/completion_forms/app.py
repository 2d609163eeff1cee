import logging
import os

from shared.enums import JobKind
from .config_manager import ConfigManager
from .logging_config import setup_logging
from .local_db import LocalFormDatabase
from .state import FormSessionState
from .form_store import FormStateStore
from .services.api_service import APIService
from .services.forms_api import FormsAPI
from .services.form_backends import JobFormBackend, TCJobFormBackend, LocalFormBackend
from .handlers.completion_form_handler import CompletionFormHandler
from .handlers.live_form_handler import LiveFormHandler


class FormApp:
    """Wires configuration, services, session state and handlers together.

    The presentation layer owns one FormApp and drives it through
    completion_form_handler or live_form_handler.
    """

    def __init__(self, config=None, forms_api=None, local_db=None, image_provider=None, auth_service=None):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = config or ConfigManager()
        self.logger.info(f"Configuration loaded: API URL={self.config.api_base_url}")

        self.api_service = APIService(
            self.config.api_base_url,
            timeout=self.config.api_timeout,
            auth_service=auth_service,
            access_token=self.config.api_token or None,
        )
        self.forms_api = forms_api or FormsAPI(self.api_service, upload_timeout=self.config.upload_timeout)
        self._local_db = local_db
        self.image_provider = image_provider

        self.state = FormSessionState()
        self.store = FormStateStore(self.state)

        self.completion_form_handler = CompletionFormHandler(self)
        self.live_form_handler = LiveFormHandler(self)
        self.logger.debug("Form handlers initialized")

    @classmethod
    def startup(cls, **kwargs):
        """Configure logging, then build the app."""
        config = kwargs.pop('config', None) or ConfigManager()
        setup_logging(config.log_level)
        return cls(config=config, **kwargs)

    @property
    def local_db(self):
        # Opened on first offline use only
        if self._local_db is None:
            self._local_db = LocalFormDatabase(self.config.local_db_path)
        return self._local_db

    def backend_for(self, job_kind, tc_job_code=None):
        """Pick the draft persistence backend for a session."""
        if job_kind == JobKind.JOB:
            return JobFormBackend(self.forms_api)
        if job_kind == JobKind.TC_JOB:
            return TCJobFormBackend(self.forms_api, tc_job_code=tc_job_code)
        photos_dir = os.path.join(os.path.dirname(os.path.abspath(self.config.local_db_path)), 'form_photos')
        return LocalFormBackend(self.local_db, photos_dir, tc_job_code=tc_job_code)

    def close(self):
        if self._local_db is not None:
            self._local_db.close()
