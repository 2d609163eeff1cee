"""Configuration Manager for the completion form engine."""
import os
from appdirs import user_data_dir
from pydantic_settings import BaseSettings


def default_local_db_path():
    """Local form cache lives in the per-user data directory."""
    return os.path.join(user_data_dir("completion_forms", "FieldService"), 'completion_forms.db')


class ConfigManager(BaseSettings):
    """Manages application configuration settings using Pydantic BaseSettings."""

    # API settings
    api_base_url: str = 'http://localhost:3000/api'
    api_timeout: float = 30.0
    api_token: str = ''
    upload_timeout: float = 60.0

    # Image processing settings
    image_compression_quality: int = 85  # JPEG quality (1-100)
    # TradieConnect's report renderer turns every image 90 degrees clockwise,
    # so uploads bound for TC are pre-rotated by this many degrees clockwise
    tc_photo_rotation: int = -90
    photo_work_dir: str = ''

    # Storage settings
    local_db_path: str = ''

    # Logging settings
    log_level: str = 'INFO'

    class Config:
        env_prefix = 'FORMS_'
        case_sensitive = False

    def __init__(self, **kwargs):
        """Initialize config and fill path defaults that depend on the platform."""
        super().__init__(**kwargs)
        if not self.local_db_path:
            self.local_db_path = default_local_db_path()
        if not self.photo_work_dir:
            self.photo_work_dir = os.path.join(os.path.dirname(self.local_db_path), 'photos')

    def get(self, key, default=None):
        """Get a configuration value."""
        return getattr(self, key, default)

    def set(self, key, value):
        """Set a configuration value."""
        setattr(self, key, value)

    def get_all(self):
        """Get all configuration values as dictionary."""
        return self.model_dump()
