import enum


class FieldType(str, enum.Enum):
    """Question field types exchanged with the backend and TradieConnect.

    Used in Question schemas to pick the input widget and the shape of the answer.
    """
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    EMAIL = "email"
    PHONE = "phone"
    DROPDOWN = "dropdown"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    MULTI_CHECKBOX = "multi_checkbox"
    DATE = "date"
    FILE = "file"


# Spellings some templates still carry for the canonical field types
FIELD_TYPE_ALIASES = {
    'checkboxlist': FieldType.MULTI_CHECKBOX,
    'datepicker': FieldType.DATE,
}


class WidgetKind(str, enum.Enum):
    """Input widgets a presentation layer must be able to draw."""
    TEXT_INPUT = "text_input"
    TEXT_AREA = "text_area"
    NUMERIC_INPUT = "numeric_input"
    EMAIL_INPUT = "email_input"
    PHONE_INPUT = "phone_input"
    SELECT = "select"
    RADIO_GROUP = "radio_group"
    TOGGLE = "toggle"
    CHECKBOX_LIST = "checkbox_list"
    DATE_PICKER = "date_picker"
    PHOTO = "photo"


class FormStatus(str, enum.Enum):
    """Completion form record status values.

    A record moves from DRAFT to SUBMITTED exactly once.
    """
    DRAFT = "draft"
    SUBMITTED = "submitted"


class SyncStatus(str, enum.Enum):
    """Live TradieConnect sync state for one editing session."""
    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"


class JobKind(str, enum.Enum):
    """Which backend owns the job a form is attached to."""
    JOB = "job"
    TC_JOB = "tc_job"
    LOCAL = "local"


class PhotoSource(str, enum.Enum):
    CAMERA = "camera"
    LIBRARY = "library"


class UploadTarget(str, enum.Enum):
    """Where a captured photo is stored.

    INTERNAL uploads attach to the completion form record on our backend,
    EXTERNAL uploads go to TradieConnect file storage for live forms.
    """
    INTERNAL = "internal"
    EXTERNAL = "external"
