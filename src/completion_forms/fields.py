"""Field renderer: one class per question field type.

Each field knows its widget, its empty value, how to turn raw widget input into
the canonical answer value, how to check an answer's shape, and how to describe
itself to a presentation layer as a FieldView.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Any, List

from shared.enums import FieldType, WidgetKind
from shared.validation import Validator, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class FieldView:
    """What a presentation layer needs to draw one question."""
    question_id: str
    label: str
    widget: WidgetKind
    required: bool = False
    hint: Optional[str] = None
    placeholder: Optional[str] = None
    options: List[str] = field(default_factory=list)
    value: Any = None
    error: Optional[str] = None
    uploading: bool = False


class BaseField:
    """Common behavior; subclasses set the widget and refine normalize/check."""

    field_type = None
    widget = WidgetKind.TEXT_INPUT
    empty_value = ''

    def __init__(self, question):
        self.question = question

    @property
    def question_id(self):
        return self.question.id

    def empty(self):
        return self.empty_value

    def normalize(self, raw):
        """Convert raw widget input into the canonical answer value."""
        if raw is None:
            return self.empty()
        return raw if isinstance(raw, str) else str(raw)

    def check(self, value):
        """Raise ValidationError when a non-empty value has the wrong shape."""
        Validator.validate_string(value, self.question.question_text or self.question_id)

    def label(self):
        text = self.question.question_text or ''
        return f"{text} *" if self.question.is_required else text

    def error_text(self, reason):
        if reason is None:
            return None
        if reason == 'required':
            return 'This field is required'
        return self.question.validation_message or ERROR_MESSAGES.get(reason, 'Invalid value')

    def render(self, value=None, error=None, uploading=False):
        return FieldView(
            question_id=self.question_id,
            label=self.label(),
            widget=self.widget,
            required=self.question.is_required,
            hint=Validator.sanitize_html(self.question.help_text),
            placeholder=self.question.placeholder,
            options=[option.text for option in self.question.answer_options],
            value=self.empty() if value is None else value,
            error=self.error_text(error),
            uploading=uploading,
        )


ERROR_MESSAGES = {
    'invalid_email': 'Please enter a valid email address',
    'invalid_phone': 'Please enter a valid phone number',
    'invalid_number': 'Please enter a valid number',
    'invalid_option': 'Please choose one of the listed options',
    'invalid_type': 'Invalid value',
    'invalid_date': 'Please enter a valid date',
}


class TextField(BaseField):
    field_type = FieldType.TEXT
    widget = WidgetKind.TEXT_INPUT


class LongTextField(BaseField):
    field_type = FieldType.TEXTAREA
    widget = WidgetKind.TEXT_AREA


class NumberField(BaseField):
    """Numbers stay as the typed string; only validation parses them."""
    field_type = FieldType.NUMBER
    widget = WidgetKind.NUMERIC_INPUT

    def check(self, value):
        super().check(value)
        Validator.validate_number(value, self.question.question_text or self.question_id)


class EmailField(BaseField):
    field_type = FieldType.EMAIL
    widget = WidgetKind.EMAIL_INPUT

    def check(self, value):
        super().check(value)
        Validator.validate_email(value)


class PhoneField(BaseField):
    field_type = FieldType.PHONE
    widget = WidgetKind.PHONE_INPUT

    def check(self, value):
        super().check(value)
        Validator.validate_phone(value)


class ChoiceField(BaseField):
    """Single choice by option text; option ids are accepted as answers too."""

    def option_texts(self):
        return [option.text for option in self.question.answer_options]

    def valid_choices(self):
        choices = self.option_texts()
        choices.extend(option.id for option in self.question.answer_options)
        return choices

    def select(self, option):
        """Return the answer value for a tapped option, given its text or id."""
        for answer_option in self.question.answer_options:
            if option in (answer_option.text, answer_option.id):
                return answer_option.text
        raise ValidationError(f"Unknown option '{option}'", reason='invalid_option')

    def check(self, value):
        super().check(value)
        # Templates without options cannot be checked against anything
        if self.question.answer_options:
            Validator.validate_choice(value, self.question.question_text or self.question_id,
                                      self.valid_choices())


class DropdownField(ChoiceField):
    field_type = FieldType.DROPDOWN
    widget = WidgetKind.SELECT


class RadioField(ChoiceField):
    field_type = FieldType.RADIO
    widget = WidgetKind.RADIO_GROUP


class CheckboxField(BaseField):
    field_type = FieldType.CHECKBOX
    widget = WidgetKind.TOGGLE
    empty_value = False

    def normalize(self, raw):
        if isinstance(raw, str):
            return raw.strip().lower() in ('true', '1', 'yes', 'on')
        return bool(raw)

    def check(self, value):
        if not isinstance(value, bool):
            raise ValidationError(f"{self.question_id} must be true or false", reason='invalid_type')

    def toggle(self, current):
        return not bool(current)


class MultiCheckboxField(ChoiceField):
    field_type = FieldType.MULTI_CHECKBOX
    widget = WidgetKind.CHECKBOX_LIST

    def empty(self):
        return []

    def normalize(self, raw):
        if raw is None:
            return []
        if isinstance(raw, str):
            return [raw]
        return list(raw)

    def toggle(self, current, option):
        """Add the option when absent, remove it when present."""
        selected = list(current or [])
        text = self.select(option)
        if text in selected:
            return [item for item in selected if item != text]
        selected.append(text)
        return selected

    def check(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ValidationError(f"{self.question_id} must be a list of options", reason='invalid_type')
        if self.question.answer_options:
            choices = self.valid_choices()
            for item in value:
                Validator.validate_choice(item, self.question.question_text or self.question_id, choices)


class DateField(BaseField):
    """Dates are stored as YYYY-MM-DD strings."""
    field_type = FieldType.DATE
    widget = WidgetKind.DATE_PICKER

    def normalize(self, raw):
        if raw is None:
            return ''
        if isinstance(raw, datetime):
            return raw.date().isoformat()
        if isinstance(raw, date):
            return raw.isoformat()
        text = str(raw).strip()
        if len(text) > 10:
            try:
                return datetime.fromisoformat(text).date().isoformat()
            except ValueError:
                # Left as typed so validation reports it
                return text
        return text

    def check(self, value):
        super().check(value)
        Validator.validate_iso_date(value)


class FileField(BaseField):
    """Photo answers: an uploaded URL, or a list of URLs for multi-photo questions."""
    field_type = FieldType.FILE
    widget = WidgetKind.PHOTO

    def empty(self):
        return [] if self.question.allow_multiple else ''

    def normalize(self, raw):
        if raw is None:
            return self.empty()
        if self.question.allow_multiple and isinstance(raw, str):
            return [raw]
        return raw

    def check(self, value):
        if isinstance(value, str):
            return
        if isinstance(value, list) and all(isinstance(item, str) for item in value):
            return
        raise ValidationError(f"{self.question_id} must be a photo URL", reason='invalid_type')

    def urls(self, value):
        """Answer value as a list of URLs."""
        if isinstance(value, str):
            return [value] if value else []
        if isinstance(value, list):
            return [url for url in value if isinstance(url, str) and url]
        return []


FIELD_CLASSES = {
    FieldType.TEXT: TextField,
    FieldType.TEXTAREA: LongTextField,
    FieldType.NUMBER: NumberField,
    FieldType.EMAIL: EmailField,
    FieldType.PHONE: PhoneField,
    FieldType.DROPDOWN: DropdownField,
    FieldType.RADIO: RadioField,
    FieldType.CHECKBOX: CheckboxField,
    FieldType.MULTI_CHECKBOX: MultiCheckboxField,
    FieldType.DATE: DateField,
    FieldType.FILE: FileField,
}

_unregistered = [ft.value for ft in FieldType if ft not in FIELD_CLASSES]
if _unregistered:
    raise ImportError(f"No field class registered for field types: {', '.join(_unregistered)}")


def field_for(question):
    """Return the field instance that handles this question's field type."""
    return FIELD_CLASSES[question.field_type](question)
