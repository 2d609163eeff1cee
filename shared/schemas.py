"""Pydantic schemas for form templates, records and wire payloads."""
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, AliasChoices, field_validator, ConfigDict

from shared.enums import FieldType, FIELD_TYPE_ALIASES, FormStatus

logger = logging.getLogger(__name__)


def _as_str_id(v):
    """Ids arrive as ints from some endpoints and as strings from others."""
    if v is None:
        return v
    return str(v)


# Template Schemas
class AnswerOption(BaseModel):
    id: str
    text: str
    tc_answer_id: Optional[int] = None

    model_config = ConfigDict(extra='ignore')

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _as_str_id(v)


class Question(BaseModel):
    """A single question of a template group.

    The template endpoint spells the required flag ``is_required`` and the
    TradieConnect live definition spells it ``required``; both are accepted,
    as are ``help_text`` and ``hint``.
    """
    id: str
    question_text: str = ""
    field_type: FieldType = FieldType.TEXT
    is_required: bool = Field(default=False, validation_alias=AliasChoices('is_required', 'required'))
    help_text: Optional[str] = Field(default=None, validation_alias=AliasChoices('help_text', 'hint'))
    placeholder: Optional[str] = None
    validation_message: Optional[str] = None
    answer_options: List[AnswerOption] = Field(default_factory=list)
    allow_multiple: bool = False
    sort_order: int = 0
    csv_question_id: Optional[int] = None
    csv_group_id: Optional[int] = None

    model_config = ConfigDict(extra='ignore', frozen=True)

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _as_str_id(v)

    @field_validator('field_type', mode='before')
    @classmethod
    def normalize_field_type(cls, v):
        if isinstance(v, FieldType):
            return v
        key = str(v or '').strip().lower()
        if key in FIELD_TYPE_ALIASES:
            return FIELD_TYPE_ALIASES[key]
        try:
            return FieldType(key)
        except ValueError:
            logger.warning(f"Unsupported field type '{v}', rendering as text")
            return FieldType.TEXT

    @field_validator('answer_options', mode='before')
    @classmethod
    def default_options(cls, v):
        return v or []


class Group(BaseModel):
    id: str
    name: str = ""
    description: Optional[str] = None
    sort_order: int = 0
    csv_group_id: Optional[int] = None
    questions: List[Question] = Field(default_factory=list)

    model_config = ConfigDict(extra='ignore', frozen=True)

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _as_str_id(v)


class Template(BaseModel):
    """Immutable form schema: ordered groups of ordered questions."""
    id: str
    name: str = Field(default="", validation_alias=AliasChoices('name', 'template_name'))
    description: Optional[str] = None
    groups: List[Group] = Field(default_factory=list)

    model_config = ConfigDict(extra='ignore', frozen=True)

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _as_str_id(v)

    @field_validator('groups', mode='after')
    @classmethod
    def order_groups(cls, v):
        # sorted() is stable, so equal sort_order keeps server order
        return sorted(v, key=lambda g: g.sort_order)

    def questions(self):
        """All questions across all groups, in display order."""
        return [q for group in self.groups for q in group.questions]

    def question(self, question_id):
        for q in self.questions():
            if q.id == question_id:
                return q
        return None

    def group_index_of(self, question_id):
        for index, group in enumerate(self.groups):
            if any(q.id == question_id for q in group.questions):
                return index
        return None


class TemplateSummary(BaseModel):
    id: str
    name: str = ""
    description: Optional[str] = None

    model_config = ConfigDict(extra='ignore')

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _as_str_id(v)


# Form Record Schemas
class FormRecord(BaseModel):
    """A persisted completion form: one per (job, template) pair."""
    id: Optional[str] = None
    template_id: str
    job_id: Optional[str] = None
    tc_job_code: Optional[str] = None
    form_data: Dict[str, Any] = Field(default_factory=dict)
    status: FormStatus = FormStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(extra='ignore', from_attributes=True)

    @field_validator('id', 'template_id', 'job_id', mode='before')
    @classmethod
    def coerce_ids(cls, v):
        return _as_str_id(v)

    @field_validator('form_data', mode='before')
    @classmethod
    def default_form_data(cls, v):
        return v or {}


class FormSaveRequest(BaseModel):
    template_id: str
    form_data: Dict[str, Any]
    status: FormStatus = FormStatus.DRAFT
    tc_job_code: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


# TradieConnect live form Schemas
class LiveFormDefinition(BaseModel):
    """Template plus whatever TradieConnect already holds for the job."""
    template: Template
    tc_form_id: Optional[int] = None
    tc_job_id: Optional[int] = None
    saved_answers: Dict[str, Any] = Field(default_factory=dict)
    saved_files: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_response(cls, payload):
        """Build from the form-definition endpoint body."""
        form = payload['form']
        template = Template.model_validate({
            'id': form.get('template_id') or form.get('tc_form_id') or '',
            'template_name': form.get('template_name', ''),
            'groups': form.get('groups') or [],
        })
        return cls(
            template=template,
            tc_form_id=form.get('tc_form_id'),
            tc_job_id=form.get('tc_job_id'),
            saved_answers=payload.get('saved_answers') or {},
            saved_files=payload.get('saved_files') or {},
        )


class SyncAnswersRequest(BaseModel):
    answers: Dict[str, Any]
    photo_urls: Optional[Dict[str, List[str]]] = None
    group_no: Optional[int] = None
    is_complete: bool = False

    def to_payload(self):
        return self.model_dump(exclude_none=True)


class SyncAnswersResponse(BaseModel):
    success: bool = False
    synced_answers: Optional[int] = None
    error: Optional[str] = None
    message: Optional[str] = None

    model_config = ConfigDict(extra='ignore')


class PhotoUploadResult(BaseModel):
    """Remote location of an uploaded photo."""
    url: str
    question_id: Optional[str] = None

    @classmethod
    def from_response(cls, payload, question_id=None):
        """Accepts both the internal ``{photo: {photo_url}}`` and TradieConnect ``{success, url}`` bodies."""
        photo = payload.get('photo') or {}
        url = photo.get('photo_url') or photo.get('url') or payload.get('url')
        if not url:
            raise ValueError("Upload response carries no photo URL")
        return cls(url=url, question_id=question_id)
