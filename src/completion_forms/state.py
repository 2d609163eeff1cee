"""Session state for one completion form editing session."""
from dataclasses import dataclass, field
from typing import Optional, Any, Dict, Set

from shared.enums import JobKind, SyncStatus


@dataclass
class FormSessionState:
    """Everything one open completion form holds in memory.

    The answer map is the single source of truth for what the user has entered;
    network failures never touch it.
    """
    # Session identity
    job_id: Optional[str] = None
    job_kind: JobKind = JobKind.JOB
    tc_job_code: Optional[str] = None
    template: Optional[object] = None
    form_id: Optional[str] = None
    no_template: bool = False
    submitted: bool = False

    # Answer state
    answers: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    dirty: bool = False
    # Bumped by every answer change; a sync only counts as current if it is unchanged
    edit_version: int = 0

    # Section navigation
    current_group_index: int = 0
    visited_groups: Set[int] = field(default_factory=set)

    # Live sync state
    sync_status: SyncStatus = SyncStatus.IDLE

    # Photo state
    local_photos: Dict[str, str] = field(default_factory=dict)
    saved_files: Dict[str, str] = field(default_factory=dict)
    uploading: Set[str] = field(default_factory=set)

    # Status reporting
    status_message: str = ''
    last_error: Optional[str] = None
    loading: bool = False
    saving: bool = False

    def reset_form_state(self):
        """Clear answers and everything derived from them."""
        self.answers = {}
        self.errors = {}
        self.dirty = False
        self.current_group_index = 0
        self.visited_groups = set()
        self.sync_status = SyncStatus.IDLE
        self.local_photos = {}
        self.saved_files = {}
        self.uploading.clear()

    def report(self, message, error=None):
        """Record a user-facing status line and, when given, the error text."""
        self.status_message = message
        self.last_error = error
