"""Session context shared by the editor, the studio and the orchestrator"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class SessionContext:
    # Credential gate; flipped off by authorization failures, on by authorize()
    has_valid_credential: bool = True

    # True while a generation job is in flight
    is_busy: bool = False

    # Job currently shown to the user (None = nothing selected)
    active_job_id: Optional[str] = None

    # Global error banner; only set for the job the user is looking at
    error_message: Optional[str] = None

    def authorize(self):
        self.has_valid_credential = True
        self.error_message = None
