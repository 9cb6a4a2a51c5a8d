from __future__ import annotations

import copy
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterator, Optional

from ..domain.errors import WizardBusyError, WizardNotFoundError
from ..domain.repositories import ParkingGateway
from ..domain.wizard import BookingDraft, BookingWizard, WizardState
from ..utils.time import utc_now_naive


@dataclass
class WizardSession:
    wizard_id: str
    user_id: int
    created_at: datetime
    state: WizardState = WizardState.AREA
    draft: BookingDraft = field(default_factory=BookingDraft)
    errors: dict[str, str] = field(default_factory=dict)
    notice: Optional[str] = None


class MemoryWizardStore:
    """
    Per-user wizard sessions kept in process memory.
    A session is checked out for the duration of one action; a second action
    on the same session while the first is awaiting the backend is rejected.
    """

    def __init__(self, ttl: timedelta = timedelta(hours=2)) -> None:
        self._sessions: dict[str, WizardSession] = {}
        self._checked_out: set[str] = set()
        self._ttl = ttl

    def create(self, user_id: int, *, now: datetime | None = None) -> WizardSession:
        now = now or utc_now_naive()
        self._purge_expired(now)
        session = WizardSession(wizard_id=uuid.uuid4().hex, user_id=user_id, created_at=now)
        self._sessions[session.wizard_id] = session
        return session

    def get(self, wizard_id: str, user_id: int, *, now: datetime | None = None) -> WizardSession:
        session = self._sessions.get(wizard_id)
        if session is None or session.user_id != user_id:
            raise WizardNotFoundError("booking wizard not found")
        if self._expired(session, now or utc_now_naive()) and wizard_id not in self._checked_out:
            self.discard(wizard_id)
            raise WizardNotFoundError("booking wizard expired")
        return session

    def discard(self, wizard_id: str) -> None:
        self._sessions.pop(wizard_id, None)

    @contextmanager
    def checkout(self, wizard_id: str, user_id: int, gateway: ParkingGateway) -> Iterator[BookingWizard]:
        session = self.get(wizard_id, user_id)
        if wizard_id in self._checked_out:
            raise WizardBusyError("a request for this booking is already in progress")
        self._checked_out.add(wizard_id)
        wizard = BookingWizard(
            gateway,
            user_id=user_id,
            state=session.state,
            draft=copy.deepcopy(session.draft),
            errors=dict(session.errors),
            notice=session.notice,
        )
        completed = False
        try:
            yield wizard
            completed = True
        finally:
            self._checked_out.discard(wizard_id)
            if wizard.state == WizardState.SUBMITTED:
                self.discard(wizard_id)
            else:
                # A failed action keeps its field errors and notice, not its partial edits.
                if completed:
                    session.state = wizard.state
                    session.draft = wizard.draft
                session.errors = dict(wizard.errors)
                session.notice = wizard.notice

    def _expired(self, session: WizardSession, now: datetime) -> bool:
        return now - session.created_at > self._ttl

    def _purge_expired(self, now: datetime) -> None:
        expired = [
            wizard_id
            for wizard_id, session in self._sessions.items()
            if self._expired(session, now) and wizard_id not in self._checked_out
        ]
        for wizard_id in expired:
            del self._sessions[wizard_id]

    def __len__(self) -> int:
        return len(self._sessions)
