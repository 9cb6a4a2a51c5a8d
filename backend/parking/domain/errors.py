from __future__ import annotations


class DomainError(Exception):
    """Base class for errors raised by the booking domain."""


class InvalidTimeIntervalError(DomainError, ValueError):
    """Exit time is not after entry time."""


class WizardValidationError(DomainError):
    """Required fields for the current wizard step are missing."""

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("; ".join(errors.values()) or "validation failed")
        self.errors = dict(errors)


class IllegalTransitionError(DomainError):
    def __init__(self, state: str, action: str) -> None:
        super().__init__(f"cannot {action} from step {state}")
        self.state = state
        self.action = action


class WizardBusyError(DomainError):
    """A wizard action is still awaiting the backend."""


class WizardNotFoundError(DomainError):
    pass


class GatewayError(DomainError):
    """A read or write against the parking backend failed."""


class SubmissionError(DomainError):
    """The booking submission sequence stopped at `step`.

    `unreconciled` lists compensating actions that could not be applied and
    need manual cleanup.
    """

    def __init__(self, step: str, message: str, *, unreconciled: list[str] | None = None) -> None:
        super().__init__(f"{step} failed: {message}")
        self.step = step
        self.message = message
        self.unreconciled = list(unreconciled or [])


class BookingNotFoundError(DomainError):
    pass


class CancelNotAllowedError(DomainError):
    pass
