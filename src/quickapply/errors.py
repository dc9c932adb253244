"""Exception taxonomy shared by the wizard driver and its collaborators.

@file errors.py
@description Error hierarchy for page interaction, text generation, wizard
             termination and startup configuration. Callers decide per family
             whether to retry (transient page errors), back off (rate limits),
             or report and move on (wizard aborts).
"""

from __future__ import annotations

from enum import Enum


class IncompleteReason(str, Enum):
    """Why a wizard run ended without submitting."""

    CLOSED = "closed"
    STALLED = "stalled"
    BUDGET_EXHAUSTED = "budget_exhausted"
    UNRECOGNIZED = "unrecognized"
    VALIDATION_REJECTED = "validation_rejected"
    DRY_RUN = "dry_run"


class QuickApplyError(Exception):
    """Base class for every error raised by quickapply."""

    pass


class FatalConfig(QuickApplyError):
    """Raised at startup when a required credential or URL is missing."""

    def __init__(self, setting: str, hint: str = "") -> None:
        self.setting = setting
        message = f"Missing required setting {setting}."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Page interaction
# ---------------------------------------------------------------------------


class TransientPageError(QuickApplyError):
    """A page wait or lookup failed; retrying the whole job attempt may help."""

    def __init__(self, selector: str, detail: str = "") -> None:
        self.selector = selector
        message = f"{self.__class__.__name__}: {selector}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class NavigationTimeout(TransientPageError):
    """A wait-for-selector or wait-for-condition exceeded its timeout."""

    pass


class ElementNotFound(TransientPageError):
    """An element required for an action is not on the page."""

    pass


# ---------------------------------------------------------------------------
# Text generation
# ---------------------------------------------------------------------------


class GenerationError(QuickApplyError):
    """The generation endpoint failed to produce a usable completion."""

    pass


class RateLimited(GenerationError):
    """The generation endpoint answered with a rate-limit status."""

    def __init__(self, status_code: int = 429, retry_after: str | None = None) -> None:
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(f"Generation endpoint rate limited (HTTP {status_code})")


class UpstreamInvalidResponse(GenerationError):
    """The generation endpoint returned a payload without a completion."""

    pass


# ---------------------------------------------------------------------------
# Wizard termination
# ---------------------------------------------------------------------------


class WizardAborted(QuickApplyError):
    """The wizard cannot make progress; the job is reported, not retried."""

    reason: IncompleteReason = IncompleteReason.UNRECOGNIZED


class ModalUnexpectedlyClosed(WizardAborted):
    reason = IncompleteReason.CLOSED


class Stalled(WizardAborted):
    reason = IncompleteReason.STALLED


class BudgetExhausted(WizardAborted):
    reason = IncompleteReason.BUDGET_EXHAUSTED


class ValidationRejected(WizardAborted):
    """A field kept showing its validation error after every attempt."""

    reason = IncompleteReason.VALIDATION_REJECTED

    def __init__(self, label: str, message: str, attempts: int) -> None:
        self.label = label
        self.message = message
        self.attempts = attempts
        super().__init__(
            f"Field '{label}' still rejected after {attempts} attempts: {message}"
        )
