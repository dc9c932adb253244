"""Wizard navigation state machine.

WizardDriver repeatedly classifies the current step, dispatches one action
for it, and advances, until the application is submitted or the wizard is
closed, stalls, exhausts its step budget, or shows something unrecognized.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from quickapply import config
from quickapply import selectors as sel
from quickapply.dom import DomQuery
from quickapply.errors import (
    BudgetExhausted,
    IncompleteReason,
    ModalUnexpectedlyClosed,
    Stalled,
    TransientPageError,
    WizardAborted,
)
from quickapply.fields import FieldFiller
from quickapply.steps import PASS_THROUGH_STEPS, StepType, classify

logger = logging.getLogger(__name__)

# Aborts that leave the wizard open on the page.
_DISMISS_ON = frozenset(
    {IncompleteReason.STALLED, IncompleteReason.VALIDATION_REJECTED, IncompleteReason.BUDGET_EXHAUSTED}
)


class ApplicationStatus(str, Enum):
    SUBMITTED = "submitted"
    INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class ApplicationOutcome:
    status: ApplicationStatus
    steps: int
    reason: IncompleteReason | None = None
    detail: str = ""

    @classmethod
    def submitted(cls, steps: int) -> ApplicationOutcome:
        return cls(ApplicationStatus.SUBMITTED, steps)

    @classmethod
    def incomplete(cls, reason: IncompleteReason, steps: int, detail: str = "") -> ApplicationOutcome:
        return cls(ApplicationStatus.INCOMPLETE, steps, reason, detail)

    @property
    def is_submitted(self) -> bool:
        return self.status is ApplicationStatus.SUBMITTED


@dataclass
class WizardSession:
    """Per-wizard loop state; discarded when run() returns."""
    max_steps: int = 15
    step_count: int = 0
    previous_step_type: StepType | None = None
    same_step_streak: int = 0

    def observe(self, step: StepType) -> int:
        """Record a classification and return the updated same-step streak."""
        if step == self.previous_step_type:
            self.same_step_streak += 1
        else:
            self.same_step_streak = 0
        self.previous_step_type = step
        return self.same_step_streak


class WizardDriver:
    """Drives one open quick-apply wizard to a terminal outcome.

    Args:
        form: The page the wizard is rendered in.
        filler: Answers free-text fields on Regular steps.
        classifier: Step classifier, ``classify`` unless a test swaps it.
        max_steps: Iteration budget.
        stall_threshold: Same-step streak that counts as a stall.
        settle_ms: Pause between iterations for transitions to finish.
        advance_wait_ms: How long to wait for the form to change after "next".
        dry_run: Dismiss instead of submitting on the final step.
    """

    def __init__(
        self,
        form: DomQuery,
        filler: FieldFiller,
        classifier: Callable[[DomQuery], StepType] = classify,
        max_steps: int = int(config.DEFAULTS["max_steps"]),
        stall_threshold: int = int(config.DEFAULTS["stall_threshold"]),
        settle_ms: int = int(config.DEFAULTS["settle_ms"]),
        advance_wait_ms: int = int(config.DEFAULTS["advance_wait_ms"]),
        dry_run: bool = False,
    ) -> None:
        self.form = form
        self.filler = filler
        self.classifier = classifier
        self.max_steps = max_steps
        self.stall_threshold = stall_threshold
        self.settle_ms = settle_ms
        self.advance_wait_ms = advance_wait_ms
        self.dry_run = dry_run

    # -- main loop ------------------------------------------------------------

    def run(self) -> ApplicationOutcome:
        if not self.form.exists(sel.MODAL):
            logger.warning("Quick-apply wizard not found. Nothing to fill.")
            return ApplicationOutcome.incomplete(IncompleteReason.CLOSED, 0, "wizard not open")

        session = WizardSession(max_steps=self.max_steps)
        try:
            while True:
                self._guard_budget(session)
                step = self.classifier(self.form)
                streak = session.observe(step)
                logger.info("[Step %d] Detected %s", session.step_count + 1, step.value)
                self._guard_progress(session, streak)

                outcome = self._dispatch(step, session)
                if outcome is not None:
                    return outcome

                self.form.pause(self.settle_ms)
                session.step_count += 1
        except WizardAborted as exc:
            if exc.reason in _DISMISS_ON:
                self.dismiss()
            logger.warning("Wizard ended without submitting (%s): %s", exc.reason.value, exc)
            return ApplicationOutcome.incomplete(exc.reason, session.step_count, str(exc))

    def _guard_budget(self, session: WizardSession) -> None:
        if session.step_count >= session.max_steps:
            raise BudgetExhausted(f"Step budget of {session.max_steps} reached.")

    def _guard_progress(self, session: WizardSession, streak: int) -> None:
        if streak >= self.stall_threshold:
            raise Stalled(
                f"Step {session.previous_step_type.value} repeated {streak} times in a row."
            )
        if not self.form.exists(sel.MODAL):
            raise ModalUnexpectedlyClosed("Wizard closed while filling the form.")

    def _dispatch(self, step: StepType, session: WizardSession) -> ApplicationOutcome | None:
        if step in PASS_THROUGH_STEPS:
            logger.info("Step '%s' needs no input; moving on.", step.value)
            self.advance()
            return None

        if step is StepType.REGULAR:
            filled = self.filler.fill_step()
            logger.info("Filled %d field(s); moving on.", filled)
            self.advance()
            return None

        if step is StepType.REVIEW_FINAL:
            if self.dry_run:
                logger.info("Dry run: final step reached, dismissing instead of submitting.")
                self.dismiss()
                return ApplicationOutcome.incomplete(IncompleteReason.DRY_RUN, session.step_count + 1)
            self.submit()
            self.dismiss()
            logger.info("Application submitted.")
            return ApplicationOutcome.submitted(session.step_count + 1)

        if step is StepType.MODAL_CLOSED:
            return ApplicationOutcome.incomplete(
                IncompleteReason.CLOSED, session.step_count, "wizard closed unexpectedly"
            )

        logger.warning("No recognizable step. Stopping.")
        return ApplicationOutcome.incomplete(IncompleteReason.UNRECOGNIZED, session.step_count)

    # -- actions --------------------------------------------------------------

    def _press(self, selector: str) -> None:
        self.form.wait_for(selector, timeout_ms=self.advance_wait_ms)
        self.form.scroll_into_view(selector)
        self.form.click(selector, timeout_ms=self.advance_wait_ms)

    def advance(self) -> bool:
        """Click next/review and wait for the form to re-render. Never raises on timeout."""
        before = self.form.inner_html(sel.FORM)
        if before is None:
            return False
        try:
            self._press(sel.ADVANCE_BUTTON)
            self.form.wait_for_change(sel.FORM, before, timeout_ms=self.advance_wait_ms)
        except TransientPageError as e:
            logger.warning("Form did not change after pressing next: %s", e)
            return False
        return True

    def submit(self) -> None:
        self._press(sel.SUBMIT_BUTTON)

    def dismiss(self) -> bool:
        """Best-effort close of the wizard or its confirmation dialog."""
        try:
            self._press(sel.DISMISS_BUTTON)
            self.form.wait_for(sel.MODAL, timeout_ms=self.advance_wait_ms, state="detached")
        except TransientPageError as e:
            logger.warning("Could not dismiss the wizard: %s", e)
            return False
        return True
