"""Outer job loop: select a job, open its wizard, drive it, record the result.

Each job attempt (select -> open wizard -> drive wizard) is retried as one
unit on transient page errors. A job that still fails is abandoned and the
loop moves on; no single job failure aborts the run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from quickapply import config
from quickapply import selectors as sel
from quickapply.answers import AnswerProvider
from quickapply.dom import DomQuery
from quickapply.errors import FatalConfig, TransientPageError
from quickapply.fields import FieldFiller
from quickapply.jobs import Job
from quickapply.pacing import jitter
from quickapply.results import JobResult
from quickapply.retry import retry
from quickapply.wizard import ApplicationOutcome, WizardDriver

logger = logging.getLogger(__name__)


def _pace_between_jobs() -> None:
    jitter(int(config.DEFAULTS["between_jobs_min_ms"]), int(config.DEFAULTS["between_jobs_max_ms"]))


class JobRunner:
    """Applies to a sequence of jobs through their quick-apply wizards.

    Args:
        form: Page capability shared by every step; used strictly sequentially.
        provider: Answer generator for free-text fields.
        max_steps: Step budget per wizard.
        dry_run: Drive wizards but never submit.
        retries: Extra attempts per job on transient page errors.
        retry_delay: Seconds between job attempts.
        pace: Called between jobs.
        sleep: Used by the retry policy; injected for tests.
    """

    def __init__(
        self,
        form: DomQuery,
        provider: AnswerProvider,
        max_steps: int = int(config.DEFAULTS["max_steps"]),
        dry_run: bool = False,
        retries: int = int(config.DEFAULTS["job_retries"]),
        retry_delay: float = config.DEFAULTS["job_retry_delay"],
        pace: Callable[[], None] = _pace_between_jobs,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.form = form
        self.provider = provider
        self.max_steps = max_steps
        self.dry_run = dry_run
        self.retries = retries
        self.retry_delay = retry_delay
        self.pace = pace
        self._sleep = sleep
        self.element_wait_ms = int(config.DEFAULTS["element_wait_ms"])

    # -- single job -----------------------------------------------------------

    def select_job(self, job: Job) -> None:
        self.form.click(sel.job_list_item(job.id), timeout_ms=self.element_wait_ms)
        self.form.wait_for(sel.JOB_DETAILS, timeout_ms=self.element_wait_ms)

    def open_wizard(self) -> None:
        self.form.wait_for(sel.QUICK_APPLY_BUTTON, timeout_ms=self.element_wait_ms, state="visible")
        self.form.click(sel.QUICK_APPLY_BUTTON, timeout_ms=self.element_wait_ms)
        self.form.wait_for(sel.MODAL, timeout_ms=self.element_wait_ms)
        logger.info("Quick-apply wizard open.")

    def make_driver(self) -> WizardDriver:
        return WizardDriver(
            self.form,
            FieldFiller(self.form, self.provider),
            max_steps=self.max_steps,
            dry_run=self.dry_run,
        )

    def attempt(self, job: Job) -> ApplicationOutcome | None:
        """One attempt at one job. Returns None when the detail pane has no quick-apply button."""
        self.ensure_no_modal_open()
        logger.info("Opening job %s (ID: %s)", job.display_name, job.id)
        self.select_job(job)
        if not self.form.exists(sel.QUICK_APPLY_BUTTON):
            logger.info("Job '%s' has no quick-apply button. Skipping.", job.display_name)
            return None
        self.open_wizard()
        return self.make_driver().run()

    def ensure_no_modal_open(self) -> None:
        """Make sure no wizard is left open by an earlier attempt; force-dismiss if one is."""
        try:
            self.form.wait_for(sel.MODAL, timeout_ms=10000, state="detached")
            return
        except TransientPageError:
            logger.warning("Wizard still open. Forcing it closed...")

        if not self.form.exists(sel.DISMISS_BUTTON):
            logger.warning("No dismiss control found; the wizard stays open.")
            return
        try:
            self.form.click(sel.DISMISS_BUTTON)
            self.form.wait_for(sel.MODAL, timeout_ms=10000, state="detached")
        except TransientPageError as e:
            logger.warning("Could not force the wizard closed: %s", e)

    def apply(self, job: Job) -> JobResult:
        """Apply to one job with bounded retries; never raises for page failures."""
        retry_kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
        try:
            outcome = retry(
                lambda: self.attempt(job),
                max_retries=self.retries,
                delay=self.retry_delay,
                retry_on=(TransientPageError,),
                **retry_kwargs,
            )
        except FatalConfig:
            raise
        except TransientPageError as e:
            logger.error("Abandoning job '%s' after %d attempts: %s", job.display_name, self.retries + 1, e)
            return JobResult(job.id, job.display_name, "failed", type(e).__name__)
        except Exception as e:
            logger.exception("Unexpected error on job '%s'", job.display_name)
            return JobResult(job.id, job.display_name, "failed", f"{type(e).__name__}: {e}"[:120])
        finally:
            self.ensure_no_modal_open()

        if outcome is None:
            return JobResult(job.id, job.display_name, "skipped", "no_quick_apply")
        if outcome.is_submitted:
            return JobResult(job.id, job.display_name, "submitted", steps=outcome.steps)
        return JobResult(job.id, job.display_name, "incomplete", outcome.reason.value, outcome.steps)

    # -- job loop -------------------------------------------------------------

    def run(
        self,
        jobs: Iterable[Job],
        limit: int = 0,
        on_result: Callable[[JobResult], None] | None = None,
    ) -> list[JobResult]:
        """Apply to every eligible job (at most ``limit`` if non-zero)."""
        results: list[JobResult] = []
        attempted = 0
        for job in jobs:
            if limit and attempted >= limit:
                logger.info("Reached the limit of %d job(s).", limit)
                break

            if not job.quick_apply_eligible:
                logger.info("Job '%s' is not quick-apply. Skipping.", job.display_name)
                result = JobResult(job.id, job.display_name, "skipped", "not_eligible")
            else:
                attempted += 1
                result = self.apply(job)
                logger.info("Job '%s': %s %s", job.display_name, result.status, result.reason)
                self.pace()

            results.append(result)
            if on_result is not None:
                on_result(result)
        return results
