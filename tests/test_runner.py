"""Tests for the outer job loop."""

from __future__ import annotations

import pytest

from quickapply import selectors as sel
from quickapply.errors import ElementNotFound, FatalConfig
from quickapply.jobs import Job
from quickapply.results import JobResult
from quickapply.runner import JobRunner

from conftest import StubProvider


def _runner(form, **kwargs) -> JobRunner:
    kwargs.setdefault("pace", lambda: None)
    kwargs.setdefault("sleep", lambda s: None)
    return JobRunner(form, StubProvider("answer"), **kwargs)


def _job(job_id: str, eligible: bool = True) -> Job:
    return Job(id=job_id, display_name=f"Company - Role {job_id}", quick_apply_eligible=eligible)


def _show_job(form, job_id: str, quick_apply: bool = True) -> None:
    form.present |= {sel.job_list_item(job_id), sel.JOB_DETAILS}
    if quick_apply:
        form.present.add(sel.QUICK_APPLY_BUTTON)
        form.on_click[sel.QUICK_APPLY_BUTTON] = form.open_wizard


class TestJobLoop:
    def test_ineligible_jobs_are_skipped_without_attempt(self, form):
        runner = _runner(form)
        attempted = []
        runner.apply = lambda job: attempted.append(job) or JobResult(job.id, job.display_name, "submitted")

        results = runner.run([_job("1", eligible=False), _job("2")])

        assert [r.status for r in results] == ["skipped", "submitted"]
        assert results[0].reason == "not_eligible"
        assert [job.id for job in attempted] == ["2"]

    def test_limit_counts_attempted_jobs(self, form):
        runner = _runner(form)
        runner.apply = lambda job: JobResult(job.id, job.display_name, "submitted")

        results = runner.run([_job("1"), _job("2", eligible=False), _job("3"), _job("4")], limit=2)

        assert [r.job_id for r in results] == ["1", "2", "3"]

    def test_results_reported_as_they_happen(self, form):
        runner = _runner(form)
        runner.apply = lambda job: JobResult(job.id, job.display_name, "submitted")
        seen: list[str] = []

        runner.run([_job("1"), _job("2")], on_result=lambda r: seen.append(r.job_id))

        assert seen == ["1", "2"]

    def test_pacing_between_attempted_jobs(self, form):
        paced = []
        runner = _runner(form, pace=lambda: paced.append(1))
        runner.apply = lambda job: JobResult(job.id, job.display_name, "submitted")

        runner.run([_job("1"), _job("2", eligible=False), _job("3")])

        assert len(paced) == 2


class TestApply:
    def test_missing_element_retried_then_abandoned(self, form):
        waits: list[float] = []
        runner = _runner(form, retries=3, retry_delay=3, sleep=waits.append)
        calls = []
        original = runner.attempt

        def counting_attempt(job):
            calls.append(job.id)
            return original(job)

        runner.attempt = counting_attempt
        _show_job(form, "2")
        form.visible.add(sel.SUBMIT_BUTTON)

        results = runner.run([_job("1"), _job("2")])

        assert calls.count("1") == 4
        assert waits == [3, 3, 3]
        assert results[0].status == "failed"
        assert results[0].reason == "ElementNotFound"
        assert results[1].status == "submitted"

    def test_retry_starts_with_leftover_wizard_dismissed(self, form):
        _show_job(form, "7")
        form.visible.add(sel.SUBMIT_BUTTON)
        failures = [ElementNotFound(sel.SUBMIT_BUTTON, "detached mid-click")]

        def flaky_submit():
            if failures:
                raise failures.pop()

        form.on_click[sel.SUBMIT_BUTTON] = flaky_submit

        result = _runner(form).apply(_job("7"))

        assert result.status == "submitted"
        assert form.clicks == [
            sel.job_list_item("7"),
            sel.QUICK_APPLY_BUTTON,
            sel.SUBMIT_BUTTON,
            sel.DISMISS_BUTTON,
            sel.job_list_item("7"),
            sel.QUICK_APPLY_BUTTON,
            sel.SUBMIT_BUTTON,
            sel.DISMISS_BUTTON,
        ]

    def test_submitted_flow(self, form):
        _show_job(form, "7")
        form.visible.add(sel.SUBMIT_BUTTON)

        result = _runner(form).apply(_job("7"))

        assert result.status == "submitted"
        assert result.steps == 1
        assert form.clicks == [
            sel.job_list_item("7"),
            sel.QUICK_APPLY_BUTTON,
            sel.SUBMIT_BUTTON,
            sel.DISMISS_BUTTON,
        ]
        assert sel.MODAL not in form.present

    def test_dry_run_never_submits(self, form):
        _show_job(form, "7")
        form.visible.add(sel.SUBMIT_BUTTON)

        result = _runner(form, dry_run=True).apply(_job("7"))

        assert result.status == "incomplete"
        assert result.reason == "dry_run"
        assert sel.SUBMIT_BUTTON not in form.clicks

    def test_no_quick_apply_button_is_skipped(self, form):
        _show_job(form, "7", quick_apply=False)

        result = _runner(form).apply(_job("7"))

        assert result.status == "skipped"
        assert result.reason == "no_quick_apply"

    def test_incomplete_wizard_reports_reason(self, form):
        _show_job(form, "7")
        form.headings = ["Contact info"]
        form.on_click[sel.ADVANCE_BUTTON] = lambda: None

        result = _runner(form).apply(_job("7"))

        assert result.status == "incomplete"
        assert result.reason == "stalled"

    def test_unexpected_error_fails_the_job_only(self, form):
        runner = _runner(form)

        def broken(job):
            raise RuntimeError("page crashed")

        runner.attempt = broken
        result = runner.apply(_job("1"))

        assert result.status == "failed"
        assert "RuntimeError" in result.reason

    def test_fatal_config_propagates(self, form):
        runner = _runner(form)

        def needs_login(job):
            raise FatalConfig("SITE_USERNAME")

        runner.attempt = needs_login
        with pytest.raises(FatalConfig):
            runner.apply(_job("1"))


class TestEnsureNoModalOpen:
    def test_closed_wizard_needs_nothing(self, form):
        _runner(form).ensure_no_modal_open()
        assert form.clicks == []

    def test_open_wizard_is_dismissed(self, wizard_form):
        _runner(wizard_form).ensure_no_modal_open()
        assert wizard_form.clicks == [sel.DISMISS_BUTTON]
        assert sel.MODAL not in wizard_form.present

    def test_dismiss_failure_is_not_raised(self, wizard_form):
        wizard_form.on_click[sel.DISMISS_BUTTON] = lambda: None
        _runner(wizard_form).ensure_no_modal_open()
        assert wizard_form.clicks == [sel.DISMISS_BUTTON]