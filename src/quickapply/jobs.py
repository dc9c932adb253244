"""Job list on the search results page.

Loads (or reloads) the search URL, scrolls until lazy loading stops adding
list items, and reads one Job per card.
"""

from __future__ import annotations

import logging

from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from pydantic import BaseModel, Field

from quickapply import config
from quickapply import selectors as sel
from quickapply.errors import NavigationTimeout

log = logging.getLogger(__name__)


class Job(BaseModel):
    id: str
    display_name: str = ""
    quick_apply_eligible: bool = Field(False, alias="quickApply")

    model_config = {"populate_by_name": True}


_EXTRACT_JOBS_JS = """
(nodes, s) => nodes.map((node) => {
  const card = node.querySelector(s.card);
  if (!card) return null;
  const title = card.querySelector(s.title);
  const company = card.querySelector(s.company);
  const titleText = title ? title.innerText.trim() : '';
  const companyText = company ? company.innerText.trim() : '';
  const footer = Array.from(card.querySelectorAll(s.footer)).map((li) => li.textContent.trim().toLowerCase());
  return {
    id: node.getAttribute('data-occludable-job-id') || '',
    display_name: companyText && titleText ? `${companyText} - ${titleText}` : (titleText || companyText),
    quickApply: footer.some((text) => s.labels.includes(text)),
  };
}).filter((item) => item !== null)
"""


class JobList:
    """Lazy-loading job list for one search URL."""

    def __init__(self, page: Page, search_url: str) -> None:
        self.page = page
        self.search_url = search_url

    def load(self, timeout_ms: int = int(config.DEFAULTS["list_wait_ms"])) -> None:
        """Navigate to the search URL (reload if already there) and wait for the list."""
        log.info("Loading job list: %s", self.search_url)
        if self.page.url == self.search_url:
            self.page.reload(wait_until="domcontentloaded")
        else:
            self.page.goto(
                self.search_url,
                wait_until="domcontentloaded",
                timeout=int(config.DEFAULTS["page_load_ms"]),
            )
        try:
            self.page.wait_for_selector(sel.JOB_LIST_ITEM, timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(sel.JOB_LIST_ITEM, f"no jobs after {timeout_ms}ms") from exc

    def _count(self) -> int:
        return self.page.locator(sel.JOB_LIST_ITEM).count()

    def load_all(self, wait_ms: int = int(config.DEFAULTS["lazy_load_wait_ms"])) -> int:
        """Scroll one viewport at a time until the item count stops growing."""
        previous = 0
        current = self._count()
        log.info("Jobs loaded initially: %d", current)
        while current > previous:
            previous = current
            self.page.evaluate("() => window.scrollBy(0, window.innerHeight)")
            self.page.wait_for_timeout(wait_ms)
            current = self._count()
            log.debug("Jobs loaded after scroll: %d", current)
        log.info("Lazy loading finished with %d jobs.", current)
        return current

    def jobs(self) -> list[Job]:
        rows = self.page.eval_on_selector_all(
            sel.JOB_LIST_ITEM,
            _EXTRACT_JOBS_JS,
            {
                "card": sel.JOB_CARD,
                "title": sel.JOB_TITLE,
                "company": sel.JOB_COMPANY,
                "footer": sel.JOB_FOOTER_ITEM,
                "labels": sorted(sel.QUICK_APPLY_LABELS),
            },
        )
        jobs = [Job.model_validate(row) for row in rows]
        log.info("Found %d jobs (%d quick-apply).", len(jobs), sum(j.quick_apply_eligible for j in jobs))
        return jobs
