"""Page capability consumed by the wizard core.

@file dom.py
@description DomQuery is the typed surface the classifier, field filler and
             driver use to observe and mutate the rendered wizard. PlaywrightForm
             implements it once against a sync Playwright Page; tests use a
             scripted fake. Every wait is bounded and a timeout surfaces as
             NavigationTimeout or ElementNotFound.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from quickapply.errors import ElementNotFound, NavigationTimeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextInput:
    """One labelled free-text input as currently rendered."""
    label: str
    element_id: str
    value: str
    required: bool = False


class DomQuery(ABC):
    """Observe and mutate one rendered form. All calls are serialized by the caller."""

    @abstractmethod
    def exists(self, selector: str) -> bool:
        """True if at least one element matches right now."""
        ...

    @abstractmethod
    def is_visible(self, selector: str) -> bool:
        ...

    @abstractmethod
    def texts(self, selector: str) -> list[str]:
        """Inner text of every match, in document order."""
        ...

    @abstractmethod
    def text_of(self, selector: str) -> str | None:
        """Trimmed text of the first match, or None if nothing matches."""
        ...

    @abstractmethod
    def inner_html(self, selector: str) -> str | None:
        ...

    @abstractmethod
    def text_inputs(self, container: str, label: str, field: str) -> list[TextInput]:
        """Every container that holds both a label and an input."""
        ...

    @abstractmethod
    def write(self, selector: str, text: str) -> None:
        """Clear the field and type ``text`` into it."""
        ...

    @abstractmethod
    def click(self, selector: str, timeout_ms: int = 10000) -> None:
        ...

    @abstractmethod
    def scroll_into_view(self, selector: str) -> None:
        ...

    @abstractmethod
    def wait_for(self, selector: str, timeout_ms: int, state: str = "attached") -> None:
        """Wait until ``selector`` reaches ``state`` (attached, detached, visible, hidden)."""
        ...

    @abstractmethod
    def wait_for_change(self, selector: str, previous_html: str, timeout_ms: int) -> None:
        """Wait until the inner HTML of ``selector`` differs from ``previous_html``."""
        ...

    @abstractmethod
    def pause(self, ms: int) -> None:
        ...


_COLLECT_TEXT_INPUTS_JS = """
(containers, [labelSel, inputSel]) => containers.map((container) => {
  const label = container.querySelector(labelSel);
  const input = container.querySelector(inputSel);
  if (!label || !input) return null;
  return {
    label: label.innerText.trim(),
    element_id: input.getAttribute('id') || '',
    value: input.value || '',
    required: input.required || input.getAttribute('aria-required') === 'true',
  };
}).filter((item) => item !== null)
"""

_HTML_CHANGED_JS = """
([selector, previous]) => {
  const el = document.querySelector(selector);
  return el !== null && el.innerHTML !== previous;
}
"""


class PlaywrightForm(DomQuery):
    """DomQuery over a sync Playwright page."""

    def __init__(self, page: Page, type_delay_ms: int = 50) -> None:
        self.page = page
        self.type_delay_ms = type_delay_ms

    def exists(self, selector: str) -> bool:
        return self.page.query_selector(selector) is not None

    def is_visible(self, selector: str) -> bool:
        return self.page.locator(selector).first.is_visible()

    def texts(self, selector: str) -> list[str]:
        return self.page.locator(selector).all_inner_texts()

    def text_of(self, selector: str) -> str | None:
        element = self.page.query_selector(selector)
        if element is None:
            return None
        return (element.text_content() or "").strip()

    def inner_html(self, selector: str) -> str | None:
        element = self.page.query_selector(selector)
        if element is None:
            return None
        return element.inner_html()

    def text_inputs(self, container: str, label: str, field: str) -> list[TextInput]:
        rows = self.page.eval_on_selector_all(container, _COLLECT_TEXT_INPUTS_JS, [label, field])
        return [TextInput(**row) for row in rows]

    def write(self, selector: str, text: str) -> None:
        locator = self.page.locator(selector).first
        try:
            locator.fill("")
            locator.focus()
            locator.press_sequentially(text, delay=self.type_delay_ms)
        except PlaywrightTimeoutError as exc:
            raise ElementNotFound(selector, "not writable") from exc

    def click(self, selector: str, timeout_ms: int = 10000) -> None:
        try:
            self.page.locator(selector).first.click(timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise ElementNotFound(selector, f"not clickable within {timeout_ms}ms") from exc

    def scroll_into_view(self, selector: str) -> None:
        try:
            self.page.locator(selector).first.scroll_into_view_if_needed()
        except PlaywrightError as exc:
            logger.debug("scroll_into_view(%s) failed: %s", selector, exc)

    def wait_for(self, selector: str, timeout_ms: int, state: str = "attached") -> None:
        try:
            self.page.wait_for_selector(selector, state=state, timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(selector, f"not {state} within {timeout_ms}ms") from exc

    def wait_for_change(self, selector: str, previous_html: str, timeout_ms: int) -> None:
        try:
            self.page.wait_for_function(_HTML_CHANGED_JS, arg=[selector, previous_html], timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(selector, f"unchanged after {timeout_ms}ms") from exc

    def pause(self, ms: int) -> None:
        self.page.wait_for_timeout(ms)
