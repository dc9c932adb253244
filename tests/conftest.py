"""Shared fixtures for the quickapply test suite.

@file conftest.py
@description Scripted stand-ins for the page and the answer generator so the
             classifier, field filler, wizard driver and job runner can be
             tested offline and deterministically. No browser, no network.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from quickapply import selectors as sel
from quickapply.dom import DomQuery, TextInput
from quickapply.errors import ElementNotFound, NavigationTimeout


class FakeForm(DomQuery):
    """In-memory DomQuery.

    ``present`` holds selectors that currently match; ``errors`` maps
    error selectors to the message they show. ``on_click`` / ``on_write``
    let a test script how the page reacts.
    """

    def __init__(self) -> None:
        self.present: set[str] = set()
        self.visible: set[str] = set()
        self.headings: list[str] = []
        self.inputs: list[TextInput] = []
        self.errors: dict[str, str] = {}
        self.html = "<div>step-0</div>"
        self.on_click: dict[str, Callable[[], None]] = {}
        self.on_write: Callable[[str, str], None] | None = None
        self.clicks: list[str] = []
        self.writes: list[tuple[str, str]] = []
        self.pauses: list[int] = []

    # -- helpers for tests ------------------------------------------------

    def open_wizard(self) -> FakeForm:
        self.present |= {sel.MODAL, sel.FORM, sel.ADVANCE_BUTTON, sel.SUBMIT_BUTTON, sel.DISMISS_BUTTON}
        self.on_click.setdefault(sel.ADVANCE_BUTTON, self.rerender)
        self.on_click.setdefault(sel.DISMISS_BUTTON, self.close_wizard)
        return self

    def close_wizard(self) -> None:
        self.present -= {sel.MODAL, sel.FORM, sel.ADVANCE_BUTTON, sel.SUBMIT_BUTTON, sel.DISMISS_BUTTON}

    def rerender(self) -> None:
        self.html = f"<div>step-{len(self.clicks)}</div>"

    # -- DomQuery -----------------------------------------------------------

    def exists(self, selector: str) -> bool:
        return selector in self.present or selector in self.errors

    def is_visible(self, selector: str) -> bool:
        return selector in self.visible

    def texts(self, selector: str) -> list[str]:
        return list(self.headings) if selector == sel.HEADINGS else []

    def text_of(self, selector: str) -> str | None:
        return self.errors.get(selector)

    def inner_html(self, selector: str) -> str | None:
        return self.html if selector in self.present else None

    def text_inputs(self, container: str, label: str, field: str) -> list[TextInput]:
        return list(self.inputs)

    def write(self, selector: str, text: str) -> None:
        self.writes.append((selector, text))
        if self.on_write is not None:
            self.on_write(selector, text)

    def click(self, selector: str, timeout_ms: int = 10000) -> None:
        if selector not in self.present:
            raise ElementNotFound(selector)
        self.clicks.append(selector)
        handler = self.on_click.get(selector)
        if handler is not None:
            handler()

    def scroll_into_view(self, selector: str) -> None:
        pass

    def wait_for(self, selector: str, timeout_ms: int, state: str = "attached") -> None:
        if state in ("detached", "hidden"):
            if selector in self.present:
                raise NavigationTimeout(selector, "still present")
            return
        if selector not in self.present:
            raise NavigationTimeout(selector, "absent")

    def wait_for_change(self, selector: str, previous_html: str, timeout_ms: int) -> None:
        if self.html == previous_html:
            raise NavigationTimeout(selector, "unchanged")

    def pause(self, ms: int) -> None:
        self.pauses.append(ms)


class StubProvider:
    """Answer generator returning canned answers and recording prompts."""

    def __init__(self, *answers: str, error: Exception | None = None) -> None:
        self.answers = list(answers)
        self.error = error
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if len(self.answers) > 1:
            return self.answers.pop(0)
        return self.answers[0] if self.answers else "answer"


@pytest.fixture
def form() -> FakeForm:
    return FakeForm()


@pytest.fixture
def wizard_form() -> FakeForm:
    return FakeForm().open_wizard()
