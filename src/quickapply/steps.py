"""Step classification for the quick-apply wizard.

classify() inspects the current form and returns exactly one StepType.
Checks run in a fixed order and the first match wins, because transitional
DOM states can satisfy several conditions at once.
"""

from __future__ import annotations

import logging
import re
from enum import Enum

from quickapply import config
from quickapply import selectors as sel
from quickapply.dom import DomQuery
from quickapply.errors import NavigationTimeout

logger = logging.getLogger(__name__)


class StepType(str, Enum):
    MODAL_CLOSED = "ModalClosed"
    CONTACT_INFO = "ContactInfo"
    CURRICULUM = "Curriculum"
    RESUME = "Resume"
    FAVORITE = "Favorite"
    REGULAR = "Regular"
    REVIEW_FINAL = "ReviewFinal"
    DONE = "Done"


# Steps that only need the "next" button.
PASS_THROUGH_STEPS = frozenset({
    StepType.CONTACT_INFO,
    StepType.CURRICULUM,
    StepType.RESUME,
    StepType.FAVORITE,
})


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip().lower()


def has_empty_required_input(form: DomQuery) -> bool:
    inputs = form.text_inputs(sel.TEXT_INPUT_CONTAINER, sel.TEXT_INPUT_LABEL, sel.TEXT_INPUT)
    return any(field.required and not field.value.strip() for field in inputs)


def classify(form: DomQuery, form_wait_ms: int = int(config.DEFAULTS["form_wait_ms"])) -> StepType:
    """Return the StepType of the wizard as currently rendered."""
    if not form.exists(sel.MODAL):
        return StepType.MODAL_CLOSED

    try:
        form.wait_for(sel.FORM, timeout_ms=form_wait_ms)
    except NavigationTimeout:
        if not form.exists(sel.MODAL):
            return StepType.MODAL_CLOSED
        return StepType.DONE

    headings = [_normalize(text) for text in form.texts(sel.HEADINGS)]

    if any(h in sel.CONTACT_INFO_HEADINGS for h in headings):
        return StepType.CONTACT_INFO
    if any(h in sel.CURRICULUM_HEADINGS for h in headings):
        return StepType.CURRICULUM
    if any(sel.RESUME_KEYWORD in h for h in headings):
        return StepType.RESUME
    if any(keyword in h for h in headings for keyword in sel.FAVORITE_KEYWORDS):
        return StepType.FAVORITE
    if has_empty_required_input(form):
        return StepType.REGULAR
    if form.is_visible(sel.SUBMIT_BUTTON):
        return StepType.REVIEW_FINAL
    return StepType.DONE
