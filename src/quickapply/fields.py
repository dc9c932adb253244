"""Answering the empty free-text fields of a Regular wizard step.

Each field goes through up to ``max_attempts`` validation rounds:
probe with a throwaway character to surface the site's inline validation
message, ask for an answer that honours it, write the answer, and check
whether the message cleared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from quickapply import config
from quickapply import selectors as sel
from quickapply.answers import AnswerProvider, build_prompt
from quickapply.dom import DomQuery
from quickapply.errors import GenerationError, ValidationRejected

logger = logging.getLogger(__name__)

PROBE_TEXT = "a"
PLACEHOLDER_ANSWER = "."


@dataclass(frozen=True)
class FieldDescriptor:
    label: str
    element_id: str

    @property
    def input_selector(self) -> str:
        return sel.field_input(self.element_id)

    @property
    def error_selector(self) -> str:
        return sel.field_error(self.element_id)


def discover_empty_fields(form: DomQuery) -> list[FieldDescriptor]:
    """Labelled text inputs that are still empty. Re-read on every step."""
    inputs = form.text_inputs(sel.TEXT_INPUT_CONTAINER, sel.TEXT_INPUT_LABEL, sel.TEXT_INPUT)
    return [
        FieldDescriptor(label=field.label, element_id=field.element_id)
        for field in inputs
        if field.element_id and not field.value.strip()
    ]


class FieldFiller:
    """Fills text fields with generated answers until their validation clears."""

    def __init__(
        self,
        form: DomQuery,
        provider: AnswerProvider,
        max_attempts: int = int(config.DEFAULTS["field_attempts"]),
        probe_wait_ms: int = int(config.DEFAULTS["probe_wait_ms"]),
        field_pause_ms: int = int(config.DEFAULTS["field_pause_ms"]),
        element_wait_ms: int = int(config.DEFAULTS["form_wait_ms"]),
    ) -> None:
        self.form = form
        self.provider = provider
        self.max_attempts = max_attempts
        self.probe_wait_ms = probe_wait_ms
        self.field_pause_ms = field_pause_ms
        self.element_wait_ms = element_wait_ms

    def _probe(self, field: FieldDescriptor) -> str:
        """Type a throwaway character and return whatever validation message shows."""
        self.form.write(field.input_selector, PROBE_TEXT)
        self.form.pause(self.probe_wait_ms)
        message = self.form.text_of(field.error_selector) or ""
        if message:
            logger.info("[Text] Validation message for '%s': %s", field.label, message)
        else:
            logger.info("[Text] No validation message for '%s' after probe.", field.label)
        return message

    def _generate(self, field: FieldDescriptor, prompt: str) -> str:
        try:
            return self.provider.generate(prompt)
        except GenerationError as e:
            logger.error("[Text] Generation failed for '%s': %s. Using placeholder.", field.label, e)
            return PLACEHOLDER_ANSWER

    def answer_field(self, field: FieldDescriptor) -> str:
        """Fill one field and return the accepted answer.

        Raises:
            ValidationRejected: the validation message survived every attempt.
        """
        message = ""
        for attempt in range(1, self.max_attempts + 1):
            logger.info("[Text] Attempt %d/%d for '%s'", attempt, self.max_attempts, field.label)
            self.form.wait_for(field.input_selector, timeout_ms=self.element_wait_ms)

            message = self._probe(field) or message
            prompt = build_prompt(field.label, message)
            answer = self._generate(field, prompt)
            logger.info("[Text] Answer for '%s': %r", field.label, answer)

            self.form.write(field.input_selector, answer)
            self.form.pause(self.probe_wait_ms)

            if not self.form.exists(field.error_selector):
                return answer
            logger.warning("[Text] Validation message still shown for '%s', retrying.", field.label)

        raise ValidationRejected(field.label, message, self.max_attempts)

    def fill_step(self) -> int:
        """Answer every empty text field on the current step; return how many were filled."""
        fields = discover_empty_fields(self.form)
        logger.info("Found %d empty text field(s) on this step.", len(fields))
        for field in fields:
            self.answer_field(field)
            self.form.pause(self.field_pause_ms)
        return len(fields)
