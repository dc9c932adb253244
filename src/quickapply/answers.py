"""Free-text answer generation for wizard questions.

AnswerProvider owns a short sliding message history (GenerationContext),
serializes its own generation calls, and backs off on rate limits with a
bounded, strictly increasing delay.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence

from quickapply import config
from quickapply.errors import RateLimited
from quickapply.llm import LLMClient

log = logging.getLogger(__name__)


def build_prompt(label: str, constraint: str = "") -> str:
    """Turn a field label (and any inline validation message) into a prompt."""
    label = label.strip()
    constraint = constraint.strip()
    if not constraint:
        return label
    return (
        f"{label}. Constraints: {constraint}. "
        "Reply only with a value that satisfies these constraints."
    )


class GenerationContext:
    """Role-tagged message history capped at ``max_entries``.

    Persona messages passed as ``seed`` are pinned: they count toward the
    cap but eviction always removes the oldest non-pinned entry instead.
    """

    def __init__(self, max_entries: int = 5, seed: Sequence[str] = ()) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if len(seed) >= max_entries:
            raise ValueError(
                f"{len(seed)} seed messages leave no room for prompts (max_entries={max_entries})"
            )
        self.max_entries = max_entries
        self._pinned = [{"role": "system", "content": text} for text in seed]
        self._recent: list[dict[str, str]] = []

    def push(self, role: str, content: str) -> None:
        if role not in ("system", "user"):
            raise ValueError(f"Unsupported role '{role}'")
        self._recent.append({"role": role, "content": content})
        while len(self) > self.max_entries:
            self._recent.pop(0)

    def messages(self) -> list[dict[str, str]]:
        return [dict(m) for m in self._pinned + self._recent]

    def __len__(self) -> int:
        return len(self._pinned) + len(self._recent)


class AnswerProvider:
    """Generates one trimmed completion per prompt.

    Args:
        client: Chat endpoint client.
        context: Message history shared by every prompt of this provider.
        max_retries: Rate-limit retries per prompt (total calls <= max_retries + 1).
        base_wait: Seconds to wait before the first retry; retry n waits n * base_wait.
        poll_interval: Seconds between "still busy" log lines while waiting for the lock.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        client: LLMClient,
        context: GenerationContext | None = None,
        max_retries: int = int(config.DEFAULTS["generation_retries"]),
        base_wait: float = config.DEFAULTS["rate_limit_base_wait"],
        poll_interval: float = config.DEFAULTS["busy_poll_interval"],
        temperature: float = config.DEFAULTS["temperature"],
        max_tokens: int = int(config.DEFAULTS["max_tokens"]),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.context = context or GenerationContext(int(config.DEFAULTS["context_size"]))
        self.max_retries = max_retries
        self.base_wait = base_wait
        self.poll_interval = poll_interval
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._sleep = sleep
        self._lock = threading.Lock()

    def backoff_delay(self, retry_number: int) -> float:
        """Seconds to wait before retry ``retry_number`` (1-based)."""
        return self.base_wait * retry_number

    def generate(self, prompt: str) -> str:
        """Append ``prompt`` to the context and return the completion text.

        Raises:
            RateLimited: still rate limited after ``max_retries`` retries.
            GenerationError: any other endpoint failure, unretried.
        """
        while not self._lock.acquire(timeout=self.poll_interval):
            log.warning("Generation already in progress. Waiting...")

        try:
            self.context.push("user", prompt)
            messages = self.context.messages()

            retry_number = 0
            while True:
                try:
                    answer = self.client.chat(
                        messages,
                        temperature=self.temperature,
                        max_tokens=self.max_tokens,
                    )
                    return answer.strip()
                except RateLimited as exc:
                    if retry_number >= self.max_retries:
                        log.error("Still rate limited after %d retries, giving up.", retry_number)
                        raise
                    retry_number += 1
                    wait = self.backoff_delay(retry_number)
                    log.warning(
                        "Generation rate limited (HTTP %s, Retry-After=%s). Waiting %.1fs before retry %d/%d.",
                        exc.status_code, exc.retry_after, wait, retry_number, self.max_retries,
                    )
                    self._sleep(wait)
        finally:
            self._lock.release()
