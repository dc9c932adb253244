"""Tests for the generation context window and AnswerProvider backoff."""

from __future__ import annotations

import threading
import time

import pytest

from quickapply.answers import AnswerProvider, GenerationContext, build_prompt
from quickapply.errors import RateLimited, UpstreamInvalidResponse


class FakeClient:
    """Scripted LLMClient: each entry is either a reply or an exception to raise."""

    def __init__(self, *script) -> None:
        self.script = list(script)
        self.calls: list[list[dict]] = []

    def chat(self, messages, temperature=0.7, max_tokens=150):
        self.calls.append(messages)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item


class TestBuildPrompt:
    def test_bare_label_without_constraint(self):
        assert build_prompt("  Years of experience ") == "Years of experience"

    def test_constraint_is_included_verbatim(self):
        prompt = build_prompt("Years of experience", "Enter a number between 0 and 50")
        assert prompt.startswith("Years of experience. ")
        assert "Enter a number between 0 and 50" in prompt


class TestGenerationContext:
    def test_never_exceeds_cap(self):
        context = GenerationContext(max_entries=5)
        for i in range(12):
            context.push("user", f"q{i}")
            assert len(context) <= 5

    def test_sixth_push_evicts_oldest(self):
        context = GenerationContext(max_entries=5)
        for i in range(6):
            context.push("user", f"q{i}")
        assert [m["content"] for m in context.messages()] == ["q1", "q2", "q3", "q4", "q5"]

    def test_seed_messages_are_pinned(self):
        context = GenerationContext(max_entries=5, seed=["persona", "resume summary"])
        for i in range(5):
            context.push("user", f"q{i}")

        messages = context.messages()
        assert len(messages) == 5
        assert messages[:2] == [
            {"role": "system", "content": "persona"},
            {"role": "system", "content": "resume summary"},
        ]
        assert [m["content"] for m in messages[2:]] == ["q2", "q3", "q4"]

    def test_seed_must_leave_room(self):
        with pytest.raises(ValueError):
            GenerationContext(max_entries=2, seed=["a", "b"])

    def test_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            GenerationContext().push("assistant", "hi")


class TestGenerate:
    def test_returns_trimmed_completion(self):
        client = FakeClient("  5 \n")
        provider = AnswerProvider(client, sleep=lambda s: None)

        assert provider.generate("Years of experience") == "5"
        assert client.calls[0][-1] == {"role": "user", "content": "Years of experience"}

    def test_rate_limited_twice_then_succeeds(self):
        client = FakeClient(RateLimited(429), RateLimited(429), "Seven years")
        waits: list[float] = []
        provider = AnswerProvider(client, max_retries=3, base_wait=5, sleep=waits.append)

        assert provider.generate("Experience?") == "Seven years"
        assert len(client.calls) == 3
        assert waits == [5, 10]
        assert all(later > earlier for earlier, later in zip(waits, waits[1:]))

    def test_retries_resend_the_same_prompt(self):
        client = FakeClient(RateLimited(429), "ok")
        provider = AnswerProvider(client, sleep=lambda s: None)

        provider.generate("Why us?")

        assert client.calls[0] == client.calls[1]
        assert len(provider.context) == 1

    def test_exhausted_retries_surface_rate_limit(self):
        client = FakeClient(RateLimited(429))
        waits: list[float] = []
        provider = AnswerProvider(client, max_retries=3, base_wait=2, sleep=waits.append)

        with pytest.raises(RateLimited):
            provider.generate("Experience?")
        assert len(client.calls) == 4
        assert waits == [2, 4, 6]

    def test_invalid_response_is_not_retried(self):
        client = FakeClient(UpstreamInvalidResponse("no choices"))
        provider = AnswerProvider(client, sleep=lambda s: None)

        with pytest.raises(UpstreamInvalidResponse):
            provider.generate("Experience?")
        assert len(client.calls) == 1

    def test_context_grows_across_prompts(self):
        client = FakeClient("a")
        provider = AnswerProvider(client, GenerationContext(5, seed=["persona"]), sleep=lambda s: None)

        for i in range(6):
            provider.generate(f"q{i}")

        last_messages = client.calls[-1]
        assert len(last_messages) == 5
        assert last_messages[0]["content"] == "persona"
        assert last_messages[-1]["content"] == "q5"

    def test_concurrent_callers_are_serialized(self):
        active = 0
        peak = 0
        guard = threading.Lock()

        class SlowClient:
            def chat(self, messages, temperature=0.7, max_tokens=150):
                nonlocal active, peak
                with guard:
                    active += 1
                    peak = max(peak, active)
                time.sleep(0.05)
                with guard:
                    active -= 1
                return "ok"

        provider = AnswerProvider(SlowClient(), poll_interval=0.01)
        threads = [threading.Thread(target=provider.generate, args=(f"q{i}",)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert peak == 1
