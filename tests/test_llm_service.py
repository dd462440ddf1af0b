"""Tests for the LLM text service with an in-memory completions client."""

import asyncio
from types import SimpleNamespace

from app.config.settings import Settings
from app.services.llm_service import (
    ANSWER_SYSTEM_PROMPT,
    NOT_CONFIGURED_MESSAGE,
    SUMMARY_SYSTEM_PROMPT,
    LLMTextService,
    create_llm_service,
)


class FakeCompletions:
    def __init__(self, reply="  - point one\n"):
        self.reply = reply
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_service(**kwargs):
    completions = FakeCompletions()
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMTextService(client=client, model="test-model", **kwargs), completions


class TestLLMTextService:
    """Prompt construction and clamping."""

    def test_summarize_prompt(self):
        service, completions = make_service()

        result = asyncio.run(service.summarize("Pump pressure 10 bar"))

        assert result == "- point one"
        call = completions.calls[0]
        assert call["model"] == "test-model"
        assert call["max_completion_tokens"] == 600
        assert call["messages"][0] == {"role": "system", "content": SUMMARY_SYSTEM_PROMPT}
        assert call["messages"][1]["content"] == "Summarize this document:\n\nPump pressure 10 bar"

    def test_answer_clamps_text_and_question(self):
        service, completions = make_service(max_input_chars=5, max_question_chars=3)

        asyncio.run(service.answer("abcdefgh", "why not?"))

        call = completions.calls[0]
        assert call["max_completion_tokens"] == 700
        assert call["messages"][0]["content"] == ANSWER_SYSTEM_PROMPT
        assert call["messages"][1]["content"] == (
            "Document:\n\nabcde\n\n[TRUNCATED]\n\nQuestion: why\n\n[TRUNCATED]"
        )

    def test_images_become_content_parts(self):
        service, completions = make_service()

        asyncio.run(service.summarize("text", ["data:image/png;base64,AAAA"]))

        content = completions.calls[0]["messages"][1]["content"]
        assert content[0]["type"] == "text"
        assert content[1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}

    def test_unconfigured_service(self):
        service = LLMTextService(client=None, model="none")

        assert asyncio.run(service.summarize("x")) == NOT_CONFIGURED_MESSAGE
        assert asyncio.run(service.answer("x", "y")) == NOT_CONFIGURED_MESSAGE

    def test_factory_without_credentials(self):
        settings = Settings(AZURE_OPENAI_ENDPOINT="", AZURE_OPENAI_API_KEY="", OPENAI_API_KEY="")

        assert create_llm_service(settings).configured is False
