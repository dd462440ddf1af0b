"""LLM text service: document summaries and document-grounded answers.

The OpenAI client is built once by ``create_llm_service`` and injected into
``LLMTextService``; nothing here keeps module-level client state. Azure
OpenAI is preferred when fully configured, plain OpenAI otherwise.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncAzureOpenAI, AsyncOpenAI

from app.config.logger import app_logger
from app.config.settings import Settings
from app.services.text_extraction import clamp_text


SUMMARY_SYSTEM_PROMPT = (
    "You summarize engineering documents for approval. Output concise bullet points, "
    "then a short 'Approval checklist' section."
)

ANSWER_SYSTEM_PROMPT = (
    "Answer ONLY from the provided document text. If the answer is not in the document, "
    "say: 'Not found in the document.' Keep it short and precise."
)

NOT_CONFIGURED_MESSAGE = (
    "The language model is not configured. Set AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_KEY "
    "and AZURE_OPENAI_DEPLOYMENT (or OPENAI_API_KEY)."
)


class LLMTextService:
    """Summarize documents and answer questions about them."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI],
        model: str,
        max_input_chars: int = 12000,
        max_question_chars: int = 800,
        summary_max_tokens: int = 600,
        answer_max_tokens: int = 700,
    ):
        self._client = client
        self._model = model
        self._max_input_chars = max_input_chars
        self._max_question_chars = max_question_chars
        self._summary_max_tokens = summary_max_tokens
        self._answer_max_tokens = answer_max_tokens

    @property
    def configured(self) -> bool:
        return self._client is not None

    @staticmethod
    def _user_content(prompt: str, images: Sequence[str]) -> Any:
        if not images:
            return prompt
        parts: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
        for url in images:
            parts.append({"type": "image_url", "image_url": {"url": url}})
        return parts

    async def _complete(self, system_prompt: str, user_content: Any, max_tokens: int) -> str:
        completion = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            max_completion_tokens=max_tokens,
        )
        content = completion.choices[0].message.content if completion.choices else None
        return (content or "").strip()

    async def summarize(self, text: str, images: Sequence[str] = ()) -> str:
        """Bullet-point summary with an approval checklist.

        Raises:
            openai.OpenAIError: If the completion request fails.
        """
        if not self.configured:
            return NOT_CONFIGURED_MESSAGE

        safe_text = clamp_text(text or "", self._max_input_chars)
        app_logger.info(f"Summarizing document text ({len(safe_text)} chars, {len(images)} image(s))")
        return await self._complete(
            SUMMARY_SYSTEM_PROMPT,
            self._user_content(f"Summarize this document:\n\n{safe_text}", images),
            self._summary_max_tokens,
        )

    async def answer(self, text: str, question: str, images: Sequence[str] = ()) -> str:
        """Answer ``question`` from the document text only.

        Raises:
            openai.OpenAIError: If the completion request fails.
        """
        if not self.configured:
            return NOT_CONFIGURED_MESSAGE

        safe_text = clamp_text(text or "", self._max_input_chars)
        safe_question = clamp_text(question or "", self._max_question_chars)
        app_logger.info(f"Answering question against document text ({len(safe_text)} chars)")
        return await self._complete(
            ANSWER_SYSTEM_PROMPT,
            self._user_content(f"Document:\n\n{safe_text}\n\nQuestion: {safe_question}", images),
            self._answer_max_tokens,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()


def create_llm_service(settings: Settings) -> LLMTextService:
    """Build the LLM service from settings, with no client when unconfigured."""
    client: Optional[AsyncOpenAI] = None
    model = settings.OPENAI_MODEL

    if settings.azure_openai_configured:
        client = AsyncAzureOpenAI(
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT.rstrip("/"),
            api_key=settings.AZURE_OPENAI_API_KEY,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            azure_deployment=settings.AZURE_OPENAI_DEPLOYMENT,
        )
        model = settings.AZURE_OPENAI_DEPLOYMENT
        app_logger.info(f"Azure OpenAI client initialized (deployment={model})")
    elif settings.OPENAI_API_KEY.strip():
        client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        app_logger.info(f"OpenAI client initialized (model={model})")
    else:
        app_logger.warning("No LLM credentials configured; summaries and answers are disabled")

    return LLMTextService(
        client=client,
        model=model,
        max_input_chars=settings.LLM_MAX_INPUT_CHARS,
        max_question_chars=settings.LLM_MAX_QUESTION_CHARS,
        summary_max_tokens=settings.LLM_SUMMARY_MAX_TOKENS,
        answer_max_tokens=settings.LLM_ANSWER_MAX_TOKENS,
    )
