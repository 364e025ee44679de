"""
AI API Client

Embedding and generation go through the openai library. The default
endpoint is Gemini's OpenAI-compatible API; any compatible provider works
by changing AI_BASE_URL and the model names.

AI is used ONLY for:
- embedding KB chunks and benchmark queries
- generating the salary benchmark from retrieved context
"""
import json
import logging
from typing import List

from openai import OpenAI, OpenAIError

from karirkit.core.config import get_settings
from karirkit.core.errors import AIServiceError, AIResponseError

logger = logging.getLogger(__name__)


class AIClient:
    """
    Wrapper for the embedding/generation API.
    """

    def __init__(self, client: OpenAI = None):
        settings = get_settings()
        self.client = client or OpenAI(
            api_key=settings.ai_api_key,
            base_url=settings.ai_base_url
        )
        self.model = settings.generation_model
        self.embedding_model = settings.embedding_model
        self.batch_size = settings.embedding_batch_size

    def _call_api(self, system_prompt: str, user_content: str, max_tokens: int = 1000) -> str:
        """
        Internal method to call the chat completion API.
        Returns raw text response.
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_content})

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=0.1  # Low temp for consistent structured output
            )
        except OpenAIError as e:
            logger.error("Generation request failed: %s", e)
            raise AIServiceError(f"AI generation failed: {e}") from e

        content = response.choices[0].message.content
        if not content:
            raise AIServiceError("Failed to generate response from AI")
        return content

    def extract_json(self, text: str):
        """
        Extract JSON from API response.
        Handles cases where model wraps JSON in markdown code blocks.
        """
        text = (text or "").strip()
        if text.startswith("```json"):
            text = text[7:]
        if text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]

        try:
            return json.loads(text.strip() or "{}")
        except json.JSONDecodeError as e:
            logger.error("Failed to parse AI response: %.200s", text)
            raise AIResponseError("AI returned invalid JSON format") from e

    def generate(self, prompt: str, max_tokens: int = 2000) -> str:
        """Single-prompt generation (no system message)."""
        return self._call_api("", prompt, max_tokens=max_tokens)

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        """
        Embed texts, batch_size inputs per request.
        Output order matches input order.
        """
        vectors: List[List[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start:start + self.batch_size]
            try:
                response = self.client.embeddings.create(
                    model=self.embedding_model,
                    input=batch
                )
            except OpenAIError as e:
                logger.error("Embedding request failed: %s", e)
                raise AIServiceError(f"AI embedding failed: {e}") from e

            ordered = sorted(response.data, key=lambda item: item.index)
            vectors.extend([float(x) for x in item.embedding] for item in ordered)
        return vectors

    def embed(self, text: str) -> List[float]:
        """Embed a single text."""
        return self.embed_many([text])[0]

    def test_connection(self) -> bool:
        """Test if the AI API is reachable"""
        try:
            response = self._call_api(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10
            )
            return "OK" in response.upper()
        except AIServiceError as e:
            logger.warning("AI connection failed: %s", e)
            return False


# Singleton instance
_ai_client: AIClient = None


def get_ai_client() -> AIClient:
    """Get or create AI client (singleton pattern)"""
    global _ai_client
    if _ai_client is None:
        _ai_client = AIClient()
    return _ai_client
