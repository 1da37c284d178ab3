import os
from typing import override

from openai import AsyncOpenAI

from newsletter_digest_mcp.clients.completion.base import BaseCompletionClient
from newsletter_digest_mcp.errors import ConfigurationError

MODEL_ENV_VAR = "OPENAI_MODEL"
API_KEY_ENV_VAR = "OPENAI_API_KEY"
BASE_URL_ENV_VAR = "OPENAI_BASE_URL"


class OpenAICompletionClient(BaseCompletionClient):
    """Completes prompts against any OpenAI-compatible chat completions endpoint."""

    def __init__(self, model: str, client: AsyncOpenAI, temperature: float = 0.3, top_p: float = 0.8):
        self.model = model
        self.client = client
        self.temperature = temperature
        self.top_p = top_p

    @classmethod
    def from_env(cls) -> "OpenAICompletionClient":
        if not (model := os.getenv(MODEL_ENV_VAR)):
            msg = f"You must set the {MODEL_ENV_VAR} environment variable"
            raise ConfigurationError(msg)

        return cls(
            model=model,
            client=AsyncOpenAI(api_key=os.getenv(API_KEY_ENV_VAR), base_url=os.getenv(BASE_URL_ENV_VAR)),
        )

    @classmethod
    def is_configured(cls) -> bool:
        return any(os.getenv(var) for var in [MODEL_ENV_VAR, API_KEY_ENV_VAR, BASE_URL_ENV_VAR])

    @override
    async def complete(self, prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            top_p=self.top_p,
        )

        if not response.choices:
            return ""

        return (response.choices[0].message.content or "").strip()
