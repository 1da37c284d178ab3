from typing import override

from fastmcp import Context
from mcp.types import SamplingMessage, TextContent

from newsletter_digest_mcp.clients.completion.base import BaseCompletionClient
from newsletter_digest_mcp.errors import CompletionError


class SamplingCompletionClient(BaseCompletionClient):
    """Completes prompts by asking the MCP client (or the server's sampling handler) to sample."""

    def __init__(self, context: Context, temperature: float = 0.3):
        self.context = context
        self.temperature = temperature

    @override
    async def complete(self, prompt: str) -> str:
        sampling_message = SamplingMessage(
            role="user",
            content=TextContent(type="text", text=prompt),
        )

        response = await self.context.sample(
            messages=[sampling_message],
            temperature=self.temperature,
        )

        if not isinstance(response, TextContent):
            msg = "Sampling did not return text content"
            raise CompletionError(msg)

        return response.text.strip()
