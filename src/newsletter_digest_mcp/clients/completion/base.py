from abc import ABC, abstractmethod


class BaseCompletionClient(ABC):
    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Send a single-turn prompt to the model and return its text response."""
