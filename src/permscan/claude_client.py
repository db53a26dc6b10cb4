import os
from typing import Iterable, Literal, Optional

from anthropic import Anthropic

from permscan.errors import ConfigError

Role = Literal["user", "assistant"]

DEFAULT_MODEL = "claude-haiku-4-5"


class ClaudeClient:
    def __init__(self, model: str = DEFAULT_MODEL, api_key: str | None = None):
        key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not key:
            msg = "ANTHROPIC_API_KEY is not set; it is required for --review ai."
            raise ConfigError(msg)
        self._client = Anthropic(api_key=key)
        self.model = model

    def complete(
        self,
        messages: Iterable[tuple[Role, str]],
        max_tokens: int = 512,
        system: Optional[str] = None,
    ) -> str:
        payload = [
            {"role": role, "content": [{"type": "text", "text": text}]}
            for role, text in messages
        ]
        kwargs = {"system": system} if system else {}
        resp = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=0,
            messages=payload,
            **kwargs,
        )
        return "".join(content.text for content in resp.content if content.type == "text")
