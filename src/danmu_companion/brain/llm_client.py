"""LLM Client - OpenAI-compatible chat completions (Doubao by default)."""

from __future__ import annotations

from typing import Optional

from openai import AsyncOpenAI


FALLBACK_REPLY = "Sorry, I didn't catch that."


def build_messages(
    system_prompt: str,
    user_message: str,
    context: Optional[str] = None,
) -> list[dict[str, str]]:
    """Build the message list for one viewer message.

    The context line (who said it, where) is appended to the system prompt
    so the user turn stays exactly what the viewer typed.
    """
    system_content = system_prompt
    if context:
        system_content += f"\nContext: {context}"

    return [
        {"role": "system", "content": system_content},
        {"role": "user", "content": user_message},
    ]


class LLMClient:
    """Client for an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int = 200,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._max_tokens = max_tokens
        if client is not None:
            self._client = client
        elif base_url:
            self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        else:
            self._client = AsyncOpenAI(api_key=api_key)

    async def generate(
        self,
        user_message: str,
        context: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Generate a reply for one viewer message.

        Args:
            user_message: What the viewer said.
            context: Optional one-line description of the situation.
            system_prompt: Overrides the client's default prompt (a page
                config may carry its own).
        """
        messages = build_messages(
            system_prompt or self._system_prompt,
            user_message,
            context,
        )
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        if not response.choices:
            return FALLBACK_REPLY
        content = response.choices[0].message.content or ""
        return content.strip() or FALLBACK_REPLY

    async def close(self) -> None:
        await self._client.close()

    @property
    def model(self) -> str:
        return self._model
