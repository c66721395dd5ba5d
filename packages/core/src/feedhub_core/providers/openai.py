from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from feedhub_core.providers.base import BaseAnalyzer


class OpenAIAnalyzer(BaseAnalyzer):
    MODEL = "gpt-4o"
    # Lower than Anthropic's default; GPT-4o drifts from strict JSON at higher values.
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, model: str | None = None, temperature: float | None = None):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. Install it with: pip install 'feedhub[openai]'"
            )
        self.client = _OpenAI(api_key=api_key)
        self._configure(model, temperature)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.MAX_TOKENS,
        )
        return response.choices[0].message.content or ""
