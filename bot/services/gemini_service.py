"""Сервис генерации ответов через Gemini (OpenAI-совместимый endpoint)."""
import asyncio
from typing import Optional

from openai import APIError, AsyncOpenAI
from loguru import logger

from bot.exceptions import ExternalServiceUnavailable


class GeminiService:
    """Сервис для взаимодействия с Gemini API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        system_instruction: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/",
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        client: Optional[AsyncOpenAI] = None,
        log=None,
    ):
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.model = model
        self.system_instruction = system_instruction
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.log = log or logger.bind(component="gemini")

    async def generate(self, prompt: str) -> str:
        """
        Генерирует ответ на сообщение пользователя.

        Args:
            prompt: Текст сообщения

        Returns:
            Сгенерированный текст

        Raises:
            ExternalServiceUnavailable: если все попытки завершились ошибкой.
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": self.system_instruction},
                        {"role": "user", "content": prompt},
                    ],
                )
                text = (response.choices[0].message.content or "").strip()
                if not text:
                    raise ValueError("empty completion")
                return text
            except (APIError, asyncio.TimeoutError, ValueError, IndexError) as e:
                last_error = e
                self.log.warning(f"Gemini: попытка {attempt}/{self.max_attempts} не удалась: {e}")
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))

        self.log.error(f"Gemini недоступен после {self.max_attempts} попыток: {last_error}")
        raise ExternalServiceUnavailable("gemini", str(last_error))
