"""
AI Responder
============
Free-text answers for questions outside the booking flow, plus a soft check
that a booking name looks like a real person's name.

Runs on OpenAI chat completions. Without OPENAI_API_KEY the responder stays
usable: `ask` returns a fixed apology and `validate_name` accepts every name.
"""

import asyncio
from typing import Optional

from openai import AsyncOpenAI, OpenAIError
from loguru import logger

from ..config import get_settings
from ..core import messages
from ..utils.language_detector import detect_language


SYSTEM_PROMPT = """You are the WhatsApp receptionist of {clinic}, a dental clinic in Jordan.

- Reply in the language of the customer's message (Arabic in a friendly Levantine tone, or English)
- Keep answers short: two or three sentences, suitable for WhatsApp
- You can talk about dental services: checkups, cleaning, whitening, fillings, root canal,
  crowns and bridges, braces, extraction, implants and Hollywood smile
- Never invent prices, doctor names or appointment availability; invite the customer to
  book or visit the clinic for details
- To book an appointment the customer just writes "حجز" or "book"
"""

NAME_CHECK_PROMPT = """Decide whether the text is a plausible personal name (first name, optionally
followed by family names) in Arabic or English. Nicknames and single names are fine.
Sentences, questions, insults, numbers or random characters are not names.
Answer with exactly one word: VALID or INVALID."""


class AIResponder:
    """
    OpenAI-backed assistant for side questions and name validation.

    Collaborator failures never propagate: `ask` falls back to an apology and
    `validate_name` to accepting the name.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.settings = get_settings()
        self.model = model or self.settings.openai_model
        self.timeout = self.settings.openai_timeout_seconds

        if client is not None:
            self.client = client
        else:
            try:
                api_key = self.settings.OPENAI_API_KEY
                self.client = AsyncOpenAI(api_key=api_key, timeout=self.timeout) if api_key else None
            except OpenAIError as exc:
                logger.error(f"❌ Failed to initialize OpenAI client: {exc}")
                self.client = None

        if self.client is None:
            logger.warning("⚠️ OPENAI_API_KEY not set - AI replies disabled")
        else:
            logger.info(f"✅ AI responder initialized with {self.model}")

    @property
    def available(self) -> bool:
        return self.client is not None

    async def _complete(self, system_prompt: str, user_text: str, max_tokens: int, temperature: float) -> str:
        response = await asyncio.wait_for(
            self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_text},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            ),
            timeout=self.timeout + 5,
        )
        return (response.choices[0].message.content or "").strip()

    async def ask(self, text: str) -> str:
        """
        Answer a free-text question about the clinic.

        Args:
            text: The customer's message

        Returns:
            The model's answer, or a fixed apology when the model is unavailable
        """
        if not self.available:
            return messages.AI_UNAVAILABLE

        try:
            answer = await self._complete(
                SYSTEM_PROMPT.format(clinic=self.settings.clinic_name),
                text,
                max_tokens=300,
                temperature=0.7,
            )
            logger.info(f"✅ Generated {detect_language(text)} AI reply ({len(answer)} chars)")
            return answer or messages.AI_UNAVAILABLE
        except asyncio.TimeoutError:
            logger.error("⚠️ AI reply timeout - using fallback")
        except OpenAIError as exc:
            logger.error(f"❌ AI reply failed: {exc}")
        return messages.AI_UNAVAILABLE

    async def validate_name(self, name: str) -> bool:
        """Soft name check; returns True whenever the model cannot give a verdict"""
        if not self.available:
            return True

        try:
            verdict = await self._complete(NAME_CHECK_PROMPT, name, max_tokens=3, temperature=0)
        except asyncio.TimeoutError:
            logger.warning("⚠️ Name validation timeout - accepting name")
            return True
        except OpenAIError as exc:
            logger.warning(f"⚠️ Name validation failed, accepting name: {exc}")
            return True

        valid = not verdict.upper().startswith("INVALID")
        logger.debug(f"🪪 Name check '{name[:30]}' → {verdict!r}")
        return valid
