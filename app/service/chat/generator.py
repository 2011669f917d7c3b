import asyncio
import logging
import math
import time
from collections.abc import Callable
from typing import List, Optional

from pydantic import BaseModel

import app.config.config as configs
from app.client.llm.chatgpt import call_llm
from app.model.chat.chat_response import AssembledContext
from app.model.chat.message import FarmLocation, GenerationMetadata, StoredMessage, TokenUsage
from app.service.chat.exceptions import GenerationFailure

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "I apologize, but I'm experiencing technical difficulties right now. "
    "Please try again in a few moments. In the meantime, you can check our "
    "community forum for answers to common farming questions."
)
FALLBACK_MODEL = "fallback"
# The provider returns no confidence score
PLACEHOLDER_CONFIDENCE = 0.85

SYSTEM_PROMPT = """You are Krishi Sakhi, an agricultural assistant for Indian farmers. You give expert advice on:
- Crop selection and cultivation practices
- Soil health and fertilizer recommendations
- Pest and disease management
- Weather-based farming guidance
- Market prices and selling strategies
- Government agricultural schemes
- Sustainable and organic farming practices

Guidelines:
1. Give practical, location-specific advice when the farm location is known
2. Consider Indian climate, monsoon seasons and local crops
3. Use simple, farmer-friendly language
4. Give actionable recommendations with timing
5. Answer in the farmer's language when possible
6. Warn about harmful practices and suggest cost-effective solutions"""

VOICE_SYSTEM_PROMPT = """You are Krishi Sakhi, a voice-based agricultural assistant for Indian farmers. The farmer is speaking and your answer will be read aloud.

Guidelines for voice responses:
1. Keep the answer short and clear for speech
2. Use simple, conversational language without technical jargon
3. Acknowledge the farmer's question first
4. Give step-by-step instructions when needed
5. Speak in the same language as the question when possible
6. End with a clear next step or question"""


class GeneratedResponse(BaseModel):
    text: str
    metadata: GenerationMetadata


def estimate_tokens(text: str) -> int:
    # Rough estimate, ~4 characters per token
    return math.ceil(len(text) / 4)


def format_location(location: FarmLocation) -> Optional[str]:
    place = ", ".join(part for part in (location.district, location.state) if part)
    coords = f"({location.lat}, {location.lng})" if location.lat is not None and location.lng is not None else ""
    label = " ".join(part for part in (place, coords) if part)
    return label or None


def _context_lines(context: AssembledContext) -> List[str]:
    lines = [f"Language: {context.language}"]
    if context.farm_location is not None:
        location = format_location(context.farm_location)
        if location:
            lines.append(f"Farm location: {location}")
    if context.crop_type:
        lines.append(f"Current crop: {context.crop_type}")
    if context.season:
        lines.append(f"Season: {context.season}")
    if context.farm_size is not None:
        lines.append(f"Farm size: {context.farm_size:g} acres")
    return lines


def _history_lines(messages: List[StoredMessage], turns: int) -> List[str]:
    if turns <= 0:
        return []
    return [f"{m.role.value}: {m.text}" for m in messages[-turns:]]


def build_prompt(prompt_text: str, context: AssembledContext, turns: int = configs.PROMPT_TURNS) -> str:
    """
    Render one prompt string: persona, labelled farm context, the last few
    prior messages, then the new question. Same inputs give the same prompt.
    """
    sections = [VOICE_SYSTEM_PROMPT if context.is_voice else SYSTEM_PROMPT]
    sections.append("Farmer context:\n" + "\n".join(_context_lines(context)))

    history = _history_lines(context.recent_messages, turns)
    if history:
        sections.append("Recent conversation:\n" + "\n".join(history))

    if context.is_voice:
        sections.append(f'Voice query in {context.language}: "{prompt_text}"\nGive a clear, spoken answer.')
    else:
        sections.append(f"user: {prompt_text}")
    return "\n\n".join(sections)


def fallback_response(reason: str) -> GeneratedResponse:
    return GeneratedResponse(
        text=FALLBACK_MESSAGE,
        metadata=GenerationMetadata(
            processing_time=0,
            model=FALLBACK_MODEL,
            tokens=TokenUsage(input=0, output=0),
            confidence=0.0,
            error=reason,
        ),
    )


class ResponseGenerator:
    """Wraps the remote completion call. `generate` never raises."""

    def __init__(
        self,
        complete: Callable[[str], str] = call_llm,
        model: str = configs.MODEL,
        timeout_seconds: float = configs.LLM_TIMEOUT_SEC,
        turns: int = configs.PROMPT_TURNS,
    ) -> None:
        self._complete = complete
        self._model = model
        self._timeout_seconds = timeout_seconds
        self._turns = turns

    async def _call(self, prompt: str) -> str:
        try:
            text = await asyncio.wait_for(asyncio.to_thread(self._complete, prompt), timeout=self._timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise GenerationFailure(f"generator timed out after {self._timeout_seconds:g}s") from exc
        except Exception as exc:
            raise GenerationFailure(str(exc) or exc.__class__.__name__) from exc

        if not isinstance(text, str) or not text.strip():
            raise GenerationFailure("generator returned an empty response")
        return text.strip()

    async def generate(self, prompt_text: str, context: AssembledContext) -> GeneratedResponse:
        prompt = build_prompt(prompt_text, context, self._turns)
        started = time.monotonic()
        try:
            text = await self._call(prompt)
        except GenerationFailure as exc:
            logger.exception("response generation failed; using fallback answer")
            return fallback_response(str(exc))

        return GeneratedResponse(
            text=text,
            metadata=GenerationMetadata(
                processing_time=int((time.monotonic() - started) * 1000),
                model=self._model,
                tokens=TokenUsage(input=estimate_tokens(prompt), output=estimate_tokens(text)),
                confidence=PLACEHOLDER_CONFIDENCE,
            ),
        )
