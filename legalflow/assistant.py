"""
Gemini-backed legal writing assistant.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, Optional

from google import genai
from google.genai import types

from legalflow.schemas import ChatTurn

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-pro-preview"
EMPTY_RESPONSE_MESSAGE = "Não foi possível gerar uma resposta."

LEGAL_SYSTEM_INSTRUCTION = (
    "Você é um assistente jurídico sênior do escritório LegalFlow. "
    "Seu tom é extremamente profissional, formal e preciso (Português Brasil). "
    "Você auxilia advogados a redigir petições, resumir casos e analisar riscos. "
    "Sempre use terminologia jurídica correta."
)
CHAT_SYSTEM_INSTRUCTION = (
    "Você é o Assistente LegalFlow AI. Responda em Português (Brasil) com "
    "formalidade e precisão técnica. Seja conciso e útil."
)


class AssistantNotConfigured(Exception):
    pass


def _client(api_key: Optional[str]) -> genai.Client:
    if not api_key:
        raise AssistantNotConfigured("GEMINI_API_KEY is not set")
    return genai.Client(api_key=api_key)


def build_prompt(prompt: str, context: Optional[str] = None) -> str:
    if context:
        return f"Contexto do Caso: {context}\n\nTarefa: {prompt}"
    return prompt


def generate_legal_text(
    prompt: str,
    context: Optional[str] = None,
    model: str = DEFAULT_MODEL,
    api_key: Optional[str] = None,
) -> str:
    """Draft or analyse legal text, optionally grounded on a case summary."""
    client = _client(api_key)
    start_time = time.time()
    response = client.models.generate_content(
        model=model,
        contents=build_prompt(prompt, context),
        config=types.GenerateContentConfig(
            system_instruction=LEGAL_SYSTEM_INSTRUCTION,
            temperature=0.2,
        ),
    )
    logger.info("Gemini %s generate call took %.2fs", model, time.time() - start_time)
    return response.text or EMPTY_RESPONSE_MESSAGE


def send_chat_message(
    history: Iterable[ChatTurn],
    message: str,
    model: str = DEFAULT_MODEL,
    api_key: Optional[str] = None,
) -> str:
    client = _client(api_key)
    chat = client.chats.create(
        model=model,
        config=types.GenerateContentConfig(
            system_instruction=CHAT_SYSTEM_INSTRUCTION,
            temperature=0.4,
        ),
        history=[
            types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
            for turn in history
        ],
    )
    start_time = time.time()
    response = chat.send_message(message)
    logger.info("Gemini %s chat call took %.2fs", model, time.time() - start_time)
    return response.text or ""
