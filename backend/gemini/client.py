"""
Gemini client for interview report generation.

Lazily builds a google.genai.Client from GEMINI_API_KEY and rebuilds it only
when the key changes (e.g. .env reload). generate_report() never raises: on a
missing key, exhausted quota, blocked or empty response it returns None and
the caller falls back to the template report.
"""

import logging
import os
from typing import Optional

from google import genai
from google.genai import types

from gemini.config import REPORT_MAX_OUTPUT_TOKENS, REPORT_TEMPERATURE
from gemini.fallback import generate_with_fallback
from gemini.system_prompt import REPORT_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

_client: Optional[genai.Client] = None
_configured_key: Optional[str] = None


def _get_client() -> Optional[genai.Client]:
    global _client, _configured_key
    api_key = os.environ.get("GEMINI_API_KEY")
    if not api_key:
        return None
    if api_key != _configured_key:
        _client = genai.Client(api_key=api_key)
        _configured_key = api_key
    return _client


def _extract_text(response) -> Optional[str]:
    """Pull text from a response; blocked or empty responses yield None."""
    try:
        text = response.text
    except (ValueError, AttributeError):
        return None
    if text and text.strip():
        return text.strip()
    return None


async def generate_report(prompt: str) -> Optional[str]:
    client = _get_client()
    if client is None:
        logger.warning("Report generation skipped — GEMINI_API_KEY not set")
        return None

    try:
        response = await generate_with_fallback(
            client,
            contents=[{"role": "user", "parts": [{"text": prompt}]}],
            config=types.GenerateContentConfig(
                system_instruction=REPORT_SYSTEM_PROMPT,
                max_output_tokens=REPORT_MAX_OUTPUT_TOKENS,
                temperature=REPORT_TEMPERATURE,
            ),
        )
    except Exception as exc:
        logger.warning("Report generation failed — using template report: %s", exc)
        return None

    if response is None:
        return None
    text = _extract_text(response)
    if text is None:
        logger.warning("Report generation returned an empty or blocked response")
    return text
