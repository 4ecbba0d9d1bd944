"""
Shared Gemini fallback helper.

generate_with_fallback() tries each model in GEMINI_MODEL_CHAIN in order.
On 429 RESOURCE_EXHAUSTED it logs a warning and moves to the next model.
All other exceptions propagate normally.
Returns None only if every model in the chain is exhausted.
"""

import logging
from typing import Any, Optional

from gemini.config import GEMINI_MODEL_CHAIN

logger = logging.getLogger(__name__)


def _is_quota_error(exc: Exception) -> bool:
    err_str = str(exc)
    return "429" in err_str or "RESOURCE_EXHAUSTED" in err_str


async def generate_with_fallback(client, *, contents, config, models=None) -> Optional[Any]:
    """
    Try each model in the chain in priority order.

    Args:
        client: google.genai.Client instance
        contents: list of content dicts for generate_content
        config: types.GenerateContentConfig instance
        models: override for GEMINI_MODEL_CHAIN

    Returns:
        The first successful GenerateContentResponse, or None if all
        models in the chain are rate-limited.
    """
    chain = models or GEMINI_MODEL_CHAIN
    for model in chain:
        try:
            return await client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            if _is_quota_error(e):
                logger.warning("Model %r quota exhausted — trying next in chain", model)
                continue
            raise

    logger.error("All models in fallback chain exhausted: %s", chain)
    return None
