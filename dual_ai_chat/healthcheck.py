"""Model health checks: ping each configured model before a session starts."""

import asyncio
import logging

from dual_ai_chat.gateway import ModelGateway

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _check_one(gateway: ModelGateway, model_id: str) -> tuple[str, bool, str]:
    """Ping a single model. Returns (model_id, ok, error_message)."""
    try:
        response = await asyncio.wait_for(
            gateway.generate(_PING_PROMPT, model_id, suppress_extended_reasoning=True),
            timeout=_TIMEOUT_SEC,
        )
    except TimeoutError:
        return model_id, False, f"No answer within {_TIMEOUT_SEC:.0f}s"
    if response.error:
        return model_id, False, response.error
    return model_id, True, ""


async def run_health_checks(
    gateway: ModelGateway,
    model_ids: list[str],
) -> dict[str, tuple[bool, str]]:
    """Ping all models in parallel.

    Returns:
        Dict mapping model id -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(gateway, m) for m in model_ids))
    for model_id, ok, err in results:
        if not ok:
            logger.debug("Health check failed for %s: %s", model_id, err)
    return {model_id: (ok, err) for model_id, ok, err in results}
