"""Outbound webhook delivery."""
import json
from typing import TYPE_CHECKING

import httpx

from ..config import settings
from .base import TaskType
from .registry import ExecutorRegistry

if TYPE_CHECKING:
    from ..engine.environment import ExecutionEnvironment


@ExecutorRegistry.register(TaskType.DELIVER_VIA_WEBHOOK)
async def deliver_via_webhook(env: "ExecutionEnvironment") -> bool:
    target_url = env.get_input("Target URL")
    if not target_url:
        env.log.error("input-> Target URL not defined")
        return False
    body = env.get_input("Body")
    if not body:
        env.log.error("input-> Body not defined")

    try:
        async with httpx.AsyncClient(timeout=settings.webhook_timeout_seconds) as client:
            response = await client.post(
                target_url,
                content=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
    except httpx.HTTPError as exc:
        env.log.error(f"Webhook request failed: {exc}")
        return False

    if response.status_code != 200:
        env.log.error(f"Request failed with status code: {response.status_code}")
        return False

    try:
        env.log.info(json.dumps(response.json(), indent=4))
    except ValueError:
        env.log.info(response.text)
    return True
