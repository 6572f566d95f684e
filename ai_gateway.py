"""Client for the OpenAI-compatible AI gateway (chat completions).

Every call is a single round trip: no retries, and no timeout unless
AI_TIMEOUT_SECONDS is set.
"""
import json
import logging
from typing import Optional

import httpx

from config import Settings
from errors import ConfigurationError, GatewayError, MalformedResponseError

logger = logging.getLogger(__name__)


def user_message(text: str, image_url: Optional[str] = None) -> dict:
    """Build a user message, optionally with an image_url content block.

    ``image_url`` may be a public URL or a ``data:`` URL with base64 content.
    """
    if image_url is None:
        return {"role": "user", "content": text}
    return {
        "role": "user",
        "content": [
            {"type": "text", "text": text},
            {"type": "image_url", "image_url": {"url": image_url}},
        ],
    }


def function_tool(name: str, description: str, parameters: dict) -> dict:
    return {
        "type": "function",
        "function": {"name": name, "description": description, "parameters": parameters},
    }


def forced_tool_choice(name: str) -> dict:
    return {"type": "function", "function": {"name": name}}


def text_content(response: dict) -> str:
    """Return choices[0].message.content, or "" when the model sent none."""
    try:
        content = response["choices"][0]["message"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""
    return content or ""


def tool_arguments(response: dict) -> dict:
    """Parse the JSON arguments of the first tool call in a response."""
    try:
        tool_call = response["choices"][0]["message"]["tool_calls"][0]
        raw_arguments = tool_call["function"]["arguments"]
    except (KeyError, IndexError, TypeError):
        logger.error(f"No tool call in AI response: {json.dumps(response)[:2000]}")
        raise MalformedResponseError("AI did not return structured data")

    if not raw_arguments:
        raise MalformedResponseError("AI did not return structured data")

    try:
        arguments = json.loads(raw_arguments)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Invalid tool call arguments: {e}")

    if not isinstance(arguments, dict):
        raise MalformedResponseError("Tool call arguments are not a JSON object")
    return arguments


class AIGateway:
    """Thin async wrapper around the chat-completions endpoint."""

    def __init__(self, config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = config.AI_GATEWAY_URL
        self.model = config.AI_MODEL
        self.timeout = config.AI_TIMEOUT_SECONDS
        self._api_key = config.AI_GATEWAY_API_KEY
        self._transport = transport

    async def chat(
        self,
        messages: list[dict],
        tools: Optional[list[dict]] = None,
        tool_choice: Optional[dict] = None,
    ) -> dict:
        if not self._api_key:
            raise ConfigurationError("AI_GATEWAY_API_KEY is not configured")

        body = {"model": self.model, "messages": messages}
        if tools:
            body["tools"] = tools
        if tool_choice:
            body["tool_choice"] = tool_choice

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"AI gateway request failed: {e}")
            raise GatewayError(f"AI gateway request failed: {e}") from e

        if response.is_error:
            logger.error(f"AI gateway error: {response.status_code} {response.text[:2000]}")
            raise GatewayError(
                f"AI gateway error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"AI gateway returned invalid JSON: {e}")
