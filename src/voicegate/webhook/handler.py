"""WebhookForwarder for sending executed voice commands to an HTTP endpoint."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JSONPathError

from ..engine.models import VoiceCommand
from .models import VoiceCommandData, WebhookPayload

logger = logging.getLogger(__name__)

EVENT_TYPE = "voice_command"

_JSON_SCALARS = (str, int, float, bool, type(None))


def _jsonable_context(context: Any) -> Any:
    """Return the context if it serializes to JSON, otherwise its string form."""
    if isinstance(context, _JSON_SCALARS):
        return context
    try:
        json.dumps(context)
        return context
    except (TypeError, ValueError):
        return str(context)


class WebhookForwarder:
    """
    Command handler that POSTs executed commands to a webhook.

    Register an instance with ``VoiceCommandDebouncer.on_command``. The
    handler result is True when the webhook answered with a 2xx status.
    """

    def __init__(
        self,
        url: str,
        jsonpath: str = "$",
        timeout: int = 5,
        retry_count: int = 3,
    ):
        """
        Initialize the forwarder.

        Args:
            url: Webhook URL
            jsonpath: JSONPath expression for payload filtering
            timeout: HTTP request timeout in seconds
            retry_count: Number of retry attempts on failure
        """
        self.url = url
        self.timeout = timeout
        self.retry_count = retry_count
        self.client = httpx.AsyncClient(timeout=timeout)
        self._jsonpath = self._compile_jsonpath(jsonpath)

        logger.info(f"WebhookForwarder initialized: url={url} (jsonpath={jsonpath})")

    @staticmethod
    def _compile_jsonpath(expression: str):
        """
        Compile a JSONPath expression.

        Args:
            expression: JSONPath expression string

        Returns:
            Compiled expression, or the root expression if it is invalid
        """
        try:
            compiled = jsonpath_parse(expression)
            logger.debug(f"Compiled webhook JSONPath: {expression}")
            return compiled
        except JSONPathError as e:
            logger.error(
                f"Invalid webhook JSONPath expression: '{expression}' - {e}. "
                f"Falling back to '$' (full payload)"
            )
        except Exception as e:
            logger.error(
                f"Failed to compile webhook JSONPath: {e}. "
                f"Falling back to '$' (full payload)"
            )
        return jsonpath_parse("$")

    def _apply_jsonpath(self, payload: dict[str, Any]) -> Any:
        """
        Apply JSONPath filtering to payload.

        Args:
            payload: Full webhook payload

        Returns:
            Filtered data based on the JSONPath expression, or full payload on error
        """
        try:
            matches = self._jsonpath.find(payload)

            if not matches:
                logger.warning("Webhook JSONPath returned no results. Sending full payload.")
                return payload

            if len(matches) == 1:
                return matches[0].value

            return [match.value for match in matches]

        except Exception as e:
            logger.error(f"Error applying webhook JSONPath: {e}. Sending full payload.")
            return payload

    def build_payload(self, command: VoiceCommand, context: Any = None) -> dict[str, Any]:
        """
        Build the JSON payload for an executed command.

        Args:
            command: Executed command
            context: Context the command was processed with

        Returns:
            Payload dictionary
        """
        payload = WebhookPayload(
            event_type=EVENT_TYPE,
            timestamp=datetime.now(timezone.utc),
            data=VoiceCommandData(
                text=command.text,
                confidence=command.confidence,
                context=_jsonable_context(context),
            ),
        )
        return payload.model_dump(mode="json")

    async def __call__(self, command: VoiceCommand, context: Any = None) -> bool:
        filtered_payload = self._apply_jsonpath(self.build_payload(command, context))
        return await self._send_webhook(filtered_payload)

    async def _send_webhook(self, payload: Any) -> bool:
        """
        Send HTTP POST to the webhook URL with retry logic and exponential backoff.

        Always attempts delivery at least once. If retry_count is 0, only the initial
        attempt is made.

        Args:
            payload: Payload to send (can be dict, list, string, number, or boolean)

        Returns:
            True if the webhook accepted the payload
        """
        total_attempts = self.retry_count + 1

        if isinstance(payload, (dict, list)):
            request_kwargs = {"json": payload, "headers": {"Content-Type": "application/json"}}
        elif isinstance(payload, str):
            request_kwargs = {"content": payload, "headers": {"Content-Type": "text/plain"}}
        else:
            request_kwargs = {
                "content": json.dumps(payload),
                "headers": {"Content-Type": "application/json"},
            }

        for attempt in range(total_attempts):
            try:
                response = await self.client.post(self.url, **request_kwargs)
                response.raise_for_status()

                logger.debug(
                    f"Webhook sent successfully to {self.url} (status={response.status_code})"
                )
                return True

            except httpx.HTTPStatusError as e:
                logger.warning(
                    f"Webhook HTTP error (attempt {attempt + 1}/{total_attempts}): "
                    f"{e.response.status_code} - {self.url}"
                )
            except httpx.TimeoutException:
                logger.warning(
                    f"Webhook timeout (attempt {attempt + 1}/{total_attempts}): {self.url}"
                )
            except httpx.HTTPError as e:
                logger.warning(
                    f"Webhook error (attempt {attempt + 1}/{total_attempts}): "
                    f"{type(e).__name__}: {e}"
                )

            # Exponential backoff: 2s, 4s, 8s (only if there are more attempts)
            if attempt < total_attempts - 1:
                await asyncio.sleep(2 ** (attempt + 1))

        logger.error(
            f"Webhook failed after {total_attempts} attempts "
            f"(1 initial + {self.retry_count} retries): {self.url}"
        )
        return False

    async def close(self) -> None:
        """Close HTTP client connection pool."""
        await self.client.aclose()
        logger.debug("WebhookForwarder closed")
