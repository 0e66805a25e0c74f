"""
HTTP SMS gateway adapter - Implements PhoneVerificationChannel protocol.

Delivers verification codes by posting a JSON message to an SMS gateway:

    POST <url>
    {"to": "+16505550100", "from": "<sender_id>", "text": "Your code: 123456"}

Each delivery is one bounded request. Transport errors, timeouts and
non-2xx responses all raise DeliveryFailure; nothing is retried.
"""

import logging
from typing import Any

import httpx

from src.domain.exceptions import DeliveryFailure

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Your verification code is {code}"
DEFAULT_INSTRUCTIONS = "An SMS with a verification code will be sent from {sender_id}."


class HttpSmsChannel:
    """Implements PhoneVerificationChannel protocol via an HTTP SMS gateway."""

    def __init__(
        self,
        url: str,
        sender_id: str,
        api_key: str | None = None,
        message: str = DEFAULT_MESSAGE,
        instructions: str = DEFAULT_INSTRUCTIONS,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the gateway client.

        Args:
            url: Gateway endpoint receiving the JSON message
            sender_id: Sender shown on the phone
            api_key: Bearer token for the gateway, if required
            message: Message template, "{code}" is replaced by the code
            instructions: Client instructions, "{sender_id}" is substituted
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self._url = url
        self._sender_id = sender_id
        self._message = message
        self._instructions = instructions
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.Client(timeout=timeout, headers=headers, transport=transport)

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> "HttpSmsChannel":
        """Build the channel from its configuration sub-section."""
        try:
            url = options["url"]
            sender_id = options["sender_id"]
        except KeyError as e:
            raise ValueError(f"HTTP SMS channel requires option {e.args[0]!r}") from e
        return cls(
            url=url,
            sender_id=sender_id,
            api_key=options.get("api_key"),
            message=options.get("message", DEFAULT_MESSAGE),
            instructions=options.get("instructions", DEFAULT_INSTRUCTIONS),
            timeout=float(options.get("timeout", 10.0)),
        )

    def send_code(self, phone: str, code: str) -> None:
        payload = {
            "to": phone,
            "from": self._sender_id,
            "text": self._message.format(code=code),
        }
        try:
            response = self._client.post(self._url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DeliveryFailure(
                f"SMS gateway responded with HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise DeliveryFailure(f"SMS gateway request failed: {e}") from e
        logger.info("Verification code sent to %s via %s", phone, self._url)

    def sender_identity(self) -> str:
        return self._sender_id

    def instructions(self) -> str:
        return self._instructions.format(sender_id=self._sender_id)

    def close(self) -> None:
        self._client.close()
