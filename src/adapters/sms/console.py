"""
Console verification channel adapter - Implements PhoneVerificationChannel protocol.

This module provides a console-based implementation of the domain's
phone verification port, logging verification codes for demo purposes.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SENDER_ID = "Console"
DEFAULT_INSTRUCTIONS = "A verification code will be sent to your phone by SMS."


class ConsoleVerificationChannel:
    """
    Implements PhoneVerificationChannel protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints verification codes to the log.
    """

    def __init__(
        self,
        sender_id: str = DEFAULT_SENDER_ID,
        instructions: str = DEFAULT_INSTRUCTIONS,
    ) -> None:
        self._sender_id = sender_id
        self._instructions = instructions

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> "ConsoleVerificationChannel":
        """Build the channel from its configuration sub-section."""
        return cls(
            sender_id=options.get("sender_id", DEFAULT_SENDER_ID),
            instructions=options.get("instructions", DEFAULT_INSTRUCTIONS),
        )

    def send_code(self, phone: str, code: str) -> None:
        """
        Log verification code (simulates SMS delivery).

        The code is logged at INFO level to be visible in docker-compose logs.

        Args:
            phone: E.164 phone number (normalized by domain layer)
            code: Verification code
        """
        logger.info("[VERIFICATION] Phone: %s Code: %s", phone, code)

    def sender_identity(self) -> str:
        return self._sender_id

    def instructions(self) -> str:
        return self._instructions
