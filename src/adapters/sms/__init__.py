"""
Phone verification channel adapters.

Channels are selected by name from configuration and built once at
startup through CHANNEL_FACTORIES.
"""

from collections.abc import Callable
from typing import Any

from src.domain.ports import PhoneVerificationChannel

from .console import ConsoleVerificationChannel
from .gateway import HttpSmsChannel

CHANNEL_FACTORIES: dict[str, Callable[[dict[str, Any]], PhoneVerificationChannel]] = {
    "console": ConsoleVerificationChannel.from_options,
    "http": HttpSmsChannel.from_options,
}


def build_verification_channel(
    name: str, options: dict[str, Any] | None = None
) -> PhoneVerificationChannel:
    """
    Resolve a configured channel name into a channel instance.

    Raises:
        ValueError: If no channel is registered under the name
    """
    try:
        factory = CHANNEL_FACTORIES[name.strip().lower()]
    except KeyError:
        known = ", ".join(sorted(CHANNEL_FACTORIES))
        raise ValueError(f"Unknown verification channel {name!r} (known: {known})") from None
    return factory(dict(options or {}))


__all__ = [
    "CHANNEL_FACTORIES",
    "ConsoleVerificationChannel",
    "HttpSmsChannel",
    "build_verification_channel",
]
