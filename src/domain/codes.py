"""Verification code generation."""

import secrets

DEFAULT_CODE_LENGTH = 6


def generate_verification_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """
    Generate a cryptographically secure numeric verification code.

    Uses secrets module for cryptographic randomness.
    Returns string to preserve leading zeros.
    """
    if length < 1:
        raise ValueError("Code length must be positive")
    return "".join(secrets.choice("0123456789") for _ in range(length))
