"""
Random code generators — pure, side-effect-free functions.

All generators use cryptographically secure sources (``secrets`` module).
"""

from __future__ import annotations

import secrets
import string

VERIFICATION_CODE_ALPHABET = string.ascii_lowercase + string.digits


def generate_verification_code(length: int = 6) -> str:
    """Generate a lowercase alphanumeric code with at least one letter and one digit.

    Used for both email verification and password reset codes.

    Args:
        length: Number of characters (default 6, minimum 2).

    Returns:
        String matching ``[a-z0-9]{length}`` that mixes letters and digits.
    """
    if length < 2:
        raise ValueError("length must be at least 2")
    while True:
        code = "".join(
            secrets.choice(VERIFICATION_CODE_ALPHABET) for _ in range(length)
        )
        if any(c.isdigit() for c in code) and any(c.isalpha() for c in code):
            return code
