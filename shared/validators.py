"""
Input validators — framework-agnostic, pure functions.
"""

from __future__ import annotations

import re

PASSWORD_POLICY_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)
VERIFICATION_CODE_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*\d)[a-z0-9]{6}$")


def validate_password(password: str) -> bool:
    """Return True if *password* satisfies the account password policy.

    Rules:
    - At least 8 characters
    - At least one lowercase and one uppercase letter
    - At least one digit
    - At least one of ``@$!%*?&``
    - Only letters, digits and the symbols above
    """
    if not password:
        return False
    return PASSWORD_POLICY_PATTERN.fullmatch(password) is not None


def is_verification_code(code: str) -> bool:
    """Return True if *code* has the shape of an issued verification code."""
    return bool(code) and VERIFICATION_CODE_PATTERN.fullmatch(code) is not None
