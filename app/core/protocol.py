"""Protocol codes: short human-readable conversation identifiers (e.g. FDF5D65F5D66D)."""

from __future__ import annotations

import re
import secrets

from app.constants.helpdesk import PROTOCOL_ALPHABET, PROTOCOL_LENGTH

PROTOCOL_PATTERN = re.compile(rf"^[{PROTOCOL_ALPHABET}]{{{PROTOCOL_LENGTH}}}$")


def generate_protocol() -> str:
    return "".join(secrets.choice(PROTOCOL_ALPHABET) for _ in range(PROTOCOL_LENGTH))


def is_valid_protocol(value: str) -> bool:
    return bool(PROTOCOL_PATTERN.match(value or ""))
