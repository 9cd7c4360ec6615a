"""Badge token codec.

A badge carries ``participantId|eventId|checksum``. The checksum is a short keyed
digest of the (participant, event) pair so a hand-typed or tampered token is
rejected before any attendance record is touched.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

from ..core.constants import CHECKSUM_LENGTH, TOKEN_SEPARATOR
from ..core.exceptions import TokenFormatError

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True)
class ParsedToken:
    participant_id: str
    event_id: str
    checksum: str
    is_valid: bool


def _to_base36(value: int, width: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits)).rjust(width, "0")


class QRTokenCodec:
    def __init__(self, secret: str):
        if not secret:
            raise ValueError("QR secret must not be empty")
        self._secret = secret.encode("utf-8")

    def checksum(self, participant_id: str, event_id: str) -> str:
        message = f"{participant_id}{TOKEN_SEPARATOR}{event_id}".encode("utf-8")
        digest = hmac.new(self._secret, message, hashlib.sha256).digest()
        value = int.from_bytes(digest[:8], "big") % (36**CHECKSUM_LENGTH)
        return _to_base36(value, CHECKSUM_LENGTH)

    def encode(self, participant_id: str, event_id: str) -> str:
        checksum = self.checksum(participant_id, event_id)
        return TOKEN_SEPARATOR.join((participant_id, event_id, checksum))

    def validate(self, participant_id: str, event_id: str, checksum: str) -> bool:
        if not all(isinstance(v, str) and v for v in (participant_id, event_id, checksum)):
            return False
        if TOKEN_SEPARATOR in participant_id or TOKEN_SEPARATOR in event_id:
            return False
        expected = self.checksum(participant_id, event_id)
        return hmac.compare_digest(expected.encode("utf-8"), checksum.encode("utf-8"))

    def parse(self, token: str) -> ParsedToken:
        parts = (token or "").strip().split(TOKEN_SEPARATOR)
        if len(parts) != 3:
            raise TokenFormatError("Invalid QR code format")

        participant_id, event_id, checksum = parts
        return ParsedToken(
            participant_id=participant_id,
            event_id=event_id,
            checksum=checksum,
            is_valid=self.validate(participant_id, event_id, checksum),
        )
