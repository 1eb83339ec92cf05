"""Decoding of synthesized audio returned as text (hex or base64)."""

import base64
import binascii
import logging

from .errors import AudioDecodeError

logger = logging.getLogger(__name__)

ID3_HEADER = b"ID3"
MIN_MP3_LENGTH = 10


def looks_like_mp3(data: bytes) -> bool:
    """True when ``data`` starts with an MP3 frame sync word or an ID3v2 tag."""
    if len(data) <= MIN_MP3_LENGTH:
        return False
    if data[0] == 0xFF and (data[1] & 0xE0) == 0xE0:
        return True
    return data[:3] == ID3_HEADER


def decode_audio_field(raw: str) -> bytes:
    """
    Decode an audio field whose encoding the provider does not declare.

    The hex decoding wins when it yields something that looks like MP3;
    otherwise the original string must be strict base64. Anything outside
    the base64 alphabet, such as an error string, is rejected.

    Raises:
        AudioDecodeError: If the field is empty or neither decoding works
    """
    if not raw:
        raise AudioDecodeError("No audio returned")

    try:
        hex_bytes = bytes.fromhex(raw)
    except ValueError:
        hex_bytes = b""
    if looks_like_mp3(hex_bytes):
        return hex_bytes

    try:
        decoded = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.error("Audio field is neither hex MP3 nor base64: %s", e)
        raise AudioDecodeError("Could not decode returned audio", detail=str(e))
    if not decoded:
        raise AudioDecodeError("Could not decode returned audio")
    logger.debug("Audio field decoded as base64 (%d bytes)", len(decoded))
    return decoded
