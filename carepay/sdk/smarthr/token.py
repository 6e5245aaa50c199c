"""Access token obfuscation for profile.yaml.

This is NOT encryption. The token is XORed against a fixed, public key and
base64-encoded so it is not stored as readable plain text. Anyone with this
source can reverse it; protect profile.yaml with file permissions, or keep
the token out of it (store_token: false, CAREPAY_SMARTHR_TOKEN env var).
"""

import base64
import binascii

OBFUSCATION_KEY = "carepay_smarthr_2024"


def _xor(text: str) -> str:
    key = OBFUSCATION_KEY
    return "".join(chr(ord(ch) ^ ord(key[i % len(key)])) for i, ch in enumerate(text))


def obfuscate_token(token: str) -> str:
    """Obfuscate a token for at-rest storage.

    Each character's code point is XORed with the repeating key and the
    result is base64-encoded as latin-1 bytes, so ASCII tokens round-trip.
    """
    return base64.b64encode(_xor(token).encode("latin-1")).decode("ascii")


def deobfuscate_token(obfuscated: str) -> str:
    """Reverse obfuscate_token().

    Returns:
        The original token, or "" if the input is not valid obfuscated data.
        Callers must treat "" as "no usable token".
    """
    try:
        xored = base64.b64decode(obfuscated, validate=True).decode("latin-1")
    except (binascii.Error, ValueError):
        return ""
    return _xor(xored)
