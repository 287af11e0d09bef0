"""Text-safe encoding of raw binary values (standard base64)."""
import base64
import binascii

from .exceptions import DecodeError


def encode(raw: bytes) -> str:
    """Encode raw bytes as an ASCII base64 string."""
    return base64.b64encode(raw).decode("ascii")


def decode(text: str) -> bytes:
    """Decode a base64 string produced by :func:`encode`.

    Args:
        text: base64 text.

    Returns:
        The original bytes.

    Raises:
        DecodeError: If ``text`` is not a string or not valid base64.
    """
    if not isinstance(text, str):
        raise DecodeError(
            f"Expected base64 text, got {type(text).__name__}"
        )
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as err:
        raise DecodeError(f"Invalid base64 text: {err}") from err
