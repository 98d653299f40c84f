import base64
import binascii
import re

from .exceptions import DecodeError

_URLSAFE_ALPHABET = re.compile(r'[A-Za-z0-9_-]*')

_TO_URLSAFE = str.maketrans('+/', '-_')
_FROM_URLSAFE = str.maketrans('-_', '+/')


def encode_urlsafe(data: bytes) -> str:
    """
        Base64 with '-' and '_' in place of '+' and '/', without padding.
    """
    return base64.b64encode(data).decode('ascii').translate(_TO_URLSAFE).rstrip('=')


def decode_urlsafe(data: str) -> bytes:
    """
        Strict inverse of encode_urlsafe(). Anything encode_urlsafe() could
        not have produced raises DecodeError, including padded input and
        encodings with non-zero trailing bits.
    """
    if not isinstance(data, str) or not _URLSAFE_ALPHABET.fullmatch(data):
        raise DecodeError('Token contains characters outside the URL-safe base64 alphabet')

    if len(data) % 4 == 1:
        raise DecodeError('Token length %d cannot be a base64 encoding' % len(data))

    padded = data.translate(_FROM_URLSAFE) + '=' * (-len(data) % 4)
    try:
        decoded = base64.b64decode(padded, validate=True)
    except binascii.Error as e:
        raise DecodeError('Invalid base64 encoding') from e

    if encode_urlsafe(decoded) != data:
        raise DecodeError('Non-canonical base64 encoding')

    return decoded
