"""
RSA-OAEP (SHA-256 for both the hash and MGF1) as used by MMG Checkout for the
outbound checkout token and the inbound callback token.
"""
import base64
import binascii
import logging
import re
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .exceptions import DecryptError, EncryptError, KeyLoadError

logger = logging.getLogger('pretix_mmg_checkout')

_PEM_BOUNDARY = re.compile(r'-----(BEGIN|END) [A-Z0-9 ]+-----')

PublicKey = Union[str, rsa.RSAPublicKey]
PrivateKey = Union[str, rsa.RSAPrivateKey]


def _oaep():
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def _der_from_text(text: str) -> bytes:
    # Keys pasted into a single-line input lose their line breaks, so the PEM
    # armour is dropped and the body decoded directly.
    if not text or not text.strip():
        raise KeyLoadError('Key is empty')
    body = ''.join(_PEM_BOUNDARY.sub('', text).split())
    try:
        return base64.b64decode(body, validate=True)
    except binascii.Error as e:
        raise KeyLoadError('Key is neither PEM nor base64 DER') from e


def load_public_key(text: str) -> rsa.RSAPublicKey:
    der = _der_from_text(text)
    try:
        key = serialization.load_der_public_key(der)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyLoadError('Failed to load RSA public key') from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyLoadError('Public key is not an RSA key')
    return key


def load_private_key(text: str) -> rsa.RSAPrivateKey:
    der = _der_from_text(text)
    try:
        key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyLoadError('Failed to load RSA private key') from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyLoadError('Private key is not an RSA key')
    return key


def max_plaintext_length(key: Union[rsa.RSAPublicKey, rsa.RSAPrivateKey]) -> int:
    return key.key_size // 8 - 2 * hashes.SHA256.digest_size - 2


def encrypt(public_key: PublicKey, plaintext: bytes) -> bytes:
    if isinstance(public_key, str):
        public_key = load_public_key(public_key)

    capacity = max_plaintext_length(public_key)
    if len(plaintext) > capacity:
        raise EncryptError('Plaintext of %d bytes exceeds the %d bytes a %d bit key can encrypt' % (
            len(plaintext), capacity, public_key.key_size))

    try:
        return public_key.encrypt(plaintext, _oaep())
    except ValueError as e:
        logger.error('Encryption failed: %s', type(e).__name__)
        raise EncryptError('Failed to encrypt data') from e


def decrypt(private_key: PrivateKey, ciphertext: bytes) -> bytes:
    """
        Any failure, whatever its cause, comes out as the same DecryptError so
        that callers cannot tell padding errors from wrong keys.
    """
    if isinstance(private_key, str):
        private_key = load_private_key(private_key)

    try:
        return private_key.decrypt(ciphertext, _oaep())
    except Exception as e:
        logger.warning('Decryption failed: %s', type(e).__name__)
        raise DecryptError('Failed to decrypt data') from None
