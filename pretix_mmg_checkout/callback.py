import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from django.utils.crypto import constant_time_compare

from . import crypto
from .config import MerchantConfig
from .encoding import decode_urlsafe
from .exceptions import AuthError, KeyLoadError, MalformedPayloadError

CALLBACK_KEY_MAX_LENGTH = 64

_CALLBACK_KEY_DISALLOWED = re.compile(r'[^A-Za-z0-9-]')
_CONTROL_CHARACTERS = re.compile(r'[\x00-\x1f\x7f]')
_INTEGER = re.compile(r'-?[0-9]+')


def sanitize_callback_key(raw: str) -> str:
    key = _CALLBACK_KEY_DISALLOWED.sub('', raw or '')
    if not key:
        raise AuthError('Missing callback key', public_message='Missing callback key')
    if len(key) > CALLBACK_KEY_MAX_LENGTH:
        raise AuthError('Callback key of %d characters is too long' % len(key))
    return key


def authenticate_callback_key(claimed: str, stored: Optional[str]) -> None:
    """
        The callback key in the URL is the only thing standing between the
        public internet and the payment state, so this runs before the token
        is even looked at.
    """
    key = sanitize_callback_key(claimed)
    if not stored:
        raise AuthError('No callback key has been generated for this event')
    if not constant_time_compare(key, stored):
        raise AuthError('Callback key mismatch', status_code=403)


def _optional_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise MalformedPayloadError('%s is a boolean' % name)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
        return int(value.strip())
    raise MalformedPayloadError('%s is not an integer' % name)


@dataclass(frozen=True)
class CallbackPayload:
    merchant_transaction_id: Optional[int]
    result_code: Optional[int]
    result_message: str = ''
    transaction_id: str = ''
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CallbackPayload':
        if not isinstance(data, dict):
            raise MalformedPayloadError('Decrypted data is not a JSON object')

        # An unusable transaction id just means no order will match it.
        try:
            merchant_transaction_id = _optional_int(data.get('merchantTransactionId'), 'merchantTransactionId')
        except MalformedPayloadError:
            merchant_transaction_id = None

        result_message = data.get('resultMessage')
        if not isinstance(result_message, str):
            result_message = ''

        transaction_id = data.get('transactionId')
        if isinstance(transaction_id, int) and not isinstance(transaction_id, bool):
            transaction_id = str(transaction_id)
        elif not isinstance(transaction_id, str):
            transaction_id = ''

        return cls(
            merchant_transaction_id=merchant_transaction_id,
            result_code=_optional_int(data.get('resultCode'), 'resultCode'),
            result_message=_CONTROL_CHARACTERS.sub('', result_message).strip(),
            transaction_id=_CONTROL_CHARACTERS.sub('', transaction_id).strip(),
            raw=data,
        )


def verify_callback_token(raw_token: str, config: MerchantConfig) -> CallbackPayload:
    token = (raw_token or '').strip()
    if not token:
        raise MalformedPayloadError('Empty token')

    config.validate_for_callback()

    try:
        private_key = crypto.load_private_key(config.private_key)
    except KeyLoadError as e:
        raise KeyLoadError(str(e), public_message='Error decrypting token') from e

    ciphertext = decode_urlsafe(token)
    plaintext = crypto.decrypt(private_key, ciphertext)

    try:
        data = json.loads(plaintext.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedPayloadError('Decrypted data is not valid JSON') from e

    return CallbackPayload.from_dict(data)
