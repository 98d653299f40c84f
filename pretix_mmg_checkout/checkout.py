import json
import logging
from collections import OrderedDict
from typing import Any, Dict, NamedTuple

from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone
from django.utils.http import urlencode

from . import crypto
from .config import MerchantConfig
from .encoding import encode_urlsafe

logger = logging.getLogger('pretix_mmg_checkout')


class CheckoutToken(NamedTuple):
    token: str
    merchant_transaction_id: int


def epoch_millis() -> str:
    return str(round(timezone.now().timestamp() * 1000))


def build_payload(payment, config: MerchantConfig) -> Dict[str, Any]:
    """
        The merchant transaction id is the OrderPayment's primary key. It has
        to be stored on the payment before the shopper leaves, since the
        callback finds the payment by it.
    """
    return OrderedDict([
        ('secretKey', config.secret_key),
        ('amount', payment.amount),
        ('merchantId', config.merchant_id),
        ('merchantTransactionId', payment.pk),
        ('productDescription', 'Order #%s' % payment.order.code),
        ('requestInitiationTime', epoch_millis()),
        ('merchantName', config.merchant_name),
    ])


def serialize_payload(payload: Dict[str, Any]) -> bytes:
    # Raw UTF-8, no transcoding to an 8-bit charset before encryption.
    return json.dumps(payload, cls=DjangoJSONEncoder, ensure_ascii=False,
                      separators=(',', ':')).encode('utf-8')


def build_token(payment, config: MerchantConfig) -> CheckoutToken:
    payload = build_payload(payment, config)
    logger.info('Building checkout token for payment %s (merchantTransactionId %s)',
                payment.full_id, payload['merchantTransactionId'])

    ciphertext = crypto.encrypt(config.public_key, serialize_payload(payload))
    return CheckoutToken(
        token=encode_urlsafe(ciphertext),
        merchant_transaction_id=payload['merchantTransactionId'],
    )


def build_checkout_url(token: str, config: MerchantConfig) -> str:
    query = urlencode(OrderedDict([
        ('token', token),
        ('merchantId', config.merchant_id),
        ('X-Client-ID', config.client_id),
    ]))
    return '%s?%s' % (config.checkout_endpoint, query)
