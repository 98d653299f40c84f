import datetime
import json
from decimal import Decimal

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from django.utils.timezone import now
from django_scopes import scope

from pretix.base.models import Event, Order, OrderPayment, Organizer

from pretix_mmg_checkout import crypto
from pretix_mmg_checkout.encoding import encode_urlsafe


class KeyPair:
    def __init__(self, key_size=3072):
        self.private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        self.public_key = self.private_key.public_key()
        self.private_pem = self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode('ascii')
        self.public_pem = self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode('ascii')


@pytest.fixture(scope='session')
def processor_keys():
    # MMG's key pair: we only ever hold the public half.
    return KeyPair()


@pytest.fixture(scope='session')
def merchant_keys():
    # Our own key pair: MMG encrypts callbacks with the public half.
    return KeyPair()


@pytest.fixture
def make_callback_token(merchant_keys):
    def make(data):
        plaintext = json.dumps(data).encode('utf-8')
        return encode_urlsafe(crypto.encrypt(merchant_keys.public_key, plaintext))
    return make


@pytest.fixture
def env(client, processor_keys, merchant_keys):
    orga = Organizer.objects.create(name='MMG Demo Shop', slug='mmg')
    with scope(organizer=orga):
        event = Event.objects.create(
            organizer=orga, name='MMG Checkout', slug='checkout',
            date_from=datetime.datetime(now().year + 1, 12, 26, tzinfo=datetime.timezone.utc),
            plugins='pretix_mmg_checkout',
            live=True
        )
        event.settings.set('payment_mmg_checkout__enabled', True)
        event.settings.set('payment_mmg_checkout_mode', 'demo')
        event.settings.set('payment_mmg_checkout_merchant_id', 'M-1001')
        event.settings.set('payment_mmg_checkout_client_id', 'client-1001')
        event.settings.set('payment_mmg_checkout_secret_key', 'sk-test')
        event.settings.set('payment_mmg_checkout_rsa_public_key', processor_keys.public_pem)
        event.settings.set('payment_mmg_checkout_rsa_private_key', merchant_keys.private_pem)

        extra = {}
        if hasattr(orga, 'sales_channels'):
            extra['sales_channel'] = orga.sales_channels.get(identifier='web')

        order = Order.objects.create(
            code='FOOBAR', event=event, email='dummy@dummy.test',
            status=Order.STATUS_PENDING,
            datetime=now(), expires=now() + datetime.timedelta(days=10),
            total=Decimal('25.00'),
            **extra
        )
        payment = order.payments.create(
            id=1007,
            amount=order.total,
            provider='mmg_checkout',
            state=OrderPayment.PAYMENT_STATE_PENDING,
            info=json.dumps({'merchant_transaction_id': 1007}),
        )

    return client, orga, event, order, payment


@pytest.fixture
def provider(env):
    client, orga, event, order, payment = env
    with scope(organizer=orga):
        return event.get_payment_providers()['mmg_checkout']
