from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigError

MODE_LIVE = 'live'
MODE_DEMO = 'demo'

CHECKOUT_ENDPOINTS = {
    MODE_LIVE: 'https://gtt-checkout.qpass.com:8743/checkout-endpoint/home',
    MODE_DEMO: 'https://gtt-uat-checkout.qpass.com:8743/checkout-endpoint/home',
}


@dataclass(frozen=True)
class MerchantConfig:
    """
        Snapshot of the provider settings, taken once per request and handed
        to the token and callback code. callback_key is None until the
        provider has generated one.
    """
    mode: str
    merchant_id: str
    client_id: str
    merchant_name: str
    secret_key: str
    public_key: str
    private_key: str
    callback_key: Optional[str] = None

    @classmethod
    def from_settings(cls, settings, default_merchant_name: str = '') -> 'MerchantConfig':
        def value(key):
            return (settings.get(key) or '').strip()

        return cls(
            mode=value('mode') or MODE_DEMO,
            merchant_id=value('merchant_id'),
            client_id=value('client_id'),
            merchant_name=value('merchant_name') or str(default_merchant_name),
            secret_key=value('secret_key'),
            public_key=value('rsa_public_key'),
            private_key=value('rsa_private_key'),
            callback_key=value('callback_key') or None,
        )

    @property
    def checkout_endpoint(self) -> str:
        try:
            return CHECKOUT_ENDPOINTS[self.mode]
        except KeyError:
            raise ConfigError('Unknown mode %r' % self.mode)

    def validate_for_checkout(self):
        if self.mode not in CHECKOUT_ENDPOINTS:
            raise ConfigError('Unknown mode %r' % self.mode)
        missing = [name for name in ('merchant_id', 'client_id', 'secret_key', 'public_key')
                   if not getattr(self, name)]
        if missing:
            raise ConfigError('Missing merchant settings: %s' % ', '.join(missing))

    def validate_for_callback(self):
        if not self.private_key:
            raise ConfigError('RSA private key is missing', public_message='Error decrypting token')
