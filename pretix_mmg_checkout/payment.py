import logging
import string
from collections import OrderedDict

from django import forms
from django.db import transaction
from django.utils.crypto import get_random_string
from django.utils.translation import gettext_lazy as _

from pretix.base.forms import SecretKeySettingsField
from pretix.base.models import Event
from pretix.base.models.orders import OrderPayment
from pretix.base.payment import BasePaymentProvider, PaymentException
from pretix.multidomain.urlreverse import build_absolute_uri

from . import crypto
from .checkout import build_checkout_url, build_token
from .config import MODE_DEMO, MODE_LIVE, MerchantConfig
from .exceptions import KeyLoadError, MMGCheckoutError

logger = logging.getLogger('pretix_mmg_checkout')

CALLBACK_KEY_LENGTH = 32


class MMGCheckoutPaymentProvider(BasePaymentProvider):
    identifier = 'mmg_checkout'
    verbose_name = 'MMG Checkout'
    public_name = 'MMG Checkout'

    @property
    def settings_form_fields(self):
        return OrderedDict(
            list(super().settings_form_fields.items()) + [
                ('mode', forms.ChoiceField(
                    label=_('Mode'),
                    choices=(
                        (MODE_DEMO, _('Demo (UAT)')),
                        (MODE_LIVE, _('Live')),
                    ),
                    initial=MODE_DEMO,
                    required=True,
                )),
                ('merchant_id', forms.CharField(
                    widget=forms.TextInput,
                    label=_('Merchant ID'),
                    required=True,
                )),
                ('client_id', forms.CharField(
                    widget=forms.TextInput,
                    label=_('Client ID'),
                    help_text=_('Sent as X-Client-ID to the checkout page.'),
                    required=True,
                )),
                ('merchant_name', forms.CharField(
                    widget=forms.TextInput,
                    label=_('Merchant name'),
                    help_text=_('Shown to the customer by MMG. Defaults to the organizer name.'),
                    required=False,
                )),
                ('secret_key', SecretKeySettingsField(
                    label=_('Secret key'),
                    required=True,
                )),
                ('rsa_public_key', forms.CharField(
                    widget=forms.Textarea,
                    label=_('MMG RSA public key'),
                    help_text=_('PEM or base64 DER. Used to encrypt the checkout token.'),
                    required=True,
                )),
                ('rsa_private_key', SecretKeySettingsField(
                    label=_('Merchant RSA private key'),
                    help_text=_('PEM or base64 DER, not password protected. Used to decrypt payment '
                                'confirmations.'),
                    required=True,
                )),
            ]
        )

    def settings_form_clean(self, cleaned_data):
        public_key = cleaned_data.get('payment_mmg_checkout_rsa_public_key')
        if public_key:
            try:
                crypto.load_public_key(public_key)
            except KeyLoadError:
                raise forms.ValidationError(_('The RSA public key could not be loaded.'))

        private_key = cleaned_data.get('payment_mmg_checkout_rsa_private_key')
        if private_key:
            try:
                crypto.load_private_key(private_key)
            except KeyLoadError:
                raise forms.ValidationError(_('The RSA private key could not be loaded. '
                                              'Password protected keys are not supported.'))

        return cleaned_data

    def get_callback_key(self):
        """
            Generated on first use and kept forever after. Concurrent first
            uses are serialized on the event row.
        """
        key = self.settings.get('callback_key')
        if key:
            return key

        with transaction.atomic():
            Event.objects.select_for_update().filter(pk=self.event.pk).first()
            self.event.settings.flush()
            key = self.settings.get('callback_key')
            if not key:
                key = get_random_string(length=CALLBACK_KEY_LENGTH,
                                        allowed_chars=string.ascii_letters + string.digits)
                self.settings.set('callback_key', key)
                logger.info('Generated callback key for event %s', self.event.slug)

        return key

    def get_callback_url(self):
        return build_absolute_uri(self.event, 'plugins:pretix_mmg_checkout:callback',
                                  kwargs={'callback_key': self.get_callback_key()})

    def merchant_config(self) -> MerchantConfig:
        return MerchantConfig.from_settings(self.settings, default_merchant_name=self.event.organizer.name)

    def settings_content_render(self, request):
        return "<div class='alert alert-info'>%s <b>%s</b><br /><code>%s</code></div>" % (
            _("Give this URL to MMG as the payment confirmation endpoint."),
            _("Anyone knowing this endpoint can report payments, so keep it secret."),
            self.get_callback_url(),
        )

    def payment_is_valid_session(self, request):
        # We do not store any session info
        return True

    def payment_form_render(self, request, total):
        return _('After confirming your order you will be redirected to MMG to complete the payment.')

    def checkout_confirm_render(self, request):
        return _('You will be redirected to MMG Checkout to pay for your order.')

    def payment_pending_render(self, request, payment):
        return _('We are waiting for MMG to confirm your payment.')

    def execute_payment(self, request, payment):
        config = self.merchant_config()
        try:
            config.validate_for_checkout()
            checkout_token = build_token(payment, config)
            checkout_url = build_checkout_url(checkout_token.token, config)
        except MMGCheckoutError as e:
            logger.exception('Error on generating checkout URL for payment %s', payment.full_id)
            raise PaymentException(_('Error generating checkout URL: %s') % e.public_message) from e

        payment.info_data = {'merchant_transaction_id': checkout_token.merchant_transaction_id}
        payment.state = OrderPayment.PAYMENT_STATE_PENDING
        payment.save(update_fields=['info', 'state'])

        return checkout_url

    @property
    def test_mode_message(self):
        if self.settings.get('mode', MODE_DEMO) != MODE_LIVE:
            return _('The MMG demo (UAT) checkout is being used. No real money will be charged.')
