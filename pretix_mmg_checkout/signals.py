from django.dispatch import receiver
from django.utils.translation import gettext_lazy as _

from pretix.base.signals import logentry_display, register_payment_providers

LOG_ACTIONS = {
    'pretix_mmg_checkout.payment.confirmed': _('MMG Checkout confirmed the payment.'),
    'pretix_mmg_checkout.payment.failed': _('MMG Checkout reported a failed payment.'),
    'pretix_mmg_checkout.payment.cancelled': _('The payment was cancelled at MMG Checkout.'),
}


@receiver(register_payment_providers, dispatch_uid="payment_mmg_checkout")
def register_payment_provider(sender, **kwargs):
    from .payment import MMGCheckoutPaymentProvider
    return MMGCheckoutPaymentProvider


@receiver(logentry_display, dispatch_uid="payment_mmg_checkout_logentry_display")
def logentry_display_handler(sender, logentry, **kwargs):
    if logentry.action_type not in LOG_ACTIONS:
        return

    note = logentry.parsed_data.get('note')
    if note:
        return '%s %s' % (LOG_ACTIONS[logentry.action_type], note)
    return LOG_ACTIONS[logentry.action_type]
