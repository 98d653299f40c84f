import logging

from django.db import transaction
from django.http import Http404, HttpResponse
from django.shortcuts import redirect
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from pretix.base.models.items import Quota
from pretix.base.models.orders import Order, OrderPayment
from pretix.multidomain.urlreverse import eventreverse

from .callback import CallbackPayload, authenticate_callback_key, verify_callback_token
from .exceptions import MMGCheckoutError, NotFoundError
from .results import STATUS_CANCELLED, Outcome, interpret_result

logger = logging.getLogger('pretix_mmg_checkout')

PROVIDER = 'mmg_checkout'

TERMINAL_STATES = (
    OrderPayment.PAYMENT_STATE_CONFIRMED,
    OrderPayment.PAYMENT_STATE_FAILED,
    OrderPayment.PAYMENT_STATE_CANCELED,
    OrderPayment.PAYMENT_STATE_REFUNDED,
)


def get_confirmation_url(order: Order) -> str:
    url = eventreverse(order.event, 'presale:event.order', kwargs={
        'order': order.code,
        'secret': order.secret,
    })
    if order.status == Order.STATUS_PAID:
        return url + '?paid=yes'
    return url + '?thanks=yes'


def get_retry_payment_url(order: Order) -> str:
    return eventreverse(order.event, 'presale:event.order.pay.change', kwargs={
        'order': order.code,
        'secret': order.secret,
    })


def error_response(e: MMGCheckoutError) -> HttpResponse:
    return HttpResponse(e.public_message, status=e.status_code, content_type='text/plain; charset=utf-8')


@transaction.atomic
def apply_outcome(event, payload: CallbackPayload, outcome: Outcome) -> OrderPayment:
    """
        Moves the payment named by the callback out of its pending state.
        A payment that already left it is returned untouched, so a replayed
        callback neither changes state nor adds another log entry.
    """
    payment = None
    if payload.merchant_transaction_id is not None:
        payment = OrderPayment.objects.select_for_update().filter(
            pk=payload.merchant_transaction_id,
            order__event=event,
            provider=PROVIDER,
        ).first()

    if payment is None or payment.info_data.get('merchant_transaction_id') != payment.pk:
        raise NotFoundError('No MMG payment with merchantTransactionId %r' % payload.merchant_transaction_id)

    order = payment.order

    if payment.state in TERMINAL_STATES:
        logger.info('Ignoring callback for payment %s, already %s', payment.full_id, payment.state)
        return payment

    info = dict(payment.info_data)
    info.update({
        'transaction_id': payload.transaction_id,
        'result_code': payload.result_code,
        'result_message': payload.result_message,
        'callback': payload.raw,
    })

    if outcome.is_success:
        payment.info_data = info
        payment.save(update_fields=['info'])
        try:
            payment.confirm()
        except Quota.QuotaExceededException:
            # The customer has paid. The payment stays confirmed and pretix
            # flags the order for manual handling.
            pass
        order.log_action('pretix_mmg_checkout.payment.confirmed', data={
            'payment': payment.pk,
            'transaction_id': payload.transaction_id,
            'note': 'Payment completed via MMG Checkout. Transaction ID: %s' % payload.transaction_id,
        })
        logger.info('Payment %s confirmed, MMG transaction %s', payment.full_id, payload.transaction_id)

    elif outcome.status == STATUS_CANCELLED:
        payment.info_data = info
        payment.state = OrderPayment.PAYMENT_STATE_CANCELED
        payment.save(update_fields=['info', 'state'])
        order.log_action('pretix_mmg_checkout.payment.cancelled', data={
            'payment': payment.pk,
            'result_code': payload.result_code,
            'note': 'Payment cancelled. Reason: %s' % outcome.message,
        })
        logger.info('Payment %s cancelled: %s', payment.full_id, outcome.message)

    else:
        payment.fail(info=info)
        order.log_action('pretix_mmg_checkout.payment.failed', data={
            'payment': payment.pk,
            'result_code': payload.result_code,
            'note': 'Payment failed. Reason: %s' % outcome.message,
        })
        logger.info('Payment %s failed: %s', payment.full_id, outcome.message)

    payment.refresh_from_db()
    return payment


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def callback_view(request, *args, **kwargs):
    event = request.event
    payment_provider = event.get_payment_providers().get(PROVIDER)
    if payment_provider is None or not payment_provider.is_enabled:
        raise Http404()

    config = payment_provider.merchant_config()

    # First, make sure the callback key matches. Nothing else is looked at
    # before that.
    try:
        authenticate_callback_key(kwargs.get('callback_key', ''), config.callback_key)
    except MMGCheckoutError as e:
        logger.warning('Rejected MMG callback for event %s: %s', event.slug, e)
        return error_response(e)

    try:
        payload = verify_callback_token(request.GET.get('token', ''), config)
    except MMGCheckoutError as e:
        logger.warning('Rejected MMG callback token for event %s: %s', event.slug, e)
        return error_response(e)

    outcome = interpret_result(payload.result_code, payload.result_message)

    try:
        payment = apply_outcome(event, payload, outcome)
    except NotFoundError as e:
        logger.warning('MMG callback for event %s: %s', event.slug, e)
        return error_response(e)

    payment.order.refresh_from_db()
    if payment.state == OrderPayment.PAYMENT_STATE_CONFIRMED:
        return redirect(get_confirmation_url(payment.order))
    return redirect(get_retry_payment_url(payment.order))
