from pretix.multidomain import event_url

from . import views

event_patterns = [
    event_url(r'^_mmg_checkout/callback/(?P<callback_key>[^/]*)$',
        views.callback_view, name='callback', require_live=False),
    event_url(r'^_mmg_checkout/callback$',
        views.callback_view, name='callback_without_key', require_live=False),
]
