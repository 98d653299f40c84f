from django.utils.translation import gettext_lazy

from . import __version__

try:
    from pretix.base.plugins import PluginConfig
except ImportError:
    raise RuntimeError("Please use pretix 2023.6 or above to run this plugin!")


class PluginApp(PluginConfig):
    default = True
    name = 'pretix_mmg_checkout'
    verbose_name = 'MMG Checkout'

    class PretixPluginMeta:
        name = gettext_lazy('MMG Checkout')
        author = 'pretix-mmg-checkout contributors'
        description = gettext_lazy('Pretix payment plugin for MMG (Mobile Money Guyana) Checkout')
        visible = True
        version = __version__
        category = 'PAYMENT'
        compatibility = "pretix>=2023.6.0"

    def ready(self):
        from . import signals  # NOQA
