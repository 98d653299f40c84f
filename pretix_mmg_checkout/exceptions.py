class MMGCheckoutError(Exception):
    """
    Base of all errors raised by the checkout and callback pipeline.

    ``public_message`` is the only text that may be shown to whoever made the
    request; the exception message itself is for the log.
    """
    status_code = 400
    public_message = 'MMG Checkout error'

    def __init__(self, message: str = None, status_code: int = None, public_message: str = None):
        super().__init__(message or self.public_message)
        if status_code is not None:
            self.status_code = status_code
        if public_message is not None:
            self.public_message = public_message


class ConfigError(MMGCheckoutError):
    public_message = 'Payment method is not configured correctly'


class DecodeError(MMGCheckoutError):
    public_message = 'Error decrypting token'


class KeyLoadError(MMGCheckoutError):
    public_message = 'Payment method is not configured correctly'


class EncryptError(MMGCheckoutError):
    public_message = 'Error generating checkout token'


class DecryptError(MMGCheckoutError):
    public_message = 'Error decrypting token'


class MalformedPayloadError(MMGCheckoutError):
    public_message = 'Invalid token'


class AuthError(MMGCheckoutError):
    public_message = 'Invalid callback key'


class NotFoundError(MMGCheckoutError):
    public_message = 'Invalid order'
