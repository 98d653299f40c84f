from typing import NamedTuple, Optional

STATUS_SUCCESS = 'success'
STATUS_FAILED = 'failed'
STATUS_CANCELLED = 'cancelled'


class Outcome(NamedTuple):
    status: str
    message: str

    @property
    def is_success(self) -> bool:
        return self.status == STATUS_SUCCESS


# 0 is the only code that means the shopper paid.
RESULT_CODES = {
    0: Outcome(STATUS_SUCCESS, 'Payment completed'),
    1: Outcome(STATUS_FAILED, 'Agent Not Registered'),
    2: Outcome(STATUS_FAILED, 'Payment Failed'),
    3: Outcome(STATUS_FAILED, 'Invalid Secret Key'),
    4: Outcome(STATUS_FAILED, 'Merchant ID Mismatch'),
    5: Outcome(STATUS_FAILED, 'Token Decryption Failed'),
    6: Outcome(STATUS_CANCELLED, 'Payment cancelled by user'),
    7: Outcome(STATUS_FAILED, 'Request Timed Out'),
}


def interpret_result(result_code: Optional[int], result_message: str = '') -> Outcome:
    if result_code in RESULT_CODES:
        return RESULT_CODES[result_code]

    code = '' if result_code is None else result_code
    return Outcome(STATUS_FAILED, 'Result Code: %s, Message: %s' % (code, result_message))
