from models.enums import PaymentStatus, PaymentMode
from utils.errors import InvalidTransitionError

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.CANCELLED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED, PaymentStatus.CANCELLED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.CANCELLED: set(),
    PaymentStatus.REFUNDED: set(),
}

TERMINAL_PAYMENT_STATUSES = frozenset(s for s, targets in PAYMENT_TRANSITIONS.items() if not targets)


def can_transition_payment(source: PaymentStatus, target: PaymentStatus) -> bool:
    return target in PAYMENT_TRANSITIONS.get(source, set())


def transition_payment_status(payment, target: PaymentStatus):
    """The only place a payment's status is changed."""
    source = payment.status
    if not can_transition_payment(source, target):
        raise InvalidTransitionError("payment", source, target)
    payment.status = target
    return source


def initial_payment_status(payment_mode: PaymentMode, transaction_id: str = None) -> PaymentStatus:
    if payment_mode == PaymentMode.CASH:
        return PaymentStatus.COMPLETED
    if payment_mode == PaymentMode.UPI and transaction_id:
        return PaymentStatus.COMPLETED
    return PaymentStatus.PENDING
