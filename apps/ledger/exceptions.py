"""
Domain exceptions for the ledger engine.

Every expected validation failure derives from ``LedgerError`` and carries a
stable ``code``. ``LedgerService`` turns these into failed ``Result`` values
instead of letting them escape to the caller.

``LedgerConsistencyError`` is deliberately outside that hierarchy: it signals
a broken zero-sum invariant or a cache that no longer matches its log, and is
always raised.
"""


class LedgerError(Exception):
    """Base exception for all recoverable ledger errors."""

    code = 'ledger_error'
    default_message = 'Ledger operation failed.'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    @property
    def message(self):
        return str(self)


class InvalidAmountError(LedgerError):
    """Amount is not a positive integer within the allowed range."""

    code = 'invalid_amount'
    default_message = 'Amount must be a positive whole number of minor units.'


class NoParticipantsError(LedgerError):
    """Expense has nobody to split among."""

    code = 'no_participants'
    default_message = 'At least one participant is required.'


class UnknownMemberError(LedgerError):
    """Payer, participant or counterparty id is not a member of the group."""

    code = 'unknown_member'
    default_message = 'Member not found in this group.'


class SelfPaymentError(LedgerError):
    """Payment sender and receiver are the same member."""

    code = 'self_payment'
    default_message = 'Cannot record a payment to the same member.'


class DuplicateTransactionError(LedgerError):
    """Near-identical transaction was submitted moments ago."""

    code = 'duplicate_transaction'
    default_message = 'Duplicate transaction detected. Please wait before submitting it again.'


class InsufficientWalletBalanceError(LedgerError):
    """Wallet cannot cover the requested deduction."""

    code = 'insufficient_wallet_balance'
    default_message = 'Insufficient wallet balance.'


class MemberNotInGroupError(LedgerError):
    """Acting user (or the member being removed) does not belong to the group."""

    code = 'member_not_in_group'
    default_message = 'You are not a member of this group.'


class NotPaymentPartyError(LedgerError):
    """Acting member is neither the payer nor the receiver of a payment."""

    code = 'not_payment_party'
    default_message = 'You must be either the payer or the receiver of this payment.'


class GroupNotFoundError(LedgerError):
    code = 'group_not_found'
    default_message = 'Group not found.'


class InvalidPaymentMethodError(LedgerError):
    code = 'invalid_payment_method'
    default_message = "Payment method must be 'cash' or 'online'."


class ConcurrentModificationError(LedgerError):
    """Group ledger changed between load and append; caller should retry."""

    code = 'concurrent_modification'
    default_message = 'The group was modified by someone else. Please retry.'


class InvalidSplitError(LedgerError):
    """Shares of an expense do not add up to its amount."""

    code = 'invalid_split'
    default_message = 'Expense shares must add up to the expense amount.'


class LedgerConsistencyError(Exception):
    """Replay or zero-sum check failed. Not retryable."""

    def __init__(self, message, *, group_id=None, details=None):
        super().__init__(message)
        self.group_id = group_id
        self.details = details or {}
