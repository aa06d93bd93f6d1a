"""
HTTP mapping for ledger errors.

Each ledger error code gets its own APIException with a fixed status.
Views call ``to_api_exception(result.error)`` and raise the result.
"""
from rest_framework.exceptions import APIException


class InvalidAmountAPIError(APIException):
    status_code = 400
    default_detail = 'Amount must be a positive whole number of minor units.'
    default_code = 'invalid_amount'


class NoParticipantsAPIError(APIException):
    status_code = 400
    default_detail = 'At least one participant is required.'
    default_code = 'no_participants'


class UnknownMemberAPIError(APIException):
    status_code = 400
    default_detail = 'Member not found in this group.'
    default_code = 'unknown_member'


class SelfPaymentAPIError(APIException):
    status_code = 400
    default_detail = 'Cannot record a payment to the same member.'
    default_code = 'self_payment'


class InvalidPaymentMethodAPIError(APIException):
    status_code = 400
    default_detail = "Payment method must be 'cash' or 'online'."
    default_code = 'invalid_payment_method'


class InvalidSplitAPIError(APIException):
    status_code = 400
    default_detail = 'Expense shares must add up to the expense amount.'
    default_code = 'invalid_split'


class InsufficientWalletBalanceAPIError(APIException):
    """Separate message so the client can offer a wallet top-up."""
    status_code = 400
    default_detail = 'Insufficient wallet balance. Add money to your wallet and try again.'
    default_code = 'insufficient_wallet_balance'


class MemberNotInGroupAPIError(APIException):
    status_code = 403
    default_detail = 'You are not a member of this group.'
    default_code = 'member_not_in_group'


class NotPaymentPartyAPIError(APIException):
    status_code = 403
    default_detail = 'You must be either the payer or the receiver of this payment.'
    default_code = 'not_payment_party'


class GroupNotFoundAPIError(APIException):
    status_code = 404
    default_detail = 'Group not found.'
    default_code = 'group_not_found'


class DuplicateTransactionAPIError(APIException):
    status_code = 409
    default_detail = 'Duplicate transaction detected. Please wait before submitting it again.'
    default_code = 'duplicate_transaction'


class ConcurrentModificationAPIError(APIException):
    status_code = 409
    default_detail = 'The group was modified by someone else. Please retry.'
    default_code = 'concurrent_modification'


class LedgerAPIError(APIException):
    status_code = 400
    default_detail = 'Ledger operation failed.'
    default_code = 'ledger_error'


API_EXCEPTIONS = {
    cls.default_code: cls
    for cls in (
        InvalidAmountAPIError,
        NoParticipantsAPIError,
        UnknownMemberAPIError,
        SelfPaymentAPIError,
        InvalidPaymentMethodAPIError,
        InvalidSplitAPIError,
        InsufficientWalletBalanceAPIError,
        MemberNotInGroupAPIError,
        NotPaymentPartyAPIError,
        GroupNotFoundAPIError,
        DuplicateTransactionAPIError,
        ConcurrentModificationAPIError,
    )
}


def to_api_exception(error) -> APIException:
    """Convert a LedgerError into the matching APIException instance."""
    cls = API_EXCEPTIONS.get(error.code, LedgerAPIError)
    if cls is InsufficientWalletBalanceAPIError:
        return cls()
    return cls(detail=error.message, code=error.code)
