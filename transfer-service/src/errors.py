"""
Error taxonomy for the transfer service.

Every failure a submission can end in is a JustBankError subclass with a
stable ``kind`` (used by API clients), a message that can be shown to the
end user as-is, and the HTTP status the routers answer with.
"""

from typing import Any, Dict, Optional


class JustBankError(Exception):
    kind = "JustBankError"
    status_code = 500
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None, stage: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        self.stage = stage
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.detail:
            out["detail"] = self.detail
        if self.stage:
            out["stage"] = self.stage
        return out


class ConfigError(JustBankError):
    kind = "ConfigError"
    default_message = "Service is not properly configured."


# -- local validation ---------------------------------------------------------

class DecodeError(JustBankError):
    kind = "DecodeError"
    status_code = 400
    default_message = "Invalid recipient account ID. Please check the sharable ID and try again."


class InvalidAmount(JustBankError):
    kind = "InvalidAmount"
    status_code = 400
    default_message = "Please enter a valid transfer amount of at least $0.01."


class SameAccountTransfer(JustBankError):
    kind = "SameAccountTransfer"
    status_code = 400
    default_message = "Cannot transfer funds to the same account. Please select a different recipient."


class AccountNotFound(JustBankError):
    kind = "AccountNotFound"
    status_code = 404
    default_message = "Account not found."


# -- provisioning -------------------------------------------------------------

class MissingDwollaCustomer(JustBankError):
    kind = "MissingDwollaCustomer"
    status_code = 409
    default_message = "Your profile is not set up for transfers yet. Please complete payment setup first."


class MissingProcessorToken(JustBankError):
    kind = "MissingProcessorToken"
    status_code = 409
    default_message = "This bank is not fully set up for transfers. Please reconnect it from My Banks."


class FundingSourceCreationFailed(JustBankError):
    kind = "FundingSourceCreationFailed"
    status_code = 502
    default_message = "Could not set up this bank for transfers. Please reconnect it from My Banks."


class CustomerCreationFailed(JustBankError):
    kind = "CustomerCreationFailed"
    status_code = 502
    default_message = "Could not create your payment profile. Please try again later."


class AggregatorError(JustBankError):
    kind = "AggregatorError"
    status_code = 502
    default_message = "Bank connection service returned an error. Please reconnect your bank."


# -- money movement -----------------------------------------------------------

class InvalidRequest(JustBankError):
    kind = "InvalidRequest"
    status_code = 400
    default_message = "Invalid transfer request. Please check your account details."


class AuthenticationFailed(JustBankError):
    kind = "AuthenticationFailed"
    status_code = 502
    default_message = "Payment service authentication failed. Please contact support."


class NotAuthorized(JustBankError):
    kind = "NotAuthorized"
    status_code = 403
    default_message = "Transfer not authorized. Please check your account permissions."


class CounterpartyNotFound(JustBankError):
    kind = "CounterpartyNotFound"
    status_code = 404
    default_message = "Account not found. Please verify the recipient's account information."


class UpstreamUnavailable(JustBankError):
    kind = "UpstreamUnavailable"
    status_code = 503
    default_message = "Payment service temporarily unavailable. Please try again later."


class TransferFailed(JustBankError):
    kind = "TransferFailed"
    status_code = 502
    default_message = "Transfer failed. Please try again."


class LedgerWriteFailed(JustBankError):
    kind = "LedgerWriteFailed"
    status_code = 200
    default_message = (
        "Transfer was successful but the transaction record could not be created. "
        "Please check your transaction history."
    )


# Upstream HTTP status -> error raised for a failed transfer call
TRANSFER_STATUS_ERRORS = {
    400: InvalidRequest,
    401: AuthenticationFailed,
    403: NotAuthorized,
    404: CounterpartyNotFound,
}


def transfer_error_for_status(status: int) -> type:
    if status >= 500:
        return UpstreamUnavailable
    return TRANSFER_STATUS_ERRORS.get(status, TransferFailed)
