# channel-backend/common/exceptions.py
"""
Domain errors raised by the channel services.

Every error carries a machine readable ``code``, a human readable message and
the HTTP status the API layer answers with. Views never build these responses
by hand; they let ``ChannelAPIView`` translate whatever the service raised.

    ChannelError
    +-- ValidationFailed (400)
    |   +-- InsufficientQuantity
    |   +-- TargetIneligible
    +-- NotFound (404)
    |   +-- NoActivePickup
    +-- StateConflict (409)
    |   +-- IllegalTransition
    |   +-- NotPending
    |   +-- RequestAlreadyExists
    |   +-- CooldownActive
    +-- ResourceExhausted (409)
    |   +-- ActiveStockExists
    |   +-- AllowanceExceeded
    |   +-- InsufficientStock
    +-- AuthorizationDenied (403)
        +-- AccountLocked
        +-- LocationMismatch
        +-- NotOwner
"""


class ChannelError(Exception):
    code = "channel_error"
    http_status = 400
    default_message = "Request could not be processed"

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        data = {"error": self.message, "code": self.code}
        data.update(self.details)
        return data


class ValidationFailed(ChannelError):
    code = "validation_failed"
    http_status = 400
    default_message = "Invalid request"


class NotFound(ChannelError):
    code = "not_found"
    http_status = 404
    default_message = "Not found"


class StateConflict(ChannelError):
    code = "state_conflict"
    http_status = 409
    default_message = "Operation not allowed in the current state"


class ResourceExhausted(ChannelError):
    code = "resource_exhausted"
    http_status = 409
    default_message = "Limit reached"


class AuthorizationDenied(ChannelError):
    code = "forbidden"
    http_status = 403
    default_message = "You are not allowed to perform this action"


# --- validation -------------------------------------------------------------

class InsufficientQuantity(ValidationFailed):
    code = "insufficient_quantity"
    default_message = "Number of devices exceeds the quantity picked up"


class TargetIneligible(ValidationFailed):
    code = "target_ineligible"
    default_message = "Selected user cannot receive this stock"


# --- not found --------------------------------------------------------------

class NoActivePickup(NotFound):
    code = "no_active_pickup"
    default_message = "No active stock pickup found or the deadline has passed"


# --- state ------------------------------------------------------------------

class IllegalTransition(StateConflict):
    code = "illegal_transition"

    def __init__(self, current, event, message=None):
        super().__init__(
            message or f"Cannot {event.replace('_', ' ')} while stock is {current.replace('_', ' ')}",
            current_status=current,
            event=event,
        )


class NotPending(StateConflict):
    code = "not_pending"
    default_message = "Order is not pending confirmation"


class RequestAlreadyExists(StateConflict):
    code = "request_exists"
    default_message = "You already have an active additional pickup request"


class CooldownActive(StateConflict):
    code = "cooldown_active"
    default_message = "Your last request was rejected. Please wait before requesting again"


# --- resources --------------------------------------------------------------

ACTIVE_STOCK_MESSAGES = {
    "pending": "You already have stock that has not been sold or returned",
    "pending_order": "You have an order awaiting confirmation. Wait for it to be confirmed",
    "return_pending": "You have a pending return awaiting confirmation",
    "transfer_pending": "You have a stock transfer awaiting approval",
}


class ActiveStockExists(ResourceExhausted):
    code = "active_stock_exists"
    default_message = "You already have an active stock pickup"

    def __init__(self, active_status=None, message=None, **details):
        if message is None:
            message = ACTIVE_STOCK_MESSAGES.get(active_status, self.default_message)
        super().__init__(message, active_status=active_status, **details)


class AllowanceExceeded(ResourceExhausted):
    code = "allowance_exceeded"

    def __init__(self, allowance, requested):
        super().__init__(
            f"You can only pick up {allowance} unit(s) at a time",
            allowance=allowance,
            requested=requested,
        )


class InsufficientStock(ResourceExhausted):
    code = "insufficient_stock"

    def __init__(self, requested, available):
        super().__init__(
            f"Insufficient stock: requested {requested}, available {available}",
            requested=requested,
            available=available,
        )


# --- authorization ----------------------------------------------------------

class AccountLocked(AuthorizationDenied):
    code = "account_locked"
    default_message = "Your account is locked. Contact your administrator"


class LocationMismatch(AuthorizationDenied):
    code = "location_mismatch"
    default_message = "You can only deal with users in your own location"


class NotOwner(AuthorizationDenied):
    code = "not_owner"
    default_message = "This stock does not belong to you"
