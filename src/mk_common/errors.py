"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Account ledger
  3xxx: Listing / auction
  4xxx: Order
  5xxx: Confirmation code
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class ForbiddenError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1006, f"Forbidden: {detail}", 403)


class StudentIdExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1007, "Student id already registered", 409)


# --- 2xxx: Account ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, required: object, available: object) -> None:
        super().__init__(
            2001,
            f"Insufficient funds: required {required}, available {available}",
            422,
        )


# --- 3xxx: Listing / auction ---

class ListingNotFoundError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3001, f"Listing not found: {listing_id}", 404)


class ListingNotActiveError(AppError):
    def __init__(self, listing_id: str, status: str) -> None:
        super().__init__(3002, f"Listing {listing_id} is not active (status={status})", 422)


class BidRejectedError(AppError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(3003, f"Bid rejected: {reason}", 422)


# --- 4xxx: Order ---

class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class InvalidStateTransitionError(AppError):
    def __init__(self, current: str, attempted: str) -> None:
        self.current = current
        self.attempted = attempted
        super().__init__(
            4006, f"Transition not allowed: {current} -> {attempted}", 409
        )


# --- 5xxx: Confirmation code ---

class CodeExpiredOrLockedError(AppError):
    def __init__(self, target_id: str) -> None:
        super().__init__(
            5001,
            f"Confirmation code for {target_id} expired or locked; request a new code",
            410,
        )


class CodeNotFoundError(AppError):
    def __init__(self, target_id: str) -> None:
        super().__init__(5002, f"No confirmation code issued for {target_id}", 404)


class CodeMismatchError(AppError):
    def __init__(self, attempts_left: int) -> None:
        self.attempts_left = attempts_left
        super().__init__(
            5003, f"Confirmation code does not match ({attempts_left} attempts left)", 422
        )


# --- 6xxx: Review ---

class ReviewExistsError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(6001, f"Listing {listing_id} already reviewed by this buyer", 409)


class OrderNotReviewableError(AppError):
    def __init__(self, order_id: str, state: str) -> None:
        super().__init__(6002, f"Order {order_id} cannot be reviewed (state={state})", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ValidationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Validation failed: {detail}", 422)


class ConcurrentModificationError(AppError):
    """A concurrent write won the race. Safe to retry."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            9004, f"{entity} {entity_id} was modified concurrently; retry", 409
        )
