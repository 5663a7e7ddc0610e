"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Bid session lifecycle
  3xxx: Turn
  4xxx: Station / bid target
  9xxx: System

Every error below is a synchronous precondition failure: the engine raises
it before mutating anything and never retries it.
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

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin access required", 403)


class UnknownUserError(AppError):
    def __init__(self, user_ids: list[str]) -> None:
        self.user_ids = user_ids
        super().__init__(1007, f"Unknown or inactive users: {', '.join(user_ids)}", 422)


# --- 2xxx: Bid session lifecycle ---

class SessionNotFoundError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(2001, f"Bid session not found: {session_id}", 404)


class InvalidSessionStateError(AppError):
    def __init__(self, session_id: str, status: str, action: str) -> None:
        self.status = status
        super().__init__(
            2002, f"Cannot {action} bid session {session_id} in status {status}", 409
        )


class NoParticipantsError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(2003, f"Bid session {session_id} has no participants", 422)


class DuplicateParticipantError(AppError):
    def __init__(self, user_ids: list[str]) -> None:
        self.user_ids = user_ids
        super().__init__(2004, f"Already participating: {', '.join(user_ids)}", 409)


class SessionNotActiveError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(2005, f"Bid session is not active: {session_id}", 409)


class SessionExhaustedError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(2006, f"Bid session has no remaining turns: {session_id}", 409)


class InvalidScheduleError(AppError):
    def __init__(self) -> None:
        super().__init__(2007, "scheduled_end must be after scheduled_start", 422)


# --- 3xxx: Turn ---

class NotYourTurnError(AppError):
    def __init__(self) -> None:
        super().__init__(3001, "It is not your turn to bid", 403)


class AlreadyBidError(AppError):
    def __init__(self) -> None:
        super().__init__(3002, "Participant has already submitted a bid", 409)


class TurnExpiredError(AppError):
    def __init__(self) -> None:
        super().__init__(3003, "Bidding window has expired", 409)


class TurnNotExpiredError(AppError):
    def __init__(self, remaining_seconds: int) -> None:
        super().__init__(
            3004, f"Current turn has not expired ({remaining_seconds}s remaining)", 409
        )


# --- 4xxx: Station / bid target ---

class InvalidStationError(AppError):
    def __init__(self, station_id: str) -> None:
        super().__init__(4001, f"Invalid station: {station_id}", 422)


class StationInactiveError(AppError):
    def __init__(self, station_id: str) -> None:
        super().__init__(4002, f"Station is inactive: {station_id}", 422)


class InvalidShiftError(AppError):
    def __init__(self, shift: str) -> None:
        super().__init__(4003, f"Invalid shift: {shift}", 422)


class InvalidPositionError(AppError):
    def __init__(self, position: str) -> None:
        super().__init__(4004, f"Invalid position: {position}", 422)


class StationAtCapacityError(AppError):
    def __init__(self, station_id: str, shift: str) -> None:
        super().__init__(
            4005, f"Station {station_id} is at full capacity for shift {shift}", 409
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
