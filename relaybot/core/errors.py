"""
Error taxonomy for the pairing and relay engine.
Every failure a caller must react to has its own type and a stable code.
"""
from typing import Any, Optional


class RelayBotError(Exception):
    """
    Base exception for the relay bot.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.details = details
        super().__init__(self.message)


class AlreadyPaired(RelayBotError):
    """
    Raised when a pairing is attempted on a participant who already has a partner.
    """
    def __init__(self, participant_id: int, partner_id: Optional[int] = None):
        self.participant_id = participant_id
        self.partner_id = partner_id
        super().__init__(
            f"Participant {participant_id} is already paired",
            code="ALREADY_PAIRED",
            details={'participant_id': participant_id},
        )


class InvalidPairing(RelayBotError):
    """
    Raised for self-pairing or an unknown target.
    """
    def __init__(self, message: str = "Invalid pairing", details: Optional[Any] = None):
        super().__init__(message, code="INVALID_PAIRING", details=details)


class RegistrationRequired(RelayBotError):
    """
    Raised when a participant with an incomplete profile tries to join the queue.
    """
    def __init__(self, participant_id: int):
        self.participant_id = participant_id
        super().__init__(
            f"Participant {participant_id} has not completed registration",
            code="REGISTRATION_REQUIRED",
        )


class StoreUnavailable(RelayBotError):
    """
    Raised when the pairing state backend cannot be reached.
    """
    def __init__(self, message: str = "State store unavailable", details: Optional[Any] = None):
        super().__init__(message, code="STORE_UNAVAILABLE", details=details)


class TransportError(RelayBotError):
    """
    Raised by the transport wrapper when a Telegram call fails.
    """
    def __init__(self, operation: str, chat_id: Any, error: Optional[BaseException] = None):
        self.operation = operation
        self.chat_id = chat_id
        self.error = error
        super().__init__(
            f"{operation} to {chat_id} failed: {error}",
            code="TRANSPORT_ERROR",
            details={'operation': operation, 'chat_id': chat_id},
        )


class PartnerUnreachable(RelayBotError):
    """
    Raised when a relayed message could not be delivered to the partner.
    """
    def __init__(self, sender_id: int, partner_id: int, cause: Optional[BaseException] = None):
        self.sender_id = sender_id
        self.partner_id = partner_id
        self.cause = cause
        super().__init__(
            f"Partner {partner_id} of {sender_id} is unreachable",
            code="PARTNER_UNREACHABLE",
            details={'sender_id': sender_id, 'partner_id': partner_id},
        )


class MalformedToken(RelayBotError):
    """
    Raised when delete callback data does not decode to four integers.
    """
    def __init__(self, data: Any, reason: str = "expected four integers"):
        self.data = data
        super().__init__(f"Malformed delete token {data!r}: {reason}", code="MALFORMED_TOKEN")


class PartialDeleteFailure(RelayBotError):
    """
    Raised when only one of the two correlated messages was deleted.
    """
    def __init__(self, result: Any):
        self.result = result
        super().__init__("Only one side of the message was deleted", code="PARTIAL_DELETE", details=result)


class DeleteFailed(RelayBotError):
    """
    Raised when neither correlated message could be deleted.
    """
    def __init__(self, result: Any):
        self.result = result
        super().__init__("Neither side of the message was deleted", code="DELETE_FAILED", details=result)


class ProfileNotFound(RelayBotError):
    """
    Raised when a participant profile does not exist.
    """
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"Profile {user_id} not found", code="PROFILE_NOT_FOUND")
