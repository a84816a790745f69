"""Error handling utilities."""

from typing import Optional


class AgentPanelError(Exception):
    """Base exception for the agent panel backend."""
    status_code = 500
    default_message = "An error occurred. Please try again."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        """Message safe to show to the agent."""
        return str(self)


class ValidationError(AgentPanelError):
    """Malformed or missing user input."""
    status_code = 400
    default_message = "Please check the details you entered."


class InvalidInputError(ValidationError):
    """Input rejected by the identity verification gateway."""
    default_message = "Please enter a valid 10-digit Indian mobile number"


class DuplicateError(AgentPanelError):
    """Phone number or email already claimed by another agent."""
    status_code = 409
    default_message = "This account is already registered."


class VerificationError(AgentPanelError):
    """Submitted OTP was rejected."""
    status_code = 401
    default_message = "Invalid OTP. Please check the code and try again."


class ChallengeExpiredError(VerificationError):
    """Pending OTP challenge is stale or already used."""
    status_code = 410
    default_message = "OTP has expired. Please request a new one."


class NotFoundError(AgentPanelError):
    """Agent record or in-progress flow not found."""
    status_code = 404
    default_message = "Not found."


class SessionRequiredError(AgentPanelError):
    """No agent is logged in."""
    status_code = 401
    default_message = "Please log in to continue."


class UploadError(AgentPanelError):
    """File could not be stored."""
    status_code = 502
    default_message = "Failed to upload file. Please try again."


class InvalidFileError(UploadError, ValidationError):
    """File rejected before upload (type or size)."""
    status_code = 400
    default_message = "Please upload an image file."


class TransportError(AgentPanelError):
    """Network or backend service failure."""
    status_code = 502


class SupabaseError(TransportError):
    """Supabase operation error."""
    pass
