"""Domain exceptions raised by the service layer.

Each carries the HTTP status the API answers with; the handler in
`civicpoll.main` turns them into the standard error envelope.
"""

from fastapi import status


class ServiceError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Request could not be processed"

    def __init__(self, message: str | None = None, details: str | None = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ValidationFailed(ServiceError):
    message = "Validation failed"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    message = "Resource already exists"


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Access denied"


# Poll lifecycle


class PollNotFound(NotFound):
    message = "Poll not found"


class InvalidStatusTransition(ServiceError):
    message = "Invalid poll status transition"


class PollHasVotes(ServiceError):
    message = "Cannot delete a poll that has received votes"


# Voting


class PollNotActive(ServiceError):
    message = "Poll is not active"


class VotingNotStarted(ServiceError):
    message = "Voting has not started yet"


class VotingEnded(ServiceError):
    message = "Voting has ended"


class CandidateNotInPoll(NotFound):
    message = "Candidate not found in this poll"


class CandidateInactive(ServiceError):
    message = "This candidate is not active"


class AlreadyVoted(ServiceError):
    message = "You have already voted in this poll"
