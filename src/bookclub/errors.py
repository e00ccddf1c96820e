"""Domain error taxonomy.

Every error raised by a service carries the HTTP status it maps to and a
stable machine-readable ``code`` so clients can tell precondition failures
(e.g. "poll not open") apart from generic failures.
"""

from __future__ import annotations


class BookClubError(Exception):
    """Base class for all per-request domain errors."""

    status_code: int = 400
    code: str = "bad_request"
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# --- Validation ---


class ValidationFailed(BookClubError, ValueError):
    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input"


class InvalidProgressError(ValidationFailed):
    code = "invalid_progress"
    default_message = "Progress must be an integer between 0 and 100"


# --- Preconditions ---


class PreconditionFailed(BookClubError):
    status_code = 409
    code = "precondition_failed"
    default_message = "Precondition failed"


class PollNotOpenError(PreconditionFailed):
    code = "poll_not_open"
    default_message = "Poll is not currently open for voting"


class PollClosedError(PreconditionFailed):
    code = "poll_closed"
    default_message = "Poll is already closed"


class NotACandidateError(PreconditionFailed):
    status_code = 400
    code = "not_a_candidate"
    default_message = "Book is not a candidate in this poll"


class DiscussionLockedError(PreconditionFailed):
    status_code = 403
    code = "discussion_locked"
    default_message = "Read further to unlock this discussion"


class BookNotFinishedError(PreconditionFailed):
    status_code = 403
    code = "book_not_finished"
    default_message = "You must finish reading the book before leaving a review"


# --- Not found ---


class NotFound(BookClubError, LookupError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class UserNotFoundError(NotFound):
    code = "user_not_found"
    default_message = "User not found"


class BookNotFoundError(NotFound):
    code = "book_not_found"
    default_message = "Book not found"


class DiscussionNotFoundError(NotFound):
    code = "discussion_not_found"
    default_message = "Discussion question not found"


class CommentNotFoundError(NotFound):
    code = "comment_not_found"
    default_message = "Comment not found"


class ReviewNotFoundError(NotFound):
    code = "review_not_found"
    default_message = "Review not found"


class PollNotFoundError(NotFound):
    code = "poll_not_found"
    default_message = "Poll not found"


class VoteNotFoundError(NotFound):
    code = "vote_not_found"
    default_message = "No vote to remove"


class BadgeNotFoundError(NotFound):
    code = "badge_not_found"
    default_message = "Badge not found or does not belong to user"


# --- Consistency ---


class ConflictError(BookClubError):
    """A concurrent request won a race on the same rows; retry the whole action."""

    status_code = 409
    code = "conflict"
    default_message = "Concurrent update detected, please retry"


class VoteConflictError(ConflictError):
    code = "vote_conflict"
    default_message = "Concurrent vote detected, please retry"
