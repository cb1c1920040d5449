"""Domain errors raised by the relationship core.

Each error carries a stable machine-readable ``code`` next to its message.
The API layer maps them to HTTP responses; infrastructure errors (database,
Redis) are never wrapped in these classes.
"""


class RelationshipError(Exception):
    """Base class for relationship rule violations.

    Attributes:
        message: Human-readable error description.
        code: Stable discriminator, e.g. ``USER_ALREADY_FOLLOWED``.
    """

    def __init__(self, message: str, code: str) -> None:
        self.message = message
        self.code = code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(code={self.code})>"


class SelfTargetError(RelationshipError):
    """The actor targeted their own account (``CANNOT_<OP>_SELF``)."""

    def __init__(self, verb: str, code: str) -> None:
        super().__init__(f"You cannot {verb} yourself.", code)


class UserNotFoundError(RelationshipError):
    def __init__(self, message: str = "User not found.") -> None:
        super().__init__(message, "USER_NOT_FOUND")


class RelationshipExistsError(RelationshipError):
    """A positive transition found the edge already in place (``USER_ALREADY_<OP>ED``)."""


class RelationshipMissingError(RelationshipError):
    """A negative transition found no edge to remove (``USER_NOT_UN<OP>ED``)."""


class FollowRequestNotFoundError(RelationshipError):
    def __init__(self) -> None:
        super().__init__(
            "This user does not exist or has not sent a follow request.",
            "FOLLOW_REQUEST_NOT_FOUND",
        )


class AccessDeniedError(RelationshipError):
    def __init__(self, message: str = "You are not allowed to view this user.") -> None:
        super().__init__(message, "ACCESS_DENIED")
