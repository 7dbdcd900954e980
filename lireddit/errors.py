class NotAuthenticatedError(Exception):
    """A protected operation was called without a bound session."""

    def __init__(self, message: str = "not authenticated") -> None:
        super().__init__(message)


class InvalidVoteError(ValueError):
    """A vote value other than +1 or -1."""

    def __init__(self, value: int) -> None:
        super().__init__(f"vote value must be 1 or -1, got {value}")
        self.value = value


class UserNotFoundError(LookupError):
    """The user loader was asked for an id with no matching row."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"user {user_id} does not exist")
        self.user_id = user_id
