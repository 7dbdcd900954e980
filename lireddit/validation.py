from lireddit.schemas import FieldError, PostInput, UsernamePasswordInput

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 7
MIN_TITLE_LENGTH = 2
MAX_TITLE_LENGTH = 70
MIN_TEXT_LENGTH = 25


def validate_password(password: str, field: str = "password") -> list[FieldError] | None:
    if len(password) < MIN_PASSWORD_LENGTH:
        return [FieldError(field=field, message="length must be greater than 6")]
    return None


def validate_register(options: UsernamePasswordInput) -> list[FieldError] | None:
    """
    Server-side registration rules.  Only the first failing rule is
    reported; the order below is part of the API contract.
    """
    if len(options.username) < MIN_USERNAME_LENGTH:
        return [FieldError(field="username", message="length must be greater than 2")]
    if "@" not in options.email:
        return [FieldError(field="email", message="invalid email")]
    errors = validate_password(options.password)
    if errors:
        return errors
    if "@" in options.username:
        return [FieldError(field="username", message="username can not include an @")]
    return None


def is_valid_post(data: PostInput) -> bool:
    """Title within [2, 70] characters and text of at least 25 characters."""
    return (
        MIN_TITLE_LENGTH <= len(data.title) <= MAX_TITLE_LENGTH
        and len(data.text) >= MIN_TEXT_LENGTH
    )
