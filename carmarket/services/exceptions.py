"""Error kinds raised by the moderation services.

All ``ModerationError`` subclasses are recoverable at the request boundary.
``PersistenceError`` means the transaction was rolled back.
"""

from pydantic import ValidationError as PydanticValidationError


class ModerationError(ValueError):
    """Base class for expected, caller-facing failures."""


class NotFoundError(ModerationError):
    pass


class ValidationError(ModerationError):
    """Malformed ids, missing reason, unknown fields, edit-terminal status."""


class ConflictError(ModerationError):
    """Wrong source status, lost race, duplicate open report."""


class AuthorizationError(ModerationError):
    """Role or ownership mismatch."""


class PersistenceError(RuntimeError):
    """Status write or audit append failed; nothing was committed."""


def from_pydantic(exc: PydanticValidationError) -> ValidationError:
    errors = exc.errors()
    if not errors:
        return ValidationError(str(exc))
    first = errors[0]
    message = first.get("msg", "Invalid input")
    # Drop pydantic's "Value error, " prefix on custom validator messages
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    loc = [str(part) for part in first.get("loc", ()) if part != "__root__"]
    if loc and first.get("type") != "value_error":
        return ValidationError(f"{'.'.join(loc)}: {message}")
    return ValidationError(message)
