"""Error taxonomy shared by entity methods, validation, and migration results."""

from __future__ import annotations

from enum import Enum


class MigrationErrorCode(str, Enum):
    """Typed failure reasons returned by book-level operations."""

    NOT_FOUND = "NotFound"
    NOT_FOUND_IN_SCOPE = "NotFoundInScope"
    CONFLICT = "Conflict"
    AMBIGUOUS_TARGET = "AmbiguousTarget"
    TARGET_REQUIRED = "TargetRequired"
    VALIDATION_FAILED = "ValidationFailed"


class BookGenError(Exception):
    """Base class for domain errors raised by entity methods."""

    code: MigrationErrorCode = MigrationErrorCode.VALIDATION_FAILED


class DuplicateNameError(BookGenError):
    """A character or element name already exists in the owning scope."""

    code = MigrationErrorCode.CONFLICT

    def __init__(self, kind: str, name: str, scope: str = "") -> None:
        self.kind = kind
        self.name = name
        self.scope = scope
        where = f" at {scope} level" if scope else ""
        super().__init__(f'{kind} with name "{name}" already exists{where}')


class NotFoundInScopeError(BookGenError):
    """A name or id does not exist in the scope it was looked up in."""

    code = MigrationErrorCode.NOT_FOUND_IN_SCOPE

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f'{kind} "{name}" not found')


class ValidationFailedError(BookGenError):
    """Business-rule violations caught before persistence."""

    code = MigrationErrorCode.VALIDATION_FAILED

    def __init__(self, errors: list[str], *, subject: str = "book") -> None:
        self.errors = list(errors)
        self.subject = subject
        super().__init__(f"Cannot save {subject}: {', '.join(self.errors)}")
