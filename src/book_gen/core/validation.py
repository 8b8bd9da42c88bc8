"""Reference-integrity validation across the book → story → scene graph."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from book_gen.domain.errors import ValidationFailedError
from book_gen.domain.models import (
    MAX_BOOK_TITLE_LENGTH,
    VALID_ASPECT_RATIOS,
    Book,
    Character,
    Scene,
    Story,
    name_key,
)


@dataclass
class ValidationResult:
    """Aggregated errors (blocking) and warnings (advisory)."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def absorb(self, child: ValidationResult, *, prefix: str) -> None:
        """Fold a nested result in, prefixing each message with its location."""
        self.errors.extend(f"{prefix}: {message}" for message in child.errors)
        self.warnings.extend(f"{prefix}: {message}" for message in child.warnings)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def duplicate_names(names: Iterable[str]) -> list[str]:
    """Return every case-insensitive duplicate once, in first-seen order."""
    seen: set[str] = set()
    reported: set[str] = set()
    duplicates: list[str] = []
    for name in names:
        key = name_key(name)
        if key in seen and key not in reported:
            reported.add(key)
            duplicates.append(name)
        seen.add(key)
    return duplicates


def validate_scene(
    scene: Scene,
    story: Story,
    book_characters: Sequence[Character] | None = None,
) -> ValidationResult:
    result = ValidationResult()
    if _is_blank(scene.title):
        result.errors.append("Scene title is required")
    if _is_blank(scene.description):
        result.errors.append("Scene description is required")

    book_names = {name_key(character.name) for character in book_characters or ()}
    for name in scene.characters:
        if story.find_character(name) is None and name_key(name) not in book_names:
            result.errors.append(f'Character "{name}" not found in story or book')
    for name in scene.elements:
        if story.find_element(name) is None:
            result.errors.append(f'Element "{name}" not found in story')

    if not scene.characters and not scene.elements:
        result.warnings.append("Scene has no characters or elements")
    return result


def validate_story(
    story: Story,
    book_characters: Sequence[Character] | None = None,
) -> ValidationResult:
    """Validate one story; pass ``book_characters`` when checking it inside a book."""
    result = ValidationResult()
    if _is_blank(story.title):
        result.errors.append("Story title is required")
    if _is_blank(story.background_setup):
        result.errors.append("Story background setup is required")

    duplicate_characters = duplicate_names(character.name for character in story.characters)
    if duplicate_characters:
        result.errors.append(f"Duplicate character names: {', '.join(duplicate_characters)}")
    duplicate_elements = duplicate_names(element.name for element in story.elements)
    if duplicate_elements:
        result.errors.append(f"Duplicate element names: {', '.join(duplicate_elements)}")

    if book_characters:
        book_names = {name_key(character.name) for character in book_characters}
        for character in story.characters:
            if name_key(character.name) in book_names:
                result.warnings.append(
                    f'Character "{character.name}" is defined at both book and story level'
                )

    for index, scene in enumerate(story.scenes, start=1):
        result.absorb(
            validate_scene(scene, story, book_characters),
            prefix=f"Scene {index} ({scene.title})",
        )
    return result


def validate_book(book: Book) -> ValidationResult:
    result = ValidationResult()
    if _is_blank(book.title):
        result.errors.append("Book title is required")
    elif len(book.title) > MAX_BOOK_TITLE_LENGTH:
        result.errors.append(f"Book title must be {MAX_BOOK_TITLE_LENGTH} characters or less")
    if book.aspect_ratio and book.aspect_ratio not in VALID_ASPECT_RATIOS:
        result.errors.append(f"Aspect ratio must be one of: {', '.join(VALID_ASPECT_RATIOS)}")

    duplicate_characters = duplicate_names(character.name for character in book.characters)
    if duplicate_characters:
        result.errors.append(
            f"Duplicate book character names: {', '.join(duplicate_characters)}"
        )
    if not book.stories:
        result.warnings.append("Book has no stories")

    for index, story in enumerate(book.stories, start=1):
        result.absorb(
            validate_story(story, book.characters),
            prefix=f"Story {index} ({story.title})",
        )
    return result


def ensure_valid(result: ValidationResult, *, subject: str = "book") -> None:
    """Raise ``ValidationFailedError`` listing every error when ``result`` is invalid."""
    if not result.is_valid:
        raise ValidationFailedError(result.errors, subject=subject)
