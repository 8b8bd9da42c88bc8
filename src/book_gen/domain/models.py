"""Core book hierarchy domain models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Literal
from uuid import uuid4

from book_gen.domain.errors import DuplicateNameError, NotFoundInScopeError

MAX_GALLERY_SIZE = 10
MAX_IMAGE_HISTORY = 20
MAX_BOOK_TITLE_LENGTH = 200
DEFAULT_ASPECT_RATIO = "9:16"
VALID_ASPECT_RATIOS: tuple[str, ...] = ("1:1", "2:3", "3:4", "9:16", "3:2", "4:3", "16:9")
UNKNOWN_MODEL = "unknown"

DiagramType = Literal["mermaid", "math", "code"]


def utc_now() -> datetime:
    """Return the current UTC timestamp."""
    return datetime.now(UTC)


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid4().hex


def name_key(name: str) -> str:
    """Normalize a character or element name for case-insensitive comparison."""
    return name.strip().casefold()


def names_match(left: str, right: str) -> bool:
    return name_key(left) == name_key(right)


class LayoutType(str, Enum):
    """Composition strategies for a generated image and its panels."""

    OVERLAY = "overlay"
    COMIC_SIDE_BY_SIDE = "comic-sidebyside"
    COMIC_VERTICAL = "comic-vertical"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PositionedRect:
    """Pixel rectangle of one layout element."""

    x: int
    y: int
    width: int
    height: int
    z_index: int = 0
    aspect_ratio: str | None = None


@dataclass(frozen=True)
class LayoutCanvas:
    """Total canvas size the layout elements are placed on."""

    width: int
    height: int
    aspect_ratio: str


@dataclass(frozen=True)
class LayoutElements:
    image: PositionedRect
    text_panel: PositionedRect | None = None
    diagram_panel: PositionedRect | None = None


@dataclass(frozen=True)
class SceneLayout:
    """Layout override usable at scene, story, or book level."""

    type: LayoutType
    canvas: LayoutCanvas
    elements: LayoutElements


@dataclass(frozen=True)
class DiagramStyle:
    board_style: Literal["blackboard", "whiteboard", "transparent"] | None = None
    border_style: Literal["none", "frame", "shadow"] | None = None
    background_color: str | None = None
    foreground_color: str | None = None
    border_color: str | None = None
    border_width: int | None = None
    padding: int | None = None
    font_size: int | None = None
    font_family: str | None = None


@dataclass(frozen=True)
class DiagramPanel:
    """Structured diagram content composed next to a scene image."""

    type: DiagramType
    content: str
    language: str | None = None
    style: DiagramStyle | None = None


@dataclass(frozen=True)
class PanelConfig:
    """Text-panel styling applied to every scene of a book."""

    font_family: str = "Arial"
    font_size: int = 24
    text_align: Literal["left", "center", "right"] = "center"
    position: str = "bottom-center"
    width_percentage: int = 100
    height_percentage: int = 15
    background_color: str = "rgba(0, 0, 0, 0.7)"
    font_color: str = "#ffffff"
    border_color: str = "#000000"
    border_width: int = 2
    border_radius: int = 8
    padding: int = 20


@dataclass(frozen=True)
class BookStyle:
    """Visual style guidelines shared by every story in a book."""

    color_palette: str | None = None
    visual_theme: str | None = None
    character_style: str | None = None
    environment_style: str | None = None
    art_style: str | None = None
    panel_config: PanelConfig | None = field(default_factory=PanelConfig)


@dataclass(frozen=True)
class ImageRecord:
    """Metadata for one generated image; the bitmap lives in the asset store."""

    id: str
    model_name: str = UNKNOWN_MODEL
    timestamp: datetime = field(default_factory=utc_now)
    prompt_hash: str | None = None


@dataclass
class Character:
    """A named character owned by exactly one book or story."""

    name: str
    description: str = ""
    image_gallery: list[ImageRecord] = field(default_factory=list)
    selected_image_id: str | None = None
    reference_image_id: str | None = None

    def gallery_ids(self) -> list[str]:
        return [record.id for record in self.image_gallery]

    def add_image(self, record: ImageRecord) -> list[ImageRecord]:
        """Append a gallery image and return the records evicted to honor the cap."""
        evicted: list[ImageRecord] = []
        while len(self.image_gallery) >= MAX_GALLERY_SIZE:
            evicted.append(self.image_gallery.pop(0))
        if self.selected_image_id in {record.id for record in evicted}:
            self.selected_image_id = None
        self.image_gallery.append(record)
        return evicted

    def remove_image(self, image_id: str) -> bool:
        before = len(self.image_gallery)
        self.image_gallery = [record for record in self.image_gallery if record.id != image_id]
        if self.selected_image_id == image_id:
            self.selected_image_id = None
        return len(self.image_gallery) < before

    def select_image(self, image_id: str | None) -> None:
        if image_id is not None and image_id not in self.gallery_ids():
            raise NotFoundInScopeError("Image", image_id)
        self.selected_image_id = image_id

    def selected_image(self) -> ImageRecord | None:
        if self.selected_image_id is None:
            return None
        for record in self.image_gallery:
            if record.id == self.selected_image_id:
                return record
        return None


@dataclass
class Element:
    """A named story element such as a prop or location."""

    name: str
    description: str = ""
    category: str | None = None


def _find_named(items: list[Character] | list[Element], name: str) -> Character | Element | None:
    key = name_key(name)
    for item in items:
        if name_key(item.name) == key:
            return item
    return None


@dataclass
class Scene:
    """A leaf unit referencing characters and elements by name."""

    title: str
    description: str
    id: str = field(default_factory=new_id)
    text_panel: str | None = None
    diagram_panel: DiagramPanel | None = None
    layout: SceneLayout | None = None
    characters: list[str] = field(default_factory=list)
    elements: list[str] = field(default_factory=list)
    image_history: list[ImageRecord] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def touch(self) -> None:
        self.updated_at = utc_now()

    def update(
        self,
        *,
        title: str | None = None,
        description: str | None = None,
        text_panel: str | None = None,
        diagram_panel: DiagramPanel | None = None,
    ) -> None:
        if title is not None:
            self.title = title
        if description is not None:
            self.description = description
        if text_panel is not None:
            self.text_panel = text_panel
        if diagram_panel is not None:
            self.diagram_panel = diagram_panel
        self.touch()

    def clear_text_panel(self) -> None:
        self.text_panel = None
        self.touch()

    def clear_diagram_panel(self) -> None:
        self.diagram_panel = None
        self.touch()

    def references_character(self, name: str) -> bool:
        return any(names_match(existing, name) for existing in self.characters)

    def references_element(self, name: str) -> bool:
        return any(names_match(existing, name) for existing in self.elements)

    def add_character(self, name: str) -> None:
        if not self.references_character(name):
            self.characters.append(name)
            self.touch()

    def remove_character(self, name: str) -> bool:
        before = len(self.characters)
        self.characters = [existing for existing in self.characters if not names_match(existing, name)]
        removed = len(self.characters) < before
        if removed:
            self.touch()
        return removed

    def add_element(self, name: str) -> None:
        if not self.references_element(name):
            self.elements.append(name)
            self.touch()

    def remove_element(self, name: str) -> bool:
        before = len(self.elements)
        self.elements = [existing for existing in self.elements if not names_match(existing, name)]
        removed = len(self.elements) < before
        if removed:
            self.touch()
        return removed

    def rename_character_reference(self, old_name: str, new_name: str) -> bool:
        if not self.references_character(old_name):
            return False
        self.characters = [
            new_name if names_match(existing, old_name) else existing for existing in self.characters
        ]
        self.touch()
        return True

    def rename_element_reference(self, old_name: str, new_name: str) -> bool:
        if not self.references_element(old_name):
            return False
        self.elements = [
            new_name if names_match(existing, old_name) else existing for existing in self.elements
        ]
        self.touch()
        return True

    def add_generated_image(self, record: ImageRecord) -> list[ImageRecord]:
        """Append to the image history and return the records evicted to honor the cap."""
        evicted: list[ImageRecord] = []
        while len(self.image_history) >= MAX_IMAGE_HISTORY:
            evicted.append(self.image_history.pop(0))
        self.image_history.append(record)
        self.touch()
        return evicted

    def latest_image(self) -> ImageRecord | None:
        return self.image_history[-1] if self.image_history else None

    def delete_image(self, image_id: str) -> bool:
        before = len(self.image_history)
        self.image_history = [record for record in self.image_history if record.id != image_id]
        deleted = len(self.image_history) < before
        if deleted:
            self.touch()
        return deleted

    def set_layout(self, layout: SceneLayout) -> None:
        self.layout = layout
        self.touch()

    def clear_layout(self) -> None:
        self.layout = None
        self.touch()


@dataclass
class Story:
    """Mid-level container owning scenes and story-level characters/elements."""

    title: str
    background_setup: str
    description: str | None = None
    id: str = field(default_factory=new_id)
    characters: list[Character] = field(default_factory=list)
    elements: list[Element] = field(default_factory=list)
    scenes: list[Scene] = field(default_factory=list)
    layout: SceneLayout | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def touch(self) -> None:
        self.updated_at = utc_now()

    def update(
        self,
        *,
        title: str | None = None,
        background_setup: str | None = None,
        description: str | None = None,
    ) -> None:
        if title is not None:
            self.title = title
        if background_setup is not None:
            self.background_setup = background_setup
        if description is not None:
            self.description = description
        self.touch()

    def find_character(self, name: str) -> Character | None:
        found = _find_named(self.characters, name)
        return found if isinstance(found, Character) else None

    def add_character(self, character: Character) -> None:
        if self.find_character(character.name) is not None:
            raise DuplicateNameError("Character", character.name)
        self.characters.append(character)
        self.touch()

    def rename_character(self, old_name: str, new_name: str) -> None:
        character = self.find_character(old_name)
        if character is None:
            raise NotFoundInScopeError("Character", old_name)
        if not names_match(old_name, new_name) and self.find_character(new_name) is not None:
            raise DuplicateNameError("Character", new_name)
        character.name = new_name
        for scene in self.scenes:
            scene.rename_character_reference(old_name, new_name)
        self.touch()

    def delete_character(self, name: str) -> bool:
        """Remove a character and every scene reference to it."""
        before = len(self.characters)
        self.characters = [c for c in self.characters if not names_match(c.name, name)]
        deleted = len(self.characters) < before
        if deleted:
            for scene in self.scenes:
                scene.remove_character(name)
            self.touch()
        return deleted

    def pop_character(self, name: str) -> Character | None:
        """Detach a character without touching scene references."""
        character = self.find_character(name)
        if character is None:
            return None
        self.characters.remove(character)
        self.touch()
        return character

    def find_element(self, name: str) -> Element | None:
        found = _find_named(self.elements, name)
        return found if isinstance(found, Element) else None

    def add_element(self, element: Element) -> None:
        if self.find_element(element.name) is not None:
            raise DuplicateNameError("Element", element.name)
        self.elements.append(element)
        self.touch()

    def rename_element(self, old_name: str, new_name: str) -> None:
        element = self.find_element(old_name)
        if element is None:
            raise NotFoundInScopeError("Element", old_name)
        if not names_match(old_name, new_name) and self.find_element(new_name) is not None:
            raise DuplicateNameError("Element", new_name)
        element.name = new_name
        for scene in self.scenes:
            scene.rename_element_reference(old_name, new_name)
        self.touch()

    def delete_element(self, name: str) -> bool:
        before = len(self.elements)
        self.elements = [e for e in self.elements if not names_match(e.name, name)]
        deleted = len(self.elements) < before
        if deleted:
            for scene in self.scenes:
                scene.remove_element(name)
            self.touch()
        return deleted

    def add_scene(self, scene: Scene) -> None:
        self.scenes.append(scene)
        self.touch()

    def get_scene(self, scene_id: str) -> Scene | None:
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        return None

    def delete_scene(self, scene_id: str) -> bool:
        before = len(self.scenes)
        self.scenes = [scene for scene in self.scenes if scene.id != scene_id]
        deleted = len(self.scenes) < before
        if deleted:
            self.touch()
        return deleted

    def scenes_using_character(self, name: str) -> list[Scene]:
        return [scene for scene in self.scenes if scene.references_character(name)]

    def set_layout(self, layout: SceneLayout) -> None:
        self.layout = layout
        self.touch()

    def clear_layout(self) -> None:
        self.layout = None
        self.touch()


@dataclass
class Book:
    """Top-level container owning style, default layout, shared cast, and stories."""

    title: str
    description: str | None = None
    background_setup: str | None = None
    id: str = field(default_factory=new_id)
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    style: BookStyle = field(default_factory=BookStyle)
    default_layout: SceneLayout | None = None
    characters: list[Character] = field(default_factory=list)
    stories: list[Story] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def touch(self) -> None:
        self.updated_at = utc_now()

    def update(
        self,
        *,
        title: str | None = None,
        description: str | None = None,
        background_setup: str | None = None,
        aspect_ratio: str | None = None,
    ) -> None:
        if title is not None:
            self.title = title
        if description is not None:
            self.description = description
        if background_setup is not None:
            self.background_setup = background_setup
        if aspect_ratio is not None:
            self.aspect_ratio = aspect_ratio
        self.touch()

    def update_style(self, **changes: object) -> None:
        self.style = replace(self.style, **changes)  # type: ignore[arg-type]
        self.touch()

    def set_default_layout(self, layout: SceneLayout) -> None:
        self.default_layout = layout
        self.touch()

    def clear_default_layout(self) -> None:
        self.default_layout = None
        self.touch()

    def find_character(self, name: str) -> Character | None:
        found = _find_named(self.characters, name)
        return found if isinstance(found, Character) else None

    def add_character(self, character: Character) -> None:
        if self.find_character(character.name) is not None:
            raise DuplicateNameError("Character", character.name, scope="book")
        self.characters.append(character)
        self.touch()

    def _stories_sharing(self, name: str) -> list[Story]:
        """Stories whose scenes resolve ``name`` to the book-level character."""
        return [story for story in self.stories if story.find_character(name) is None]

    def rename_character(self, old_name: str, new_name: str) -> None:
        character = self.find_character(old_name)
        if character is None:
            raise NotFoundInScopeError("Character", old_name)
        sharing = self._stories_sharing(old_name)
        if not names_match(old_name, new_name):
            if self.find_character(new_name) is not None:
                raise DuplicateNameError("Character", new_name, scope="book")
            # A referencing story with its own ``new_name`` would capture the renamed references.
            for story in sharing:
                if story.scenes_using_character(old_name) and story.find_character(new_name):
                    raise DuplicateNameError("Character", new_name, scope=f'story "{story.title}"')
        for story in sharing:
            renamed = [scene.rename_character_reference(old_name, new_name) for scene in story.scenes]
            if any(renamed):
                story.touch()
        character.name = new_name
        self.touch()

    def delete_character(self, name: str) -> bool:
        """Remove a book-level character and its references in sharing stories."""
        if self.find_character(name) is None:
            return False
        for story in self._stories_sharing(name):
            removed = [scene.remove_character(name) for scene in story.scenes]
            if any(removed):
                story.touch()
        self.characters = [c for c in self.characters if not names_match(c.name, name)]
        self.touch()
        return True

    def pop_character(self, name: str) -> Character | None:
        """Detach a book-level character without touching scene references."""
        character = self.find_character(name)
        if character is None:
            return None
        self.characters.remove(character)
        self.touch()
        return character

    def resolve_character(self, story: Story, name: str) -> Character | None:
        """Resolve a scene reference: story-level first, then book-level."""
        return story.find_character(name) or self.find_character(name)

    def add_story(self, story: Story) -> None:
        self.stories.append(story)
        self.touch()

    def get_story(self, story_id: str) -> Story | None:
        for story in self.stories:
            if story.id == story_id:
                return story
        return None

    def remove_story(self, story_id: str) -> bool:
        before = len(self.stories)
        self.stories = [story for story in self.stories if story.id != story_id]
        removed = len(self.stories) < before
        if removed:
            self.touch()
        return removed
