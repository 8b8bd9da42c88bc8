from __future__ import annotations

from datetime import timedelta

import pytest

from book_gen.domain.errors import DuplicateNameError, MigrationErrorCode, NotFoundInScopeError
from book_gen.domain.models import (
    MAX_GALLERY_SIZE,
    MAX_IMAGE_HISTORY,
    Book,
    BookStyle,
    Character,
    DiagramPanel,
    Element,
    ImageRecord,
    PanelConfig,
    Scene,
    Story,
)


def _story_with_hero() -> Story:
    story = Story(title="S1", background_setup="A quiet harbor town.")
    story.add_character(Character(name="Hero", description="Brave"))
    story.add_element(Element(name="Lighthouse", category="location"))
    story.add_scene(Scene(title="Arrival", description="Hero arrives.", characters=["Hero"]))
    story.add_scene(
        Scene(title="Night", description="Beam sweeps.", characters=["hero"], elements=["Lighthouse"])
    )
    return story


def test_character_lookup_is_case_insensitive() -> None:
    story = Story(title="S", background_setup="Setup")
    story.add_character(Character(name="Hero"))
    found = story.find_character("hero")
    assert found is not None
    assert found.name == "Hero"
    assert story.find_character("  HERO ") is not None


def test_adding_same_name_with_different_case_is_rejected() -> None:
    story = Story(title="S", background_setup="Setup")
    story.add_character(Character(name="Hero"))
    with pytest.raises(DuplicateNameError) as excinfo:
        story.add_character(Character(name="HERO"))
    assert excinfo.value.code is MigrationErrorCode.CONFLICT
    assert len(story.characters) == 1


def test_book_level_duplicate_names_mention_book_scope() -> None:
    book = Book(title="B")
    book.add_character(Character(name="Mentor"))
    with pytest.raises(DuplicateNameError, match="already exists at book level"):
        book.add_character(Character(name="mentor"))


def test_story_rename_propagates_to_scene_references() -> None:
    story = _story_with_hero()
    story.rename_character("HERO", "Heroine")
    assert story.find_character("heroine") is not None
    assert story.scenes[0].characters == ["Heroine"]
    assert story.scenes[1].characters == ["Heroine"]


def test_story_rename_to_existing_name_fails_and_keeps_references() -> None:
    story = _story_with_hero()
    story.add_character(Character(name="Villain"))
    with pytest.raises(DuplicateNameError):
        story.rename_character("Hero", "villain")
    assert story.scenes[0].characters == ["Hero"]


def test_rename_can_change_case_only() -> None:
    story = _story_with_hero()
    story.rename_character("Hero", "HERO")
    assert story.characters[0].name == "HERO"
    assert story.scenes[1].characters == ["HERO"]


def test_story_delete_character_cascades_to_scenes() -> None:
    story = _story_with_hero()
    assert story.delete_character("hero") is True
    assert story.characters == []
    assert all(not scene.characters for scene in story.scenes)
    assert story.delete_character("hero") is False


def test_element_rename_and_delete_cascade() -> None:
    story = _story_with_hero()
    story.rename_element("lighthouse", "Beacon")
    assert story.scenes[1].elements == ["Beacon"]
    story.delete_element("BEACON")
    assert story.scenes[1].elements == []


def test_rename_missing_character_raises_not_found_in_scope() -> None:
    story = Story(title="S", background_setup="Setup")
    with pytest.raises(NotFoundInScopeError):
        story.rename_character("Ghost", "Spirit")


def test_book_rename_skips_stories_that_shadow_the_name() -> None:
    book = Book(title="B")
    book.add_character(Character(name="Mentor"))
    sharing = Story(title="Sharing", background_setup="Setup")
    sharing.add_scene(Scene(title="Lesson", description="Teach", characters=["Mentor"]))
    shadowing = Story(title="Shadowing", background_setup="Setup")
    shadowing.add_character(Character(name="Mentor"))
    shadowing.add_scene(Scene(title="Own", description="Own mentor", characters=["Mentor"]))
    book.add_story(sharing)
    book.add_story(shadowing)

    book.rename_character("mentor", "Sage")

    assert book.characters[0].name == "Sage"
    assert sharing.scenes[0].characters == ["Sage"]
    assert shadowing.scenes[0].characters == ["Mentor"]


def test_book_rename_rejects_name_owned_by_a_referencing_story() -> None:
    book = Book(title="B")
    book.add_character(Character(name="Hero", description="book hero"))
    story = Story(title="S1", background_setup="Setup")
    story.add_character(Character(name="Villain", description="story villain"))
    story.add_scene(Scene(title="Duel", description="Fight", characters=["Hero", "Villain"]))
    book.add_story(story)

    with pytest.raises(DuplicateNameError) as excinfo:
        book.rename_character("Hero", "villain")

    assert excinfo.value.code is MigrationErrorCode.CONFLICT
    assert 'story "S1"' in str(excinfo.value)
    assert book.characters[0].name == "Hero"
    assert story.scenes[0].characters == ["Hero", "Villain"]
    resolved = book.resolve_character(story, "Hero")
    assert resolved is not None
    assert resolved.description == "book hero"


def test_book_rename_ignores_story_names_where_the_character_is_unused() -> None:
    book = Book(title="B")
    book.add_character(Character(name="Hero"))
    unrelated = Story(title="S1", background_setup="Setup")
    unrelated.add_character(Character(name="Villain"))
    unrelated.add_scene(Scene(title="Alone", description="Plot", characters=["Villain"]))
    book.add_story(unrelated)

    book.rename_character("Hero", "Villain")

    assert book.characters[0].name == "Villain"
    assert unrelated.scenes[0].characters == ["Villain"]


def test_scene_panels_can_be_cleared() -> None:
    scene = Scene(
        title="Proof",
        description="Math",
        text_panel="Words",
        diagram_panel=DiagramPanel(type="math", content="a^2 + b^2 = c^2"),
    )
    before = scene.updated_at - timedelta(seconds=1)
    scene.updated_at = before

    scene.update(text_panel=None)
    assert scene.text_panel == "Words"

    scene.clear_text_panel()
    scene.clear_diagram_panel()

    assert scene.text_panel is None
    assert scene.diagram_panel is None
    assert scene.updated_at > before


def test_book_delete_character_cascades_to_sharing_stories() -> None:
    book = Book(title="B")
    book.add_character(Character(name="Mentor"))
    story = Story(title="S", background_setup="Setup")
    story.add_scene(Scene(title="Lesson", description="Teach", characters=["Mentor", "Pupil"]))
    book.add_story(story)

    assert book.delete_character("MENTOR") is True
    assert book.characters == []
    assert story.scenes[0].characters == ["Pupil"]


def test_resolve_character_prefers_story_scope() -> None:
    book = Book(title="B")
    book.add_character(Character(name="Hero", description="book"))
    story = Story(title="S", background_setup="Setup")
    story.add_character(Character(name="hero", description="story"))
    book.add_story(story)
    other = Story(title="T", background_setup="Setup")
    book.add_story(other)

    resolved = book.resolve_character(story, "HERO")
    fallback = book.resolve_character(other, "hero")
    assert resolved is not None and resolved.description == "story"
    assert fallback is not None and fallback.description == "book"


def test_gallery_evicts_oldest_image_beyond_cap() -> None:
    character = Character(name="Hero")
    for index in range(MAX_GALLERY_SIZE):
        assert character.add_image(ImageRecord(id=f"img-{index}")) == []
    character.select_image("img-0")

    evicted = character.add_image(ImageRecord(id="img-new"))

    assert [record.id for record in evicted] == ["img-0"]
    assert len(character.image_gallery) == MAX_GALLERY_SIZE
    assert character.image_gallery[0].id == "img-1"
    assert character.image_gallery[-1].id == "img-new"
    assert character.selected_image_id is None


def test_image_history_evicts_oldest_beyond_cap() -> None:
    scene = Scene(title="T", description="D")
    for index in range(MAX_IMAGE_HISTORY + 2):
        scene.add_generated_image(ImageRecord(id=f"gen-{index}"))
    assert len(scene.image_history) == MAX_IMAGE_HISTORY
    assert scene.image_history[0].id == "gen-2"
    latest = scene.latest_image()
    assert latest is not None and latest.id == f"gen-{MAX_IMAGE_HISTORY + 1}"


def test_select_unknown_image_raises() -> None:
    character = Character(name="Hero", image_gallery=[ImageRecord(id="a")])
    with pytest.raises(NotFoundInScopeError):
        character.select_image("b")
    character.select_image("a")
    selected = character.selected_image()
    assert selected is not None and selected.id == "a"


def test_mutations_touch_updated_at() -> None:
    story = Story(title="S", background_setup="Setup")
    story.updated_at = story.updated_at - timedelta(days=1)
    before = story.updated_at
    story.update(title="S2")
    assert story.updated_at > before
    assert story.title == "S2"


def test_scene_reference_helpers_ignore_duplicates_and_case() -> None:
    scene = Scene(title="T", description="D", characters=["Hero"])
    scene.add_character("hero")
    assert scene.characters == ["Hero"]
    assert scene.remove_character("HERO") is True
    assert scene.remove_character("HERO") is False


def test_book_update_style_keeps_other_fields() -> None:
    book = Book(title="B", style=BookStyle(art_style="ink"))
    book.update_style(color_palette="muted")
    assert book.style.art_style == "ink"
    assert book.style.color_palette == "muted"
    assert book.style.panel_config == PanelConfig()


def test_pop_character_leaves_scene_references() -> None:
    story = _story_with_hero()
    popped = story.pop_character("hero")
    assert popped is not None and popped.name == "Hero"
    assert story.scenes[0].characters == ["Hero"]
