"""Pydantic schemas for value objects shared by the storage and exchange codecs."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, model_validator
from pydantic.alias_generators import to_camel

from book_gen.domain.models import (
    UNKNOWN_MODEL,
    BookStyle,
    Character,
    DiagramPanel,
    DiagramStyle,
    DiagramType,
    Element,
    ImageRecord,
    LayoutCanvas,
    LayoutElements,
    LayoutType,
    PanelConfig,
    PositionedRect,
    SceneLayout,
)


IGNORE_UNKNOWN_KEYS = "ignore_unknown_keys"


class SchemaModel(BaseModel):
    """Strict camelCase model configuration for persisted payloads."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_unknown_keys(cls, data: Any, info: ValidationInfo) -> Any:
        """Strip keys no field declares when validating with ``IGNORE_UNKNOWN_KEYS`` context."""
        if not isinstance(data, dict) or not (info.context or {}).get(IGNORE_UNKNOWN_KEYS):
            return data
        known: set[str] = set()
        for name, field in cls.model_fields.items():
            known.update((name, to_camel(name), field.alias or name))
        return {key: value for key, value in data.items() if key in known}


class PositionedRectSchema(SchemaModel):
    x: int
    y: int
    width: int = Field(ge=0)
    height: int = Field(ge=0)
    z_index: int = 0
    aspect_ratio: str | None = None

    @classmethod
    def from_domain(cls, rect: PositionedRect) -> PositionedRectSchema:
        return cls(
            x=rect.x,
            y=rect.y,
            width=rect.width,
            height=rect.height,
            z_index=rect.z_index,
            aspect_ratio=rect.aspect_ratio,
        )

    def to_domain(self) -> PositionedRect:
        return PositionedRect(
            x=self.x,
            y=self.y,
            width=self.width,
            height=self.height,
            z_index=self.z_index,
            aspect_ratio=self.aspect_ratio,
        )


class LayoutCanvasSchema(SchemaModel):
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    aspect_ratio: str = Field(min_length=3)


class LayoutElementsSchema(SchemaModel):
    image: PositionedRectSchema
    text_panel: PositionedRectSchema | None = None
    diagram_panel: PositionedRectSchema | None = None


class SceneLayoutSchema(SchemaModel):
    """Layout override at any tier."""

    type: LayoutType
    canvas: LayoutCanvasSchema
    elements: LayoutElementsSchema

    @classmethod
    def from_domain(cls, layout: SceneLayout) -> SceneLayoutSchema:
        elements = layout.elements
        return cls(
            type=layout.type,
            canvas=LayoutCanvasSchema(
                width=layout.canvas.width,
                height=layout.canvas.height,
                aspect_ratio=layout.canvas.aspect_ratio,
            ),
            elements=LayoutElementsSchema(
                image=PositionedRectSchema.from_domain(elements.image),
                text_panel=(
                    PositionedRectSchema.from_domain(elements.text_panel)
                    if elements.text_panel is not None
                    else None
                ),
                diagram_panel=(
                    PositionedRectSchema.from_domain(elements.diagram_panel)
                    if elements.diagram_panel is not None
                    else None
                ),
            ),
        )

    def to_domain(self) -> SceneLayout:
        elements = self.elements
        return SceneLayout(
            type=LayoutType(self.type),
            canvas=LayoutCanvas(
                width=self.canvas.width,
                height=self.canvas.height,
                aspect_ratio=self.canvas.aspect_ratio,
            ),
            elements=LayoutElements(
                image=elements.image.to_domain(),
                text_panel=elements.text_panel.to_domain() if elements.text_panel else None,
                diagram_panel=(
                    elements.diagram_panel.to_domain() if elements.diagram_panel else None
                ),
            ),
        )


class DiagramStyleSchema(SchemaModel):
    board_style: Literal["blackboard", "whiteboard", "transparent"] | None = None
    border_style: Literal["none", "frame", "shadow"] | None = None
    background_color: str | None = None
    foreground_color: str | None = None
    border_color: str | None = None
    border_width: int | None = None
    padding: int | None = None
    font_size: int | None = None
    font_family: str | None = None


class DiagramPanelSchema(SchemaModel):
    type: DiagramType
    content: str
    language: str | None = None
    style: DiagramStyleSchema | None = None

    @classmethod
    def from_domain(cls, panel: DiagramPanel) -> DiagramPanelSchema:
        style = panel.style
        return cls(
            type=panel.type,
            content=panel.content,
            language=panel.language,
            style=(
                DiagramStyleSchema(
                    board_style=style.board_style,
                    border_style=style.border_style,
                    background_color=style.background_color,
                    foreground_color=style.foreground_color,
                    border_color=style.border_color,
                    border_width=style.border_width,
                    padding=style.padding,
                    font_size=style.font_size,
                    font_family=style.font_family,
                )
                if style is not None
                else None
            ),
        )

    def to_domain(self) -> DiagramPanel:
        style = self.style
        return DiagramPanel(
            type=self.type,
            content=self.content,
            language=self.language,
            style=DiagramStyle(**style.model_dump()) if style is not None else None,
        )


class PanelConfigSchema(SchemaModel):
    font_family: str
    font_size: int = Field(gt=0)
    text_align: Literal["left", "center", "right"]
    position: str
    width_percentage: int = Field(ge=0, le=100)
    height_percentage: int = Field(ge=0, le=100)
    background_color: str
    font_color: str
    border_color: str
    border_width: int = Field(ge=0)
    border_radius: int = Field(ge=0)
    padding: int = Field(ge=0)


class BookStyleSchema(SchemaModel):
    color_palette: str | None = None
    visual_theme: str | None = None
    character_style: str | None = None
    environment_style: str | None = None
    art_style: str | None = None
    panel_config: PanelConfigSchema | None = None

    @classmethod
    def from_domain(cls, style: BookStyle) -> BookStyleSchema:
        panel = style.panel_config
        return cls(
            color_palette=style.color_palette,
            visual_theme=style.visual_theme,
            character_style=style.character_style,
            environment_style=style.environment_style,
            art_style=style.art_style,
            panel_config=(
                PanelConfigSchema(
                    font_family=panel.font_family,
                    font_size=panel.font_size,
                    text_align=panel.text_align,
                    position=panel.position,
                    width_percentage=panel.width_percentage,
                    height_percentage=panel.height_percentage,
                    background_color=panel.background_color,
                    font_color=panel.font_color,
                    border_color=panel.border_color,
                    border_width=panel.border_width,
                    border_radius=panel.border_radius,
                    padding=panel.padding,
                )
                if panel is not None
                else None
            ),
        )

    def to_domain(self) -> BookStyle:
        panel = self.panel_config
        return BookStyle(
            color_palette=self.color_palette,
            visual_theme=self.visual_theme,
            character_style=self.character_style,
            environment_style=self.environment_style,
            art_style=self.art_style,
            panel_config=PanelConfig(**panel.model_dump()) if panel is not None else None,
        )


class ImageRecordSchema(SchemaModel):
    """Image metadata; the bytes live in the asset store under ``id``."""

    id: str = Field(min_length=1)
    model_name: str = UNKNOWN_MODEL
    timestamp: datetime
    prompt_hash: str | None = None

    @classmethod
    def from_domain(cls, record: ImageRecord) -> ImageRecordSchema:
        return cls(
            id=record.id,
            model_name=record.model_name,
            timestamp=record.timestamp,
            prompt_hash=record.prompt_hash,
        )

    def to_domain(self) -> ImageRecord:
        return ImageRecord(
            id=self.id,
            model_name=self.model_name,
            timestamp=self.timestamp,
            prompt_hash=self.prompt_hash,
        )


class CharacterSchema(SchemaModel):
    name: str = Field(min_length=1)
    description: str = ""
    image_gallery: list[ImageRecordSchema] = Field(default_factory=list)
    selected_image_id: str | None = None
    reference_image_id: str | None = None

    @classmethod
    def from_domain(cls, character: Character) -> CharacterSchema:
        return cls(
            name=character.name,
            description=character.description,
            image_gallery=[ImageRecordSchema.from_domain(r) for r in character.image_gallery],
            selected_image_id=character.selected_image_id,
            reference_image_id=character.reference_image_id,
        )

    def to_domain(self) -> Character:
        return Character(
            name=self.name,
            description=self.description,
            image_gallery=[record.to_domain() for record in self.image_gallery],
            selected_image_id=self.selected_image_id,
            reference_image_id=self.reference_image_id,
        )


class ElementSchema(SchemaModel):
    name: str = Field(min_length=1)
    description: str = ""
    category: str | None = None

    @classmethod
    def from_domain(cls, element: Element) -> ElementSchema:
        return cls(name=element.name, description=element.description, category=element.category)

    def to_domain(self) -> Element:
        return Element(name=self.name, description=self.description, category=self.category)


def optional_layout(layout: SceneLayout | None) -> SceneLayoutSchema | None:
    return SceneLayoutSchema.from_domain(layout) if layout is not None else None


def optional_layout_domain(schema: SceneLayoutSchema | None) -> SceneLayout | None:
    return schema.to_domain() if schema is not None else None
