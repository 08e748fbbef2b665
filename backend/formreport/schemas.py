from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BeforeValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _parse_color(value: Any) -> Any:
    if isinstance(value, str):
        raw = value.strip().lstrip("#")
        if len(raw) == 3:
            raw = "".join(ch * 2 for ch in raw)
        if len(raw) == 6:
            try:
                return tuple(int(raw[i : i + 2], 16) for i in (0, 2, 4))
            except ValueError:
                return value
    return value


Color = Annotated[tuple[int, int, int], BeforeValidator(_parse_color)]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class HeaderStyling(_Model):
    background_color: Color = (0, 0, 0)
    text_color: Color = (255, 255, 255)
    font_size: float = 12
    show_main_title: bool = False
    show_header_title: bool = False
    height: float = 20


class FooterStyling(_Model):
    text_color: Color = (0, 0, 0)
    font_size: float = 6
    left_text: str = ""
    center_text: str = ""
    right_text: str = ""


class Margins(_Model):
    left: float = 15
    # x coordinate of the right content edge; None means page width - 15.
    right: float | None = None


class SectionStyling(_Model):
    header_font_size: float = 10
    content_font_size: float = 8
    line_spacing: float = 1.4
    margins: Margins = Field(default_factory=Margins)


class TableStyling(_Model):
    header_background: Color = (0, 0, 0)
    header_text_color: Color = (255, 255, 255)
    header_font_size: float = 8
    content_font_size: float = 7
    cell_padding: float = 3


FitMode = Literal["contain", "cover", "stretch"]


class ImageStyling(_Model):
    dpi: float = 180
    format: Literal["JPEG", "PNG"] = "JPEG"
    quality: float = Field(default=0.92, gt=0, le=1)
    background_color: Color = (255, 255, 255)
    fit: FitMode = "cover"
    align: Literal["left", "center", "right"] = "center"
    width_percent: float | None = None
    height_px: float | None = None

    @field_validator("format", mode="before")
    @classmethod
    def _upper_format(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().upper()
            return "JPEG" if value == "JPG" else value
        return value


class PageStyling(_Model):
    format: Literal["a4", "letter", "legal"] = "a4"
    orientation: Literal["portrait", "landscape"] = "portrait"

    @field_validator("format", "orientation", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class PdfStyling(_Model):
    header: HeaderStyling = Field(default_factory=HeaderStyling)
    footer: FooterStyling = Field(default_factory=FooterStyling)
    sections: SectionStyling = Field(default_factory=SectionStyling)
    tables: TableStyling = Field(default_factory=TableStyling)
    images: ImageStyling = Field(default_factory=ImageStyling)
    page: PageStyling = Field(default_factory=PageStyling)


class ReportHeader(_Model):
    title: str | None = None
    subtitle: str | None = None
    company_name: str | None = None
    company_address: str | None = None


class TableColumn(_Model):
    header: str = ""
    key: str = ""

    @field_validator("header", "key", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return "" if value is None else str(value)


class GridItem(_Model):
    label: str = ""
    value: Any = None
    type: str | None = None

    @field_validator("label", mode="before")
    @classmethod
    def _label_text(cls, value: Any) -> Any:
        return "" if value is None else str(value)


class FormGridCell(GridItem):
    span: float | None = None


class TextContent(_Model):
    type: Literal["text"] = "text"
    template: str = ""


class RawTextContent(_Model):
    type: Literal["rawtext"] = "rawtext"
    template: str = ""


class TableContent(_Model):
    type: Literal["table"] = "table"
    columns: list[TableColumn] = Field(default_factory=list)
    data: list[Any] | None = None
    data_path: str | None = None


class _GridKnobs(_Model):
    label_value_spacing: float = 2
    label_font_size: float | None = None
    value_font_size: float | None = None
    gap: float = 4
    cell_padding: float = 2


class LabelTopGridContent(_GridKnobs):
    type: Literal["labelTopGrid"] = "labelTopGrid"
    items: list[GridItem] = Field(default_factory=list)
    columns_count: int = 4

    @field_validator("columns_count", mode="before")
    @classmethod
    def _clamp_columns(cls, value: Any) -> Any:
        try:
            count = int(float(value or 4))
        except (TypeError, ValueError):
            return 4
        return max(1, count)


class FormGridContent(_GridKnobs):
    type: Literal["formGrid"] = "formGrid"
    rows: list[list[FormGridCell]] = Field(default_factory=list)


class ImageContent(_Model):
    type: Literal["image"] = "image"
    data: list[Any] | None = None
    data_path: str | None = None
    fit: FitMode | None = None
    format: Literal["JPEG", "PNG"] | None = None
    quality: float | None = Field(default=None, gt=0, le=1)


class UnknownContent(_Model):
    type: Literal["unknown"] = "unknown"
    declared_type: str = ""


Content = Annotated[
    Union[
        TextContent,
        RawTextContent,
        TableContent,
        LabelTopGridContent,
        FormGridContent,
        ImageContent,
        UnknownContent,
    ],
    Field(discriminator="type"),
]

KNOWN_CONTENT_TYPES = frozenset({"text", "rawtext", "table", "labelTopGrid", "formGrid", "image"})


class Section(_Model):
    id: str = ""
    title: str = ""
    include_in_pdf: bool = False
    order: float = 0
    hide_header: bool = False
    content: Content = Field(default_factory=UnknownContent)

    @field_validator("content", mode="before")
    @classmethod
    def _tag_unknown_content(cls, value: Any) -> Any:
        if isinstance(value, BaseModel):
            return value
        if not isinstance(value, dict):
            return {"type": "unknown", "declared_type": ""}
        declared = value.get("type")
        if declared in KNOWN_CONTENT_TYPES:
            return value
        return {"type": "unknown", "declared_type": str(declared or "")}

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @field_validator("title", mode="before")
    @classmethod
    def _title_text(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @field_validator("order", mode="before")
    @classmethod
    def _order_number(cls, value: Any) -> Any:
        try:
            return float(value or 0)
        except (TypeError, ValueError):
            return 0

    @field_validator("hide_header", mode="before")
    @classmethod
    def _hide_header_flag(cls, value: Any) -> Any:
        return False if value is None else value

    # Only a literal true puts a section in the PDF.
    @field_validator("include_in_pdf", mode="before")
    @classmethod
    def _include_flag(cls, value: Any) -> Any:
        return value is True


class ReportMetadata(_Model):
    header: ReportHeader = Field(default_factory=ReportHeader)
    pdf_styling: PdfStyling = Field(default_factory=PdfStyling)
    sections: list[Section] = Field(default_factory=list)


class GenerateReportRequest(_Model):
    metadata: ReportMetadata
    gadget_data: dict[str, Any] = Field(default_factory=dict)


class StoredReportResponse(_Model):
    report_id: str
    url: str
    pages: int


class SanitizeRequest(_Model):
    markdown: str = ""


class SanitizedTable(_Model):
    columns: list[TableColumn]
    data: list[dict[str, str]]


class SanitizeResponse(_Model):
    text: str
    tables: list[SanitizedTable]
