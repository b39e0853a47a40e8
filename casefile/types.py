from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = 0
    title: str = ''
    url: str = ''
    type: str = 'file'


class Report(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str = ''
    content: str = ''
    excerpt: str | None = None
    featured_image: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    date: str | None = None


DEFAULT_COVER_DISCLAIMER = (
    'The contents of this report have been generated for release to the requested prosecuting authority. '
    'The release of these documents has been approved by the Commander or his/her designee. '
    'The copying or redistribution of these documents is strictly prohibited for non-official purposes. '
    'The reports in this document are in the order they were entered into the records system. '
    'This may result in the reports not being chronologically listed based on the date that events occurred. '
    'The Date field on each report represents the actual chronological order of events. '
    'BLANK PAGES NEVER CONTAINED CONTENT.'
)


class DocumentSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    paper_size: str = 'a4'
    orientation: str = 'portrait'
    margins: float = Field(default=20.0, ge=0)
    header_color: str = '#000000'
    footer_color: str = '#000000'
    include_cover_page: bool = True
    cover_image: str | None = None
    cover_title: str = 'MULTI-AGENCY NARCOTICS SQUAD'
    cover_subtitle: str = 'OFFICIAL CASE FILE'
    cover_disclaimer: str = DEFAULT_COVER_DISCLAIMER
    font: str = 'Times New Roman'
    font_size: float = Field(default=12.0, gt=0)
    header_text: str = 'MULTI-AGENCY NARCOTICS SQUAD'
    footer_text: str = 'DO NOT RELEASE WITHOUT COMMANDER APPROVAL'


class TOCEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    report_number: int
    post_title: str
    report_title: str | None = None
    page_number: int

    @property
    def display_title(self) -> str:
        return self.report_title or self.post_title


class DocumentArtifact(BaseModel):
    filename: str
    content: bytes
    page_count: int
    toc_entries: list[TOCEntry] = Field(default_factory=list)
    toc_page_number: int | None = None
