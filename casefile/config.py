from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import DEFAULT_COVER_DISCLAIMER, DocumentSettings


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    app_name: str = 'Case File Composer'

    output_dir: Path = Field(default=Path('./output'))
    log_level: str = 'INFO'

    # Attachment link resolution
    default_site_origin: str = 'https://cmansrms.us'
    # Comma-separated, first entry wins for bare filenames.
    upload_dir_candidates: str = (
        '/wp-content/uploads/formidable/,'
        '/wp-content/uploads/,'
        '/uploads/,'
        '/files/,'
        '/attachments/,'
        '/'
    )

    # PDF defaults
    pdf_paper_size: str = 'a4'
    pdf_orientation: str = 'portrait'
    pdf_margins: float = 20.0
    pdf_header_color: str = '#000000'
    pdf_footer_color: str = '#000000'
    pdf_include_cover_page: bool = True
    pdf_cover_image: str | None = None
    pdf_cover_title: str = 'MULTI-AGENCY NARCOTICS SQUAD'
    pdf_cover_subtitle: str = 'OFFICIAL CASE FILE'
    pdf_cover_disclaimer: str = DEFAULT_COVER_DISCLAIMER
    pdf_font_name: str = 'Times New Roman'
    pdf_font_size: float = 12.0
    pdf_header_text: str = 'MULTI-AGENCY NARCOTICS SQUAD'
    pdf_footer_text: str = 'DO NOT RELEASE WITHOUT COMMANDER APPROVAL'

    def upload_dirs(self) -> list[str]:
        dirs: list[str] = []
        for item in self.upload_dir_candidates.split(','):
            normalized = item.strip()
            if not normalized:
                continue
            if not normalized.endswith('/'):
                normalized += '/'
            if not normalized.startswith('/'):
                normalized = '/' + normalized
            dirs.append(normalized)
        return dirs or ['/']

    def default_document_settings(self) -> DocumentSettings:
        return DocumentSettings(
            paper_size=self.pdf_paper_size,
            orientation=self.pdf_orientation,
            margins=self.pdf_margins,
            header_color=self.pdf_header_color,
            footer_color=self.pdf_footer_color,
            include_cover_page=self.pdf_include_cover_page,
            cover_image=self.pdf_cover_image,
            cover_title=self.pdf_cover_title,
            cover_subtitle=self.pdf_cover_subtitle,
            cover_disclaimer=self.pdf_cover_disclaimer,
            font=self.pdf_font_name,
            font_size=self.pdf_font_size,
            header_text=self.pdf_header_text,
            footer_text=self.pdf_footer_text,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
