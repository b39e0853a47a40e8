from __future__ import annotations

import io
from datetime import datetime

import pytest
from pypdf import PdfReader

from casefile.config import Settings
from casefile.types import Attachment, DocumentSettings, Report


@pytest.fixture
def runtime(tmp_path):
    return Settings(_env_file=None, output_dir=tmp_path / 'output')


@pytest.fixture
def document_settings():
    return DocumentSettings()


@pytest.fixture
def generated_at():
    return datetime(2024, 3, 5, 9, 30)


@pytest.fixture
def short_report():
    return Report(
        id=101,
        title='Controlled buy on Main St',
        content=(
            'Date of Report\n'
            'March 1, 2024\n'
            'Report Title\n'
            'Controlled purchase of narcotics\n'
            'Narrative:\n'
            'Agents met with the informant at the staging location.\n'
        ),
    )


@pytest.fixture
def report_with_duplicate_attachments():
    return Report(
        id=202,
        title='Search warrant execution',
        content='Narrative:\nWarrant served without incident.',
        attachments=[
            Attachment(id=1, title='photo-150x150.jpg', url='https://example.org/uploads/photo-150x150.jpg', type='image'),
            Attachment(id=2, title='photo.jpg', url='https://example.org/uploads/photo.jpg', type='image'),
        ],
    )


def make_reports(count: int, *, lines: int = 3) -> list[Report]:
    reports = []
    for number in range(1, count + 1):
        body = '\n'.join(f'Line {line} of report {number}.' for line in range(1, lines + 1))
        reports.append(
            Report(
                id=number,
                title=f'Post {number}',
                content=f'Report Title: Item {number}\nNarrative:\n{body}',
            )
        )
    return reports


def read_pdf(content: bytes) -> PdfReader:
    return PdfReader(io.BytesIO(content))
