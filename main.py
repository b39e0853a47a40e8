from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from casefile.config import get_settings
from casefile.errors import CasefileError
from casefile.report.attachments import resolve_attachments, strip_attachment_sections
from casefile.report.classifier import extract_report_title, iter_content_blocks
from casefile.report.composer import compose_document
from casefile.storage import output_root, read_json, write_bytes_atomic, write_json_atomic
from casefile.types import DocumentArtifact, DocumentSettings, Report


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _print_progress(percent: int, phase: str) -> None:
    logging.getLogger('casefile.cli').info('%3d%% %s', percent, phase)


def _load_input(path_arg: str) -> dict[str, Any]:
    path = Path(path_arg).expanduser().resolve()
    if not path.exists() or not path.is_file():
        raise FileNotFoundError(f'Input not found: {path}')
    return read_json(path)


def _parse_reports(payload: dict[str, Any]) -> list[Report]:
    return [Report.model_validate(item) for item in payload.get('reports') or []]


def _parse_document_settings(payload: dict[str, Any], *, no_cover: bool) -> DocumentSettings:
    base = get_settings().default_document_settings().model_dump()
    overrides = payload.get('settings') or {}
    if not isinstance(overrides, dict):
        raise ValueError('settings must be a JSON object')
    base.update(overrides)
    if no_cover:
        base['include_cover_page'] = False
    return DocumentSettings.model_validate(base)


def _artifact_summary(artifact: DocumentArtifact, pdf_path: Path) -> dict:
    return {
        'status': 'ok',
        'filename': artifact.filename,
        'pdf_path': str(pdf_path),
        'page_count': artifact.page_count,
        'toc_page_number': artifact.toc_page_number,
        'toc_entries': [
            {
                'report_number': entry.report_number,
                'title': entry.display_title,
                'page_number': entry.page_number,
            }
            for entry in artifact.toc_entries
        ],
    }


def cmd_generate(args: argparse.Namespace) -> int:
    try:
        payload = _load_input(args.input)
        reports = _parse_reports(payload)
        document_settings = _parse_document_settings(payload, no_cover=args.no_cover)
    except (FileNotFoundError, ValueError, ValidationError) as exc:
        _print_json({'status': 'error', 'message': str(exc)})
        return 2

    category = args.category if args.category is not None else str(payload.get('category_name') or '')
    site_url = args.site_url if args.site_url is not None else payload.get('site_url')

    try:
        artifact = compose_document(
            reports,
            document_settings,
            category_name=category,
            site_url=site_url,
            progress=_print_progress,
        )
    except CasefileError as exc:
        _print_json({'status': 'error', 'error': type(exc).__name__, 'message': str(exc)})
        return 2

    out_dir = Path(args.output_dir).expanduser().resolve() if args.output_dir else output_root()
    pdf_path = out_dir / artifact.filename
    write_bytes_atomic(pdf_path, artifact.content)

    summary = _artifact_summary(artifact, pdf_path)
    write_json_atomic(pdf_path.with_suffix('.toc.json'), summary)
    _print_json(summary)
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    try:
        payload = _load_input(args.input)
        reports = _parse_reports(payload)
    except (FileNotFoundError, ValueError, ValidationError) as exc:
        _print_json({'status': 'error', 'message': str(exc)})
        return 2

    settings = get_settings()
    site_url = args.site_url if args.site_url is not None else payload.get('site_url')
    rows = []
    for report in reports:
        blocks = iter_content_blocks(strip_attachment_sections(report.content))
        attachments = resolve_attachments(
            report.content,
            report.attachments,
            site_url=site_url,
            default_origin=settings.default_site_origin,
            upload_dirs=settings.upload_dirs(),
        )
        rows.append(
            {
                'id': report.id,
                'title': report.title,
                'report_title': extract_report_title(report.content),
                'blocks': [{'type': type(block).__name__.lower(), **vars(block)} for block in blocks],
                'attachments': [{'filename': item.filename, 'url': item.url} for item in attachments],
            }
        )
    _print_json({'status': 'ok', 'reports': rows})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Case file PDF composer CLI')
    sub = parser.add_subparsers(dest='command', required=True)

    generate = sub.add_parser('generate', help='Render selected reports into a case file PDF')
    generate.add_argument('--input', required=True, help='JSON file with reports and optional settings')
    generate.add_argument('--output-dir', required=False, help='Directory for the generated PDF')
    generate.add_argument('--category', required=False, help='Case/category name override')
    generate.add_argument('--site-url', required=False, help='Base site URL for attachment links')
    generate.add_argument('--no-cover', action='store_true', help='Skip cover page and table of contents')
    generate.set_defaults(func=cmd_generate)

    inspect = sub.add_parser('inspect', help='Show classified blocks and resolved attachments')
    inspect.add_argument('--input', required=True, help='JSON file with reports')
    inspect.add_argument('--site-url', required=False, help='Base site URL for attachment links')
    inspect.set_defaults(func=cmd_inspect)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(get_settings().log_level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
