"""
Tests for attachment extraction, URL resolution and de-duplication.
"""
from casefile.report.attachments import (
    ResolvedAttachment,
    attachment_type,
    clean_filename,
    extract_content_attachments,
    normalize_filename,
    parse_attachment,
    resolve_attachments,
    strip_attachment_sections,
)
from casefile.types import Attachment


SECTION_CONTENT = (
    'Narrative\n'
    'Items were photographed.\n'
    'ATTACHMENTS\n'
    'IMG_1234.JPG\n'
    'report-final.docx\n'
    '\n'
    'Submitting Agent'
)


class TestNormalization:
    def test_size_suffix_collapses(self):
        assert normalize_filename('photo-150x150.jpg') == 'photo.jpg'
        assert normalize_filename('photo_640x480.png') == 'photo.png'

    def test_copies_collapse(self):
        assert normalize_filename('photo - copy.jpg') == 'photo.jpg'
        assert normalize_filename('photo (3).jpg') == 'photo.jpg'

    def test_numbered_files_stay_distinct(self):
        assert normalize_filename('exhibit-1.pdf') == 'exhibit-1.pdf'
        assert normalize_filename('exhibit-2.pdf') != normalize_filename('exhibit-1.pdf')

    def test_counter_dropped_from_name_without_extension(self):
        assert normalize_filename('scan-1') == 'scan'


class TestFilenameCleanup:
    def test_parenthetical_suffix_removed(self):
        assert clean_filename('evidence.jpg (uploads/2024/evidence.jpg)') == 'evidence.jpg'

    def test_path_reduced_to_last_segment(self):
        assert clean_filename('folder/sub/scan.pdf') == 'scan.pdf'

    def test_falls_back_to_url_segment(self):
        assert clean_filename('', 'https://example.org/files/lab-results.pdf') == 'lab-results.pdf'

    def test_default_name(self):
        assert clean_filename('', '') == 'Attachment'


class TestUrlResolution:
    def test_embedded_link_in_title(self):
        item = parse_attachment(
            Attachment(id=1, title='<a href="https://site.org/files/report.pdf">report.pdf</a>', url='ignored')
        )
        assert item == ResolvedAttachment(filename='report.pdf', url='https://site.org/files/report.pdf')

    def test_bare_filename_uses_first_upload_dir_and_site_url(self):
        item = parse_attachment(Attachment(id=1, title='scan.pdf'), site_url='https://example.org/')
        assert item.url == 'https://example.org/wp-content/uploads/formidable/scan.pdf'

    def test_default_origin_without_site_url(self):
        item = parse_attachment(Attachment(id=1, title='scan.pdf', url='/scan.pdf'))
        assert item.url == 'https://cmansrms.us/wp-content/uploads/formidable/scan.pdf'

    def test_configured_upload_dirs(self):
        item = parse_attachment(
            Attachment(id=1, title='scan.pdf'),
            site_url='https://example.org',
            upload_dirs=['/files/', '/uploads/'],
        )
        assert item.url == 'https://example.org/files/scan.pdf'

    def test_relative_path_with_directory_is_joined(self):
        item = parse_attachment(Attachment(id=1, title='a.pdf', url='docs/a.pdf'), site_url='https://example.org//')
        assert item.url == 'https://example.org/docs/a.pdf'

    def test_absolute_url_untouched(self):
        item = parse_attachment(Attachment(id=1, title='a.pdf', url='http://other.net/a.pdf'), site_url='https://x.org')
        assert item.url == 'http://other.net/a.pdf'


class TestContentSections:
    def test_extracts_filenames_from_section(self):
        extracted = extract_content_attachments(SECTION_CONTENT, start_id=5)
        assert [(item.id, item.title, item.url, item.type) for item in extracted] == [
            (5, 'IMG_1234.JPG', '/IMG_1234.JPG', 'image'),
            (6, 'report-final.docx', '/report-final.docx', 'doc'),
        ]

    def test_strip_removes_section_only(self):
        stripped = strip_attachment_sections(SECTION_CONTENT)
        assert 'IMG_1234' not in stripped
        assert 'Items were photographed.' in stripped
        assert 'Submitting Agent' in stripped

    def test_section_ends_at_all_caps_header(self):
        content = 'ATTACHMENTS\nmap.png\nAPPROVING SUPERVISOR\nnotes.txt'
        assert [item.title for item in extract_content_attachments(content)] == ['map.png']

    def test_mixed_case_marker_starts_a_section(self):
        content = 'Narrative:\nEvidence logged.\nAttachments\nlab-results.pdf\n\nSubmitting Agent'
        assert [item.title for item in extract_content_attachments(content)] == ['lab-results.pdf']
        stripped = strip_attachment_sections(content)
        assert 'lab-results.pdf' not in stripped
        assert 'Submitting Agent' in stripped

    def test_marker_inside_prose_is_not_a_section(self):
        content = 'No attachments were recovered from vehicle.pdf today.'
        assert extract_content_attachments(content) == []
        assert strip_attachment_sections(content) == content

    def test_type_tags(self):
        assert attachment_type('a.PDF') == 'pdf'
        assert attachment_type('a.txt') == 'txt'
        assert attachment_type('a.zip') == 'file'


class TestResolve:
    def test_duplicates_keep_first_occurrence(self, report_with_duplicate_attachments):
        report = report_with_duplicate_attachments
        resolved = resolve_attachments(report.content, report.attachments)
        assert resolved == [
            ResolvedAttachment(filename='photo-150x150.jpg', url='https://example.org/uploads/photo-150x150.jpg')
        ]

    def test_originals_precede_content_matches(self):
        originals = [Attachment(id=1, title='IMG_1234-300x200.JPG', url='https://example.org/u/IMG_1234-300x200.JPG')]
        resolved = resolve_attachments(SECTION_CONTENT, originals, site_url='https://example.org')
        assert [item.filename for item in resolved] == ['IMG_1234-300x200.JPG', 'report-final.docx']
        assert resolved[1].url == 'https://example.org/wp-content/uploads/formidable/report-final.docx'

    def test_order_is_stable(self):
        originals = [
            Attachment(id=1, title='b.pdf', url='https://x.org/b.pdf'),
            Attachment(id=2, title='a.pdf', url='https://x.org/a.pdf'),
            Attachment(id=3, title='b-300x200.pdf', url='https://x.org/b-300x200.pdf'),
            Attachment(id=4, title='c.pdf', url='https://x.org/c.pdf'),
        ]
        assert [item.filename for item in resolve_attachments('', originals)] == ['b.pdf', 'a.pdf', 'c.pdf']

    def test_numbered_exhibits_all_kept(self):
        originals = [
            Attachment(id=index, title=f'exhibit-{index}.pdf', url=f'https://x.org/exhibit-{index}.pdf')
            for index in (1, 2, 3)
        ]
        assert [item.filename for item in resolve_attachments('', originals)] == [
            'exhibit-1.pdf',
            'exhibit-2.pdf',
            'exhibit-3.pdf',
        ]
