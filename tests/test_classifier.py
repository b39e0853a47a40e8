"""
Tests for turning raw report markup into content blocks.
"""
import inspect

from casefile.report.classifier import (
    Heading,
    Label,
    ListItem,
    Paragraph,
    extract_report_title,
    is_field_label,
    iter_content_blocks,
    iter_markup_blocks,
)


class TestLineClassification:
    def test_date_code_line_is_dropped(self):
        blocks = list(iter_content_blocks('Narrative:\n12-3456-01-02\nSuspect left on foot.'))
        assert blocks == [Label('Narrative:'), Paragraph('Suspect left on foot.')]

    def test_colon_line_is_label(self):
        assert list(iter_content_blocks('Narrative:')) == [Label('Narrative:')]

    def test_known_field_names_are_labels(self):
        blocks = list(iter_content_blocks('Date of Report\nIncident Location\nApproving Commander'))
        assert blocks == [Label('Date of Report'), Label('Incident Location'), Label('Approving Commander')]

    def test_label_allow_list_is_case_exact(self):
        assert list(iter_content_blocks('narrative')) == [Paragraph('narrative')]

    def test_prose_stays_paragraph(self):
        text = 'The vehicle was registered to a third party and later released'
        assert not is_field_label(text)
        assert list(iter_content_blocks(text)) == [Paragraph(text)]

    def test_separator_lines_are_dropped(self):
        blocks = list(iter_content_blocks('-----\nFirst\n=== ===\n______\nSecond'))
        assert blocks == [Paragraph('First'), Paragraph('Second')]

    def test_heading_markup_carries_level(self):
        blocks = list(iter_content_blocks('<h2>Case Summary</h2>\n<h5>Appendix</h5>'))
        assert blocks == [Heading(2, 'Case Summary'), Heading(5, 'Appendix')]
        assert blocks[0].centered
        assert not blocks[1].centered

    def test_br_tags_split_lines(self):
        blocks = list(iter_content_blocks('<p>Date of Report<br/>March 1, 2024<BR>Narrative:</p>'))
        assert blocks == [Label('Date of Report'), Paragraph('March 1, 2024'), Label('Narrative:')]

    def test_entities_are_decoded(self):
        assert list(iter_content_blocks('<p>Smith &amp; Jones &#8211; lab</p>')) == [Paragraph('Smith & Jones – lab')]

    def test_malformed_markup_does_not_raise(self):
        blocks = list(iter_content_blocks('<p>unclosed <b>bold text\n<div <<>'))
        assert Paragraph('unclosed bold text') in blocks

    def test_sequence_is_lazy(self):
        assert inspect.isgenerator(iter_content_blocks('anything'))

    def test_visible_lines_round_trip(self):
        lines = [
            'Date of Report',
            'March 1, 2024',
            '----------',
            'Narrative:',
            '01-2345-67-89',
            'Agents observed the transaction.',
            'The informant was searched before and after.',
        ]
        blocks = list(iter_content_blocks('\n'.join(lines)))
        expected = [line for line in lines if line not in {'----------', '01-2345-67-89'}]
        assert [block.text for block in blocks] == expected

    def test_empty_content_yields_nothing(self):
        assert list(iter_content_blocks('')) == []
        assert list(iter_content_blocks('<hr/>\n   \n')) == []


class TestStructuralWalk:
    def test_walks_headings_paragraphs_and_lists(self):
        markup = (
            '<div><h1>Title</h1><p>Narrative:</p>'
            '<ul><li>one</li><li>two</li></ul><hr/><p>Body</p></div>'
        )
        assert list(iter_markup_blocks(markup)) == [
            Heading(1, 'Title'),
            Label('Narrative:'),
            ListItem('one'),
            ListItem('two'),
            Paragraph('Body'),
        ]

    def test_drops_rules_scripts_and_date_codes(self):
        markup = '<section><hr><script>var x = 1;</script><p>12-3456-01-02</p>loose text</section>'
        assert list(iter_markup_blocks(markup)) == [Paragraph('loose text')]


class TestReportTitle:
    def test_colon_form(self):
        assert extract_report_title('<p>Report Title: Burglary at 5th St</p>') == 'Burglary at 5th St'

    def test_next_line_form(self):
        content = 'Report Title\nStolen vehicle recovery\nNarrative:'
        assert extract_report_title(content) == 'Stolen vehicle recovery'

    def test_missing_title(self):
        assert extract_report_title('<p>Narrative:</p><p>Nothing else.</p>') is None
