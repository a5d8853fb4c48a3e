"""Tests for structural surrounding-text extraction."""

import pytest

from mediactx.context_extractor import (
    CONTEXT_HEADER,
    NO_CONTEXT_MARKER,
    ContextExtractor,
    ParentCandidate,
)


@pytest.fixture
def extractor() -> ContextExtractor:
    return ContextExtractor()


def _img_range(text: str, needle: str = '<img'):
    start = text.index(needle)
    return start, text.index('>', start) + 1


def test_parent_and_sibling_around_image(extractor):
    text = '<div>A<img src="x.png"><p>B</p></div>'
    start, end = _img_range(text)

    context = extractor.extract_context(text, start, end, 1500)

    assert context == (
        "[IMAGE LOCATION]\n"
        "[Text in <p> sibling after image]: B\n"
        "[Text in <div> parent before image]: A\n"
        "[Text in <div> parent after image]: B"
    )


def test_extraction_is_deterministic(extractor):
    text = '<section><h2>Title</h2><div>Lead <img src="a.png"> tail</div><p>Next</p></section>'
    start, end = _img_range(text)
    assert extractor.extract_context(text, start, end, 500) == extractor.extract_context(text, start, end, 500)


def test_no_context_marker_for_bare_tag(extractor):
    text = '<img src="a.png">'
    assert extractor.extract_context(text, 0, len(text), 1500) == NO_CONTEXT_MARKER


def test_no_context_marker_when_parent_has_no_text(extractor):
    text = '<div>  <img src="a.png">\n</div>'
    start, end = _img_range(text)
    assert extractor.extract_context(text, start, end, 1500) == NO_CONTEXT_MARKER


def test_context_has_header_when_any_fragment_found(extractor):
    text = '<div><img src="a.png"></div><p>Only sibling</p>'
    start, end = _img_range(text)
    context = extractor.extract_context(text, start, end, 1500)
    assert context.startswith(CONTEXT_HEADER + '\n')
    assert context != NO_CONTEXT_MARKER


def test_siblings_are_capped_and_nearest_first(extractor):
    text = (
        '<p>one</p><p>two</p><p>three</p><p>four</p>'
        '<img src="x.png">'
        '<p>five</p><p>six</p><p>seven</p><p>eight</p>'
    )
    start, end = _img_range(text)

    siblings = extractor.find_sibling_elements(text, start, end, 1500)

    assert [(s.position, s.text) for s in siblings] == [
        ('before', 'four'), ('before', 'three'), ('before', 'two'),
        ('after', 'five'), ('after', 'six'), ('after', 'seven'),
    ]


def test_empty_siblings_are_dropped(extractor):
    text = '<span></span><span> </span><img src="x.png"><a href="/"></a>'
    start, end = _img_range(text)
    assert extractor.find_sibling_elements(text, start, end, 1500) == []


def test_enclosing_element_is_not_a_sibling(extractor):
    text = '<figure><figcaption>Cap</figcaption><img src="x.png"></figure>'
    start, end = _img_range(text)
    siblings = extractor.find_sibling_elements(text, start, end, 1500)
    assert [(s.tag_name, s.text) for s in siblings] == [('figcaption', 'Cap')]


def test_sibling_must_close_inside_budget(extractor):
    text = '<img src="x.png"><p>' + 'word ' * 40 + '</p>'
    start, end = _img_range(text)
    assert extractor.find_sibling_elements(text, start, end, 50) == []
    assert len(extractor.find_sibling_elements(text, start, end, 500)) == 1


def test_tightest_parent_is_chosen(extractor):
    text = '<section>Intro<div>Caption <img src="a.png"></div></section>'
    start, end = _img_range(text)

    parent = extractor.find_parent_element(text, start, end, 1500)

    assert parent == ParentCandidate(text.index('<div>'), text.index('</section>'), 'div')


def test_ascends_until_enough_text(extractor):
    text = '<section>Intro<div>Caption <img src="a.png"></div></section>'
    start, end = _img_range(text)

    context = extractor.extract_context(text, start, end, 1500)

    assert context == (
        "[IMAGE LOCATION]\n"
        "[Text in <div> parent before image]: Caption\n"
        "[Text in <section> parent before image]: Intro"
    )


def test_stops_ascending_once_context_is_sufficient(extractor):
    lead = 'This paragraph easily describes the photo that follows it here.'
    text = f'<section>Outer text<div>{lead}<img src="a.png"></div></section>'
    start, end = _img_range(text)

    context = extractor.extract_context(text, start, end, 1500)

    assert lead in context
    assert '<section>' not in context
    assert 'Outer text' not in context


def test_ascent_is_capped_at_three_levels(extractor):
    text = ('<article>L4<section>L3<div>L2<figure>L1<img src="a.png">'
            '</figure></div></section></article>')
    start, end = _img_range(text)

    context = extractor.extract_context(text, start, end, 1500)

    assert '[Text in <figure> parent before image]: L1' in context
    assert '[Text in <div> parent before image]: L2' in context
    assert '[Text in <section> parent before image]: L3' in context
    assert 'L4' not in context


def test_parent_outside_budget_is_not_found(extractor):
    text = '<div>' + 'a' * 100 + '<img src="x.png"></div>'
    start, end = _img_range(text)
    assert extractor.find_parent_element(text, start, end, 50) is None
    assert extractor.extract_context(text, start, end, 50) == NO_CONTEXT_MARKER


def test_script_and_style_content_is_ignored(extractor):
    text = ('<div><script>var secret = 1;</script><style>.a{color:red}</style>'
            'Visible <img src="a.png"></div>')
    start, end = _img_range(text)

    context = extractor.extract_context(text, start, end, 1500)

    assert 'Visible' in context
    assert 'secret' not in context
    assert 'color' not in context


def test_script_cut_by_the_tag_does_not_leak(extractor):
    text = ('<div>Caption<script>var token = "s3cr3t"; '
            'document.write(\'<img src="x.png">\')</script></div>')
    start, end = _img_range(text)

    context = extractor.extract_context(text, start, end, 1500)

    assert '[Text in <div> parent before image]: Caption\n' in context
    assert 's3cr3t' not in context
