"""Tests for the MediaContextXtractor orchestrator and its command line."""

import json
import logging
import threading

import pytest

import main
from main import MediaContextXtractor
from mediactx.context_extractor import NO_CONTEXT_MARKER
from mediactx.document import TextDocument
from mediactx.locator import TagLocator
from utils.logger import CONSOLE_HANDLER_NAME, FILE_HANDLER_NAME

PAGE = """<main>
  <section>
    <h2>Our team</h2>
    <div>Everyone at the retreat <img src="images/team.jpg" alt="Team"></div>
    <video controls>
      <source src="media/welcome.mp4" type="video/mp4">
    </video>
  </section>
</main>
"""


@pytest.fixture
def xtractor(tmp_path):
    instance = MediaContextXtractor(log_dir=str(tmp_path / "logs"), context_range=1500)
    yield instance
    instance.logger.close()


def test_analyze_document_reports_every_tag(xtractor):
    document = TextDocument(PAGE, uri="page.html")

    records = xtractor.analyze_document(document)

    assert [r['kind'] for r in records] == ['img', 'video']
    image, video = records
    assert image['file_name'] == 'team.jpg'
    assert image['src_valid'] is True
    assert image['has_label'] is True
    assert image['line'] == 4
    assert '[Text in <div> parent before image]: Everyone at the retreat' in image['context']
    assert video['file_name'] == 'welcome.mp4'
    assert video['src'] == 'media/welcome.mp4'
    assert video['has_label'] is False
    # both tags are within the context range of each other
    assert image['group_id'] == video['group_id'] == 0
    assert image['context'] == video['context']


def test_analyze_document_without_context(tmp_path):
    instance = MediaContextXtractor(log_dir=str(tmp_path), context_enabled=False)
    try:
        records = instance.analyze_document(TextDocument(PAGE))
    finally:
        instance.logger.close()
    assert len(records) == 2
    assert all(r['context'] is None and r['group_id'] is None for r in records)


def test_oversized_document_is_reported_as_failed(tmp_path):
    instance = MediaContextXtractor(log_dir=str(tmp_path), locator=TagLocator(max_input_length=10))
    try:
        assert instance.analyze_document(TextDocument(PAGE, uri="big.html")) == []
        record = instance.logger.session_data['documents'][0]
    finally:
        instance.logger.close()
    assert record['status'] == 'failed'
    assert record['errors'][0].startswith('Detection error')


def test_cancelled_analysis_returns_nothing(xtractor):
    event = threading.Event()
    event.set()
    assert xtractor.analyze_document(TextDocument(PAGE), cancel_event=event) == []
    assert xtractor.logger.session_data['documents'][0]['status'] == 'cancelled'


def test_analyze_cursor_uses_direct_extraction(xtractor):
    document = TextDocument(PAGE)
    record = xtractor.analyze_cursor(document, PAGE.index('welcome.mp4'))

    assert record['kind'] == 'video'
    assert record['start'] == PAGE.index('<video')
    assert record['group_id'] is None
    assert record['context'] != NO_CONTEXT_MARKER
    assert xtractor.analyze_cursor(document, PAGE.index('Our team')) is None


def test_short_selection_falls_back_to_cursor(xtractor):
    document = TextDocument(PAGE)
    offset = PAGE.index('team.jpg')
    records = xtractor.analyze_selection(document, offset, offset + 2)
    assert [r['file_name'] for r in records] == ['team.jpg']


def test_selection_only_covers_tags_inside_it(xtractor):
    document = TextDocument(PAGE)
    start = PAGE.index('<video')
    records = xtractor.analyze_selection(document, start, len(PAGE))
    assert [r['kind'] for r in records] == ['video']


def test_analyze_files_writes_report(tmp_path):
    page = tmp_path / "index.html"
    page.write_text(PAGE, encoding="utf-8")
    missing = tmp_path / "missing.html"
    log_dir = tmp_path / "logs"

    instance = MediaContextXtractor(log_dir=str(log_dir))
    try:
        report = json.loads(instance.analyze_files([str(page), str(missing)]))
    finally:
        instance.logger.close()

    assert report['summary']['total_documents'] == 1
    assert report['summary']['total_tags'] == 2
    assert instance.results[str(missing)] == []
    assert list(log_dir.glob("report_*.json"))


def test_cli_prints_json_results(tmp_path, capsys):
    page = tmp_path / "Hero.jsx"
    page.write_text('export const Hero = () => (\n  <figure>\n    <Image src={heroShot} />\n'
                    '    <figcaption>Sunrise over the bay</figcaption>\n  </figure>\n);\n',
                    encoding="utf-8")

    exit_code = main.main([str(page), "--json", "--context-range", "narrow",
                           "--log-dir", str(tmp_path / "logs")])

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    (record,) = output[str(page)]
    assert record['kind'] == 'img'
    assert record['file_name'] == 'heroShot'
    assert 'Sunrise over the bay' in record['context']


def test_cli_cursor_outside_tag_exits_non_zero(tmp_path):
    page = tmp_path / "a.html"
    page.write_text('<p>No media here</p>\n', encoding="utf-8")
    exit_code = main.main([str(page), "--cursor", "1:5", "--log-dir", str(tmp_path / "logs")])
    assert exit_code == 1


def test_each_tag_is_parsed_once(xtractor, monkeypatch):
    import mediactx.locator as locator_module

    calls = []
    real_soup = locator_module.BeautifulSoup

    def counting_soup(*args, **kwargs):
        calls.append(args[0])
        return real_soup(*args, **kwargs)

    monkeypatch.setattr(locator_module, 'BeautifulSoup', counting_soup)
    record = xtractor.analyze_cursor(TextDocument(PAGE), PAGE.index('welcome.mp4'))

    assert record['src'] == 'media/welcome.mp4'
    assert record['file_name'] == 'welcome.mp4'
    assert len(calls) == 1


def _media_handlers():
    return [h for h in logging.getLogger('MediaContext').handlers
            if h.get_name() in (CONSOLE_HANDLER_NAME, FILE_HANDLER_NAME)]


def test_instances_share_one_console_handler(tmp_path):
    with MediaContextXtractor(log_dir=str(tmp_path / "a")):
        with MediaContextXtractor(log_dir=str(tmp_path / "b")):
            names = [h.get_name() for h in _media_handlers()]
            assert names.count(CONSOLE_HANDLER_NAME) == 1
            assert names.count(FILE_HANDLER_NAME) == 2
        # the outer instance still logs to the console
        assert [h.get_name() for h in _media_handlers()] == [CONSOLE_HANDLER_NAME, FILE_HANDLER_NAME]
    assert _media_handlers() == []


def test_close_is_idempotent(tmp_path):
    instance = MediaContextXtractor(log_dir=str(tmp_path))
    instance.close()
    instance.close()
    assert _media_handlers() == []
