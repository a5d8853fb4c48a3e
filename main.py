"""
MediaContextXtractor - Main script for locating media tags and their context

This script scans HTML/JSX documents for img/Image and video tags and builds
the surrounding-text context a description generator needs for each tag.
"""

import json
import sys
from typing import Any, Dict, List, Optional
from mediactx.context_extractor import ContextExtractor, NO_CONTEXT_MARKER
from mediactx.document import TextDocument
from mediactx.errors import InputTooLargeError, ScanCancelledError
from mediactx.grouping import build_context_cache, lookup_context
from mediactx.locator import TagKind, TagLocator, TagMatch, file_name_from_src, read_media_tag
from mediactx.security import validate_media_src
from mediactx.text_utils import format_message
from utils.logger import AnalysisLogger
from config import CONTEXT_RANGE_VALUES, LOGS_DIR, MIN_SELECTION_LENGTH, get_context_range_value


class MediaContextXtractor:
    """Main class for analysing media tags in HTML/JSX documents"""

    def __init__(self, log_dir: str = LOGS_DIR, context_range: int = CONTEXT_RANGE_VALUES['default'],
                 context_enabled: bool = True, locator: Optional[TagLocator] = None,
                 extractor: Optional[ContextExtractor] = None):
        """
        Initialize MediaContextXtractor

        Args:
            log_dir: Directory for log files and reports
            context_range: Context window / grouping threshold in characters
            context_enabled: Whether surrounding text is extracted at all
            locator: Tag locator to use
            extractor: Context extractor to use
        """
        self.locator = locator or TagLocator()
        self.extractor = extractor or ContextExtractor()
        self.logger = AnalysisLogger(log_dir)
        self.context_range = context_range
        self.context_enabled = context_enabled
        self.results: Dict[str, List[Dict[str, Any]]] = {}

    def close(self) -> None:
        """Release the log handlers of this run"""
        self.logger.close()

    def __enter__(self) -> 'MediaContextXtractor':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _describe_tag(self, document: TextDocument, tag: TagMatch,
                      context: Optional[str], group_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Build the report entry for one located tag

        Args:
            document: Document the tag was found in
            tag: Located tag
            context: Surrounding text (None when context is disabled)
            group_id: Context group the tag belongs to

        Returns:
            Tag record dictionary
        """
        attributes, src = read_media_tag(tag.raw_text)
        label_attribute = 'alt' if tag.kind is TagKind.IMAGE else 'aria-label'

        src_valid, src_error = validate_media_src(src) if src else (False, "Missing src")
        position = document.position_at(tag.start)
        return {
            'kind': tag.kind.value,
            'start': tag.start,
            'end': tag.end,
            'line': position.line + 1,
            'character': position.character + 1,
            'file_name': file_name_from_src(src),
            'src': src,
            'src_valid': src_valid,
            'src_error': src_error,
            'has_label': label_attribute in attributes,
            'group_id': group_id,
            'context': context,
        }

    def analyze_document(self, document: TextDocument, start: Optional[int] = None,
                         end: Optional[int] = None, cancel_event=None) -> List[Dict[str, Any]]:
        """
        Analyse every media tag in a range of a document

        Args:
            document: Document to scan
            start: Range start offset (None = start of document)
            end: Range end offset (None = end of document)
            cancel_event: Optional object with is_set() to stop between steps

        Returns:
            List of tag records (empty on failure or cancellation)
        """
        source = document.uri or '<memory>'
        record = self.logger.log_document_start(source)
        text = document.text
        start = 0 if start is None else start
        end = len(text) if end is None else end

        try:
            located = self.locator.locate_all_in_range(text, start, end, cancel_event)
        except InputTooLargeError as e:
            self.logger.log_detection(record, 0, error=str(e))
            self.logger.log_document_complete(record, 'failed')
            return []
        except ScanCancelledError:
            self.logger.log_document_complete(record, 'cancelled')
            return []

        self.logger.log_detection(record, len(located.matches), timed_out=located.timed_out)
        if not located.matches:
            self.logger.log_document_complete(record)
            return []

        try:
            cache = build_context_cache(text, located.matches, self.context_range,
                                        self.context_enabled, cancel_event, self.extractor)
        except ScanCancelledError:
            self.logger.log_document_complete(record, 'cancelled')
            return []
        if cache is not None:
            self.logger.log_grouping(record, cache.get_stats())

        tags = sorted(located.matches, key=lambda t: t.start)
        tag_records: List[Dict[str, Any]] = []
        for index, tag in enumerate(tags):
            if cancel_event is not None and cancel_event.is_set():
                self.logger.warning(format_message("Analysis cancelled ({0}/{1} items processed)",
                                                   index, len(tags)))
                self.logger.log_document_complete(record, 'cancelled')
                return []

            label = f"<{tag.kind.value}> at offset {tag.start}"
            try:
                context = lookup_context(cache, tag.range)
                group_id = cache.get_group_id(*tag.range) if cache is not None else None
                tag_record = self._describe_tag(document, tag, context, group_id)
            except Exception as e:
                self.logger.log_tag_context(record, label, False, error=str(e))
                continue
            self.logger.log_tag_context(record, label, context not in (None, NO_CONTEXT_MARKER))
            tag_records.append(tag_record)

        self.logger.log_document_complete(record)
        return tag_records

    def analyze_cursor(self, document: TextDocument, offset: int) -> Optional[Dict[str, Any]]:
        """
        Analyse the single media tag under a cursor

        Context is extracted directly for the tag, without grouping.

        Args:
            document: Document to scan
            offset: Cursor offset

        Returns:
            Tag record, or None if the cursor is not inside a media tag
        """
        source = document.uri or '<memory>'
        record = self.logger.log_document_start(f"{source} (cursor {offset})")
        tag = self.locator.match_at_cursor(document.text, offset)
        if tag is None:
            self.logger.log_detection(record, 0)
            self.logger.log_document_complete(record)
            return None

        self.logger.log_detection(record, 1)
        context = None
        if self.context_enabled:
            context = self.extractor.extract_context(document.text, tag.start, tag.end, self.context_range)
        tag_record = self._describe_tag(document, tag, context)
        self.logger.log_tag_context(record, f"<{tag.kind.value}> at offset {tag.start}",
                                    context not in (None, NO_CONTEXT_MARKER))
        self.logger.log_document_complete(record)
        return tag_record

    def analyze_selection(self, document: TextDocument, start: int, end: int) -> List[Dict[str, Any]]:
        """
        Analyse a selection; near-empty selections fall back to cursor detection

        Args:
            document: Document to scan
            start: Selection start offset
            end: Selection end offset

        Returns:
            List of tag records
        """
        if len(document.get_text(start, end).strip()) < MIN_SELECTION_LENGTH:
            tag_record = self.analyze_cursor(document, start)
            return [tag_record] if tag_record else []
        return self.analyze_document(document, start, end)

    def analyze_files(self, paths: List[str], cursor: Optional[tuple] = None) -> str:
        """
        Analyse media tags in a list of files

        Args:
            paths: Paths of HTML/JSX files
            cursor: Optional 1-based (line, column) to analyse only the tag there

        Returns:
            JSON report string
        """
        self.logger.set_parameters(
            files=paths,
            context_range=self.context_range,
            context_enabled=self.context_enabled,
            cursor=list(cursor) if cursor else None
        )

        for path in paths:
            try:
                with open(path, 'r', encoding='utf-8', errors='replace') as f:
                    document = TextDocument(f.read(), uri=path)
            except OSError as e:
                self.logger.error(f"Could not read {path}: {e}")
                self.results[path] = []
                continue

            if cursor:
                offset = document.offset_at(cursor[0] - 1, cursor[1] - 1)
                tag_record = self.analyze_cursor(document, offset)
                self.results[path] = [tag_record] if tag_record else []
            else:
                self.results[path] = self.analyze_document(document)

        return self.logger.generate_report()


def _parse_cursor(value: str) -> tuple:
    line, _, column = value.partition(':')
    return int(line), int(column or 1)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for command-line usage"""
    import argparse

    parser = argparse.ArgumentParser(
        description='Locate img/video tags in HTML/JSX files and extract their surrounding context',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyse every media tag in a page
  python main.py templates/index.html

  # Analyse only the tag under line 42, column 10
  python main.py src/Hero.jsx --cursor 42:10

  # Use a wider context window and print the results as JSON
  python main.py templates/*.html --context-range wide --json
        """
    )

    parser.add_argument('files', nargs='+', help='HTML/JSX file(s) to analyse')
    parser.add_argument('--cursor', type=_parse_cursor, default=None,
                        help='1-based LINE:COL of a cursor; only the tag there is analysed')
    parser.add_argument('--context-range', default='standard',
                        choices=[k for k in CONTEXT_RANGE_VALUES if k != 'default'],
                        help='Context window preset (default: standard)')
    parser.add_argument('--no-context', action='store_true',
                        help='Skip surrounding text extraction')
    parser.add_argument('--json', action='store_true',
                        help='Print per-tag results as JSON')
    parser.add_argument('--log-dir', default=LOGS_DIR,
                        help=f'Log directory (default: {LOGS_DIR})')

    args = parser.parse_args(argv)

    with MediaContextXtractor(
        log_dir=args.log_dir,
        context_range=get_context_range_value(args.context_range),
        context_enabled=not args.no_context
    ) as xtractor:
        xtractor.analyze_files(args.files, cursor=args.cursor)

    if args.json:
        json.dump(xtractor.results, sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write('\n')

    found = sum(len(tags) for tags in xtractor.results.values())
    return 0 if found else 1


if __name__ == "__main__":
    sys.exit(main())
