"""
Tag Locator - Finds image and video tags in HTML/JSX text without a parser
"""

import logging
import os
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from config import (
    MAX_ATTRIBUTE_LENGTH,
    MAX_CONTAINER_ATTRIBUTE_LENGTH,
    MAX_CONTAINER_SPAN,
    MAX_INPUT_LENGTH,
    SEARCH_TIMEOUT_MS,
)
from .errors import InputTooLargeError, ScanCancelledError

logger = logging.getLogger('MediaContext.locator')


class TagKind(Enum):
    IMAGE = 'img'
    CONTAINER = 'video'


@dataclass(frozen=True)
class TagMatch:
    """A located tag; start/end are a half-open character range"""
    kind: TagKind
    start: int
    end: int
    raw_text: str

    @property
    def range(self) -> tuple:
        return (self.start, self.end)


@dataclass
class LocateResult:
    matches: List[TagMatch] = field(default_factory=list)
    timed_out: bool = False


class _ScanTimeout(Exception):
    """Internal signal: wall-clock scan budget exhausted"""


class TagLocator:
    """Locates image-like and video container tags using bounded regex scans"""

    def __init__(self, max_input_length: int = MAX_INPUT_LENGTH,
                 max_attribute_length: int = MAX_ATTRIBUTE_LENGTH,
                 max_container_attribute_length: int = MAX_CONTAINER_ATTRIBUTE_LENGTH,
                 max_container_span: int = MAX_CONTAINER_SPAN,
                 scan_timeout_ms: int = SEARCH_TIMEOUT_MS,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize TagLocator with pre-compiled patterns

        Args:
            max_input_length: Longest range (in characters) accepted for scanning
            max_attribute_length: Attribute cap for img/Image tags
            max_container_attribute_length: Attribute cap for video/source tags
            max_container_span: Max distance between a video open tag and its close
            scan_timeout_ms: Wall-clock budget for a whole locate_all_in_range call
            clock: Monotonic clock in seconds
        """
        self.max_input_length = max_input_length
        self.max_container_span = max_container_span
        self.scan_timeout = scan_timeout_ms / 1000.0
        self.clock = clock

        # Attribute runs are length-capped so a stray '<img ' cannot backtrack
        # across the whole document.
        self.image_pattern = re.compile(
            rf'<(img|Image)\s[^>]{{0,{max_attribute_length}}}>', re.IGNORECASE
        )
        self.container_open_pattern = re.compile(
            rf'<video(?:\s[^>]{{0,{max_container_attribute_length}}})?>', re.IGNORECASE
        )
        self.container_close_pattern = re.compile(r'</video\s*>', re.IGNORECASE)
        self.inner_reference_pattern = re.compile(
            rf'<source(?:[\s/][^>]{{0,{max_container_attribute_length}}})?>', re.IGNORECASE
        )

        # Cursor classification
        self.cursor_image_pattern = re.compile(r'^<(?:img|Image)[\s/>]', re.IGNORECASE)
        self.cursor_container_pattern = re.compile(
            r'^(?:<video[\s/>]|<source[\s/>]|</video\s*>)', re.IGNORECASE
        )

    def locate_at_cursor(self, text: str, offset: int) -> Optional[TagKind]:
        """
        Detect the kind of tag the cursor sits in

        Only detects a tag when the cursor is between '<' and '>'. The
        character at the offset takes part in both the backward and the
        forward scan.

        Args:
            text: Full document text
            offset: Cursor offset

        Returns:
            TagKind of the enclosing tag, or None if the cursor is outside
            any tag of interest
        """
        if offset < 0 or offset >= len(text):
            return None

        open_index = text.rfind('<', 0, offset + 1)
        if open_index == -1 or text.rfind('>', 0, offset + 1) > open_index:
            # a tag closes before the cursor
            return None

        close_index = text.find('>', offset)
        if close_index == -1:
            return None
        next_open = text.find('<', max(offset, open_index + 1))
        if next_open != -1 and next_open < close_index:
            # another tag opens after the cursor
            return None

        tag_text = text[open_index:close_index + 1]
        if self.cursor_image_pattern.match(tag_text):
            return TagKind.IMAGE
        if self.cursor_container_pattern.match(tag_text):
            return TagKind.CONTAINER
        return None

    def match_at_cursor(self, text: str, offset: int) -> Optional[TagMatch]:
        """
        Resolve the full tag the cursor sits in

        Image tags resolve to the bracketed tag itself. Video, source and
        </video> tags resolve to the whole enclosing video element.

        Args:
            text: Full document text
            offset: Cursor offset

        Returns:
            TagMatch for the tag, or None
        """
        kind = self.locate_at_cursor(text, offset)
        if kind is None:
            return None
        tag_start = text.rfind('<', 0, offset + 1)
        tag_end = text.find('>', offset) + 1
        if kind is TagKind.IMAGE:
            return TagMatch(kind, tag_start, tag_end, text[tag_start:tag_end])

        if self.container_open_pattern.match(text, tag_start):
            # resolve from just after the open tag so it is its own container
            span = self._resolve_container(text, tag_end)
        else:
            span = self._resolve_container(text, tag_start)
        if span is None:
            return None
        return TagMatch(kind, span[0], span[1], text[span[0]:span[1]])

    def locate_all_in_range(self, text: str, start: int = 0, end: Optional[int] = None,
                            cancel_event=None) -> LocateResult:
        """
        Detect all img/Image and video tags in a range of the text

        Args:
            text: Full document text
            start: Range start offset
            end: Range end offset (exclusive), defaults to end of text
            cancel_event: Optional object with is_set(); checked before each pass

        Returns:
            LocateResult with matches in discovery order and the timeout flag

        Raises:
            InputTooLargeError: If the range exceeds the size cap
            ScanCancelledError: If cancel_event is set at a pass boundary
        """
        if end is None:
            end = len(text)
        start = max(0, start)
        end = min(len(text), end)
        if end - start > self.max_input_length:
            raise InputTooLargeError(end - start, self.max_input_length)

        result = LocateResult()
        deadline = self.clock() + self.scan_timeout
        seen = set()

        passes = (self._scan_images, self._scan_containers, self._scan_inner_references)
        try:
            for scan in passes:
                if cancel_event is not None and cancel_event.is_set():
                    raise ScanCancelledError()
                scan(text, start, end, deadline, result.matches, seen)
        except _ScanTimeout:
            result.timed_out = True
            logger.warning(f"Tag detection timeout - text may be too complex "
                           f"({len(result.matches)} tags found before cutoff)")

        return result

    def _check_deadline(self, deadline: float) -> None:
        if self.clock() > deadline:
            raise _ScanTimeout()

    def _add_match(self, matches: List[TagMatch], seen: set, match: TagMatch) -> None:
        # exact-range dedup
        if match.range not in seen:
            seen.add(match.range)
            matches.append(match)

    def _scan_images(self, text: str, start: int, end: int, deadline: float,
                     matches: List[TagMatch], seen: set) -> None:
        for m in self.image_pattern.finditer(text, start, end):
            self._check_deadline(deadline)
            self._add_match(matches, seen, TagMatch(TagKind.IMAGE, m.start(), m.end(), m.group(0)))

    def _scan_containers(self, text: str, start: int, end: int, deadline: float,
                         matches: List[TagMatch], seen: set) -> None:
        pos = start
        while True:
            self._check_deadline(deadline)
            m = self.container_open_pattern.search(text, pos, end)
            if not m:
                break
            open_start, open_end = m.start(), m.end()
            span_limit = min(end, open_start + self.max_container_span)
            if m.group(0).endswith('/>'):
                # a self-closed video never pairs with a later close tag
                tag_end = open_end
            else:
                close = self.container_close_pattern.search(text, open_end, span_limit)
                if close is None:
                    # no matching close within the span
                    pos = open_end
                    continue
                tag_end = close.end()
            self._add_match(matches, seen,
                            TagMatch(TagKind.CONTAINER, open_start, tag_end, text[open_start:tag_end]))
            pos = tag_end

    def _scan_inner_references(self, text: str, start: int, end: int, deadline: float,
                               matches: List[TagMatch], seen: set) -> None:
        for m in self.inner_reference_pattern.finditer(text, start, end):
            self._check_deadline(deadline)
            span = self._resolve_container(text, m.start())
            if span is None:
                continue
            container_start, container_end = span
            self._add_match(matches, seen, TagMatch(TagKind.CONTAINER, container_start, container_end,
                                                    text[container_start:container_end]))

    def _resolve_container(self, text: str, position: int) -> Optional[tuple]:
        """
        Find the video element enclosing an inner <source> tag

        Searches the full text, not just the scanned range, so a selection
        that only covers the <source> still yields its whole container.

        Args:
            text: Full document text
            position: Offset of the inner tag

        Returns:
            (start, end) of the container, or None if none encloses the position
        """
        window_start = max(0, position - self.max_container_span)
        last_open = None
        for m in self.container_open_pattern.finditer(text, window_start, position):
            last_open = m
        if last_open is None:
            return None

        container_start = last_open.start()
        if last_open.group(0).endswith('/>'):
            # a self-closed video only encloses itself
            if last_open.end() >= position:
                return (container_start, last_open.end())
            return None
        if self.container_close_pattern.search(text, last_open.end(), position):
            # that video already closed before the position
            return None
        span_limit = min(len(text), container_start + self.max_container_span)
        close = self.container_close_pattern.search(text, position, span_limit)
        if close:
            return (container_start, close.end())
        return None


# Attribute helpers for already-located tags

_JSX_WRAPPING = re.compile(r'^\{\s*["\'`]?(.*?)["\'`]?\s*\}$', re.DOTALL)
_TAG_NAMES = ['img', 'image', 'video', 'source']


def _unwrap_jsx(value: str) -> str:
    m = _JSX_WRAPPING.match(value.strip())
    return m.group(1) if m else value


def _attributes_of(tag) -> Dict[str, str]:
    attributes = {}
    for name, value in tag.attrs.items():
        if isinstance(value, list):
            value = ' '.join(value)
        attributes[name.lower()] = _unwrap_jsx(value)
    return attributes


def read_media_tag(tag_text: str) -> Tuple[Dict[str, str], Optional[str]]:
    """
    Parse a located tag once and read its attributes and media src

    A video element without its own src takes the src of the first
    nested <source> carrying one.

    Args:
        tag_text: Raw tag text as returned in TagMatch.raw_text

    Returns:
        (attributes, src) where attributes belong to the first
        img/Image/video/source tag and src may be None
    """
    soup = BeautifulSoup(tag_text, 'lxml')
    tag = soup.find(_TAG_NAMES)
    if tag is None:
        return {}, None

    attributes = _attributes_of(tag)
    src = attributes.get('src') or None
    if src is None and tag.name == 'video':
        source = soup.find('source', src=True)
        if source is not None:
            src = _unwrap_jsx(source['src']) or None
    return attributes, src


def read_tag_attributes(tag_text: str) -> Dict[str, str]:
    """Attributes of the first img/Image/video/source tag (names lower-cased, JSX braces unwrapped)"""
    return read_media_tag(tag_text)[0]


def file_name_from_src(src: Optional[str]) -> str:
    """Base name of a src without query or fragment, or 'unknown'"""
    if not src:
        return 'unknown'
    src = src.split('?')[0].split('#')[0]
    return os.path.basename(src.rstrip('/')) or 'unknown'


def extract_image_file_name(tag_text: str) -> str:
    """
    Extract the image file name from an img/Image tag

    Args:
        tag_text: Raw tag text

    Returns:
        Base name of the src attribute, or 'unknown'
    """
    return file_name_from_src(read_media_tag(tag_text)[1])


def extract_video_file_name(tag_text: str) -> str:
    """Extract the video file name from a video element, or 'unknown'"""
    return file_name_from_src(read_media_tag(tag_text)[1])
