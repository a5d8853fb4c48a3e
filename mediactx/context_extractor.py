"""
Context Extractor - Builds surrounding-text context for a located media tag
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from config import MAX_PARENT_LEVELS, MAX_SIBLINGS, MIN_CONTEXT_LENGTH
from .text_utils import strip_markup

NO_CONTEXT_MARKER = "[No surrounding text found]"
CONTEXT_HEADER = "[IMAGE LOCATION]"


@dataclass(frozen=True)
class ParentCandidate:
    start: int
    end: int
    tag_name: str


@dataclass(frozen=True)
class SiblingCandidate:
    position: str
    tag_name: str
    text: str


class ContextExtractor:
    """Extracts structural context (siblings, then ancestors) around a tag range"""

    def __init__(self, max_parent_levels: int = MAX_PARENT_LEVELS,
                 max_siblings: int = MAX_SIBLINGS,
                 min_context_length: int = MIN_CONTEXT_LENGTH):
        """
        Initialize ContextExtractor

        Args:
            max_parent_levels: Maximum number of ancestor levels to ascend
            max_siblings: Maximum number of siblings collected on each side
            min_context_length: Ancestor text length that counts as sufficient
        """
        self.max_parent_levels = max_parent_levels
        self.max_siblings = max_siblings
        self.min_context_length = min_context_length

        # Elements that may enclose a media tag
        self.block_tags = ['div', 'section', 'article', 'main', 'aside', 'header', 'footer',
                           'nav', 'figure', 'li', 'td', 'th', 'p', 'blockquote']
        # Elements whose text is worth reading as a neighbour
        self.text_tags = self.block_tags + ['h1', 'h2', 'h3', 'h4', 'h5', 'h6',
                                            'figcaption', 'caption', 'span', 'a']

        self.block_open_pattern = re.compile(rf'<({"|".join(self.block_tags)})[\s>]', re.IGNORECASE)
        self.text_open_pattern = re.compile(rf'<({"|".join(self.text_tags)})[\s>]', re.IGNORECASE)
        self._close_patterns = {
            name: re.compile(rf'</{name}\s*>', re.IGNORECASE) for name in self.text_tags
        }

    def _find_close(self, text: str, tag_name: str, open_start: int, limit: int) -> int:
        """Return the end offset of the first close tag after open_start, or -1"""
        close = self._close_patterns[tag_name].search(text, open_start, limit)
        return close.end() if close else -1

    def find_parent_element(self, text: str, scan_start: int, scan_end: int,
                            budget: int) -> Optional[ParentCandidate]:
        """
        Find the tightest block element enclosing a scan range

        Args:
            text: Full document text
            scan_start: Start of the range that must be enclosed
            scan_end: End of the range that must be enclosed
            budget: Characters searched before and after the range

        Returns:
            ParentCandidate with the smallest start distance, or None
        """
        window_start = max(0, scan_start - budget)
        window_end = min(len(text), scan_end + budget)

        closest = None
        closest_distance = None
        for m in self.block_open_pattern.finditer(text, window_start, scan_start):
            open_start = m.start()
            tag_name = m.group(1).lower()
            close_end = self._find_close(text, tag_name, open_start, window_end)
            if close_end == -1 or close_end < scan_end:
                continue
            distance = scan_start - open_start
            if closest_distance is None or distance < closest_distance:
                closest_distance = distance
                closest = ParentCandidate(open_start, close_end, tag_name)
        return closest

    def find_sibling_elements(self, text: str, start: int, end: int,
                              budget: int) -> List[SiblingCandidate]:
        """
        Find closed text-bearing elements right before and after a tag

        Args:
            text: Full document text
            start: Target tag start
            end: Target tag end
            budget: Characters searched on each side

        Returns:
            Up to max_siblings 'before' siblings (nearest first) followed by
            up to max_siblings 'after' siblings (nearest first)
        """
        siblings: List[SiblingCandidate] = []

        before = []
        for m in self.text_open_pattern.finditer(text, max(0, start - budget), start):
            tag_name = m.group(1).lower()
            close_end = self._find_close(text, tag_name, m.start(), start)
            # only elements that close before the target are siblings
            if close_end != -1:
                before.append((m.start(), close_end, tag_name))
        before.sort(key=lambda c: c[1], reverse=True)

        after = []
        window_end = min(len(text), end + budget)
        for m in self.text_open_pattern.finditer(text, end, window_end):
            tag_name = m.group(1).lower()
            close_end = self._find_close(text, tag_name, m.start(), window_end)
            if close_end != -1:
                after.append((m.start(), close_end, tag_name))
        after.sort(key=lambda c: c[0])

        for position, candidates in (('before', before), ('after', after)):
            for open_start, close_end, tag_name in candidates[:self.max_siblings]:
                cleaned = strip_markup(text[open_start:close_end])
                if cleaned:
                    siblings.append(SiblingCandidate(position, tag_name, cleaned))
        return siblings

    def extract_context(self, text: str, start: int, end: int, budget: int) -> str:
        """
        Extract surrounding text context for a media tag using document structure

        Args:
            text: Full document text
            start: Tag start offset
            end: Tag end offset
            budget: Maximum distance scanned outward from the tag

        Returns:
            Context string, or NO_CONTEXT_MARKER if nothing was found
        """
        collected: List[str] = []

        for sibling in self.find_sibling_elements(text, start, end, budget):
            collected.append(f"[Text in <{sibling.tag_name}> sibling {sibling.position} image]: {sibling.text}")

        scan_start, scan_end = start, end
        for _ in range(self.max_parent_levels):
            parent = self.find_parent_element(text, scan_start, scan_end, budget)
            if parent is None:
                break

            cleaned_before = strip_markup(text[parent.start:scan_start])
            cleaned_after = strip_markup(text[scan_end:parent.end])
            if cleaned_before:
                collected.append(f"[Text in <{parent.tag_name}> parent before image]: {cleaned_before}")
            if cleaned_after:
                collected.append(f"[Text in <{parent.tag_name}> parent after image]: {cleaned_after}")

            if len(cleaned_before) + len(cleaned_after) >= self.min_context_length:
                break
            scan_start, scan_end = parent.start, parent.end

        if not collected:
            return NO_CONTEXT_MARKER
        return CONTEXT_HEADER + '\n' + '\n'.join(collected)
