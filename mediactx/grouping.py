"""
Context grouping - shares one context extraction between nearby media tags
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .context_extractor import ContextExtractor
from .errors import ScanCancelledError
from .locator import TagMatch

logger = logging.getLogger('MediaContext.grouping')


@dataclass
class ContextGroup:
    """Tags close enough to share surrounding text"""
    group_id: int
    members: List[TagMatch] = field(default_factory=list)
    start: int = 0
    end: int = 0
    cached_context: Optional[str] = None


class ContextCache:
    """Per-batch cache of surrounding text, keyed by exact tag range"""

    def __init__(self, text: str, context_range: int, extractor: Optional[ContextExtractor] = None):
        """
        Initialize ContextCache

        Args:
            text: Full document text the tags were located in
            context_range: Proximity threshold and extraction budget in characters
            extractor: Object providing extract_context(text, start, end, budget)
        """
        self.text = text
        self.context_range = context_range
        self.extractor = extractor or ContextExtractor()
        self.groups: Dict[int, ContextGroup] = {}
        self.tag_to_group: Dict[Tuple[int, int], int] = {}

    def analyze_tags(self, tags: Iterable[TagMatch]) -> None:
        """
        Group tags by proximity

        A tag joins the current group when the gap between the group's
        furthest end and the tag's start is within context_range. Membership
        chains: the first and last members of a group may be far apart.

        Args:
            tags: Located tags, in any order
        """
        current: Optional[ContextGroup] = None
        for tag in sorted(tags, key=lambda t: t.start):
            if current is not None and tag.start - current.end <= self.context_range:
                current.members.append(tag)
                current.end = max(current.end, tag.end)
            else:
                current = ContextGroup(group_id=len(self.groups), members=[tag],
                                       start=tag.start, end=tag.end)
                self.groups[current.group_id] = current
            self.tag_to_group[tag.range] = current.group_id

    def pre_extract_context(self, cancel_event=None) -> None:
        """
        Extract surrounding text once per group

        The first member's range stands in for the whole group.

        Raises:
            ScanCancelledError: If cancel_event is set before a group starts
        """
        for group in self.groups.values():
            if cancel_event is not None and cancel_event.is_set():
                raise ScanCancelledError()
            first = group.members[0]
            group.cached_context = self.extractor.extract_context(
                self.text, first.start, first.end, self.context_range
            )

    def get_surrounding_text(self, start: int, end: int) -> Optional[str]:
        """Cached context for a tag range, or None if the tag was not analyzed"""
        group_id = self.tag_to_group.get((start, end))
        if group_id is None:
            return None
        return self.groups[group_id].cached_context

    def get_group_id(self, start: int, end: int) -> Optional[int]:
        return self.tag_to_group.get((start, end))

    def get_stats(self) -> Dict[str, float]:
        """
        Get statistics about grouping efficiency

        Returns:
            Dictionary with total_tags, total_groups, average_group_size
            and extractions_saved
        """
        total_tags = len(self.tag_to_group)
        total_groups = len(self.groups)
        return {
            'total_tags': total_tags,
            'total_groups': total_groups,
            'average_group_size': total_tags / total_groups if total_groups else 0.0,
            'extractions_saved': total_tags - total_groups,
        }

    def clear(self) -> None:
        self.groups.clear()
        self.tag_to_group.clear()


def build_context_cache(text: str, tags: List[TagMatch], context_range: int,
                        context_enabled: bool = True, cancel_event=None,
                        extractor: Optional[ContextExtractor] = None) -> Optional[ContextCache]:
    """
    Create and fill a context cache for a batch of tags

    Args:
        text: Full document text
        tags: Tags located in the text
        context_range: Proximity threshold and extraction budget
        context_enabled: When False no cache is built
        cancel_event: Optional object with is_set(), checked per group
        extractor: Context extractor to use (a default one if omitted)

    Returns:
        Filled ContextCache, or None if context is disabled or there are no tags
    """
    if not context_enabled or not tags:
        return None

    cache = ContextCache(text, context_range, extractor)
    cache.analyze_tags(tags)
    cache.pre_extract_context(cancel_event)

    stats = cache.get_stats()
    logger.debug(f"Grouped {stats['total_tags']} tags into {stats['total_groups']} groups")
    logger.debug(f"Saved {stats['extractions_saved']} context extractions "
                 f"({stats['extractions_saved'] / stats['total_tags'] * 100:.1f}% reduction)")
    return cache


def lookup_context(cache: Optional[ContextCache], tag_range: Tuple[int, int]) -> Optional[str]:
    """
    Look up the cached context for a tag range

    Args:
        cache: Cache from build_context_cache (may be None)
        tag_range: (start, end) of the tag

    Returns:
        Cached context string, or None if the tag was not in the batch
    """
    if cache is None:
        return None
    return cache.get_surrounding_text(*tag_range)
