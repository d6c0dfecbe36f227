"""
In-memory search and tag filtering over a loaded catalog.
"""

from typing import Iterable, List

from schemas import ContentItem

ALL_TAGS = "All"


def tag_universe(items: Iterable[ContentItem]) -> List[str]:
    """``"All"`` followed by every distinct tag in first-seen order."""
    tags = [ALL_TAGS]
    seen = {ALL_TAGS}
    for item in items:
        for tag in item.tags:
            if tag not in seen:
                seen.add(tag)
                tags.append(tag)
    return tags


def matches(item: ContentItem, search_term: str = "", selected_tag: str = ALL_TAGS) -> bool:
    term = search_term.lower()
    matches_search = not term or term in item.title.lower() or term in item.summary.lower()
    matches_tag = selected_tag == ALL_TAGS or selected_tag in item.tags
    return matches_search and matches_tag


def filter_items(
    items: Iterable[ContentItem],
    search_term: str = "",
    selected_tag: str = ALL_TAGS,
) -> List[ContentItem]:
    """Entries matching both the search term and the tag, in catalog order."""
    return [item for item in items if matches(item, search_term, selected_tag)]
