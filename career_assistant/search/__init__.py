"""Job search augmentation for assistant replies.

Responsibilities:
    - Seeding a result set from an inline result or a parameter fetch
    - "Load more" pagination with id deduplication
    - Closing pagination after a short or failed page

Independent of the chat stream; runs alongside it without shared state.
"""

from career_assistant.search.merger import PaginationMerger

__all__ = ["PaginationMerger"]
