"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Message operations (content limits, listing page sizes)
- Reaction values
- Draft display titles

Import example:
    from chat.constants import MESSAGE_CONFIG, REACTION_CONFIG
"""

from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits
    MAX_BODY_LENGTH: Final[int] = 10000  # Characters
    MAX_IMAGES_PER_MESSAGE: Final[int] = 10

    # Listing
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 100

    # Thread summary avatar stack
    THREAD_SUMMARY_MAX_IMAGES: Final[int] = 3


# =============================================================================
# Reaction Configuration
# =============================================================================


class REACTION_CONFIG:
    """Configuration for message reactions."""

    # Emoji values can be multi-codepoint sequences (skin tones, ZWJ)
    MAX_VALUE_LENGTH: Final[int] = 32


# =============================================================================
# Draft Configuration
# =============================================================================


class DRAFT_CONFIG:
    """Configuration for draft listings."""

    CHANNEL_TITLE_PREFIX: Final[str] = "# "
    UNTITLED_PLACEHOLDER: Final[str] = "Untitled"

    KIND_CHANNEL: Final[str] = "channel"
    KIND_CONVERSATION: Final[str] = "conversation"
    KIND_THREAD: Final[str] = "thread"
    KIND_UNKNOWN: Final[str] = "unknown"
