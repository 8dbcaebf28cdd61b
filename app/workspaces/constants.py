"""
Constants and configuration for workspaces.

Import example:
    from workspaces.constants import WORKSPACE_CONFIG, CHANNEL_CONFIG
"""

import string
from typing import Final


class WORKSPACE_CONFIG:
    """Configuration for workspace lifecycle."""

    NAME_MIN_LENGTH: Final[int] = 3
    NAME_MAX_LENGTH: Final[int] = 80

    # Join codes are short enough to read out loud
    JOIN_CODE_LENGTH: Final[int] = 6
    JOIN_CODE_ALPHABET: Final[str] = string.digits + string.ascii_lowercase

    # Channel every new workspace starts with
    DEFAULT_CHANNEL_NAME: Final[str] = "general"


class CHANNEL_CONFIG:
    """Configuration for channels."""

    NAME_MIN_LENGTH: Final[int] = 3
    NAME_MAX_LENGTH: Final[int] = 80
