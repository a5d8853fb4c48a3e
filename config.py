"""
Configuration constants for MediaContextXtractor
"""

# Logging
LOGS_DIR = "logs"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Tag detection limits (ReDoS guards)
MAX_INPUT_LENGTH = 100000
MAX_ATTRIBUTE_LENGTH = 1000
MAX_CONTAINER_ATTRIBUTE_LENGTH = 500
MAX_CONTAINER_SPAN = 50000
SEARCH_TIMEOUT_MS = 5000

# Structural context extraction
MAX_PARENT_LEVELS = 3
MAX_SIBLINGS = 3
MIN_CONTEXT_LENGTH = 50

# Selections shorter than this (after trimming) are treated as a bare cursor
MIN_SELECTION_LENGTH = 5

# Context range presets in characters
CONTEXT_RANGE_VALUES = {
    'narrow': 500,
    'standard': 1500,
    'wide': 3000,
    'very-wide': 5000,
    'default': 1500,
}

SOURCE_EXTENSIONS = ('.html', '.htm', '.jsx', '.tsx', '.vue', '.astro')


def get_context_range_value(name: str) -> int:
    """
    Convert a context range preset name to a character count

    Args:
        name: Preset name (narrow, standard, wide, very-wide)

    Returns:
        Number of characters; unknown names map to the default preset
    """
    return CONTEXT_RANGE_VALUES.get(name, CONTEXT_RANGE_VALUES['default'])
