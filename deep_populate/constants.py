"""Shared constants for deep population."""

# Path syntax
PATH_SEPARATOR = "."
PATH_DELIMITER_PATTERN = r"[\s,]+"

# Level returned for an empty path set
NO_LEVELS = -1

# Reference store
DEFAULT_ID_FIELD = "id"

# Logging
DEFAULT_LOG_FORMAT = "json"
DEFAULT_LOG_LEVEL = "INFO"

# Environment overrides
ENV_LOG_LEVEL = "DEEP_POPULATE_LOG_LEVEL"
ENV_LOG_FORMAT = "DEEP_POPULATE_LOG_FORMAT"
ENV_LEAN = "DEEP_POPULATE_LEAN"
ENV_TRUE_VALUES = ("true", "1", "yes")
