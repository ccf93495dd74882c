"""Processing mode value object."""

from enum import Enum


class ProcessingMode(str, Enum):
    """How an upload is driven through the processing provider."""

    SYNCHRONOUS = "synchronous"  # Intake request waits, bounded by a deadline
    ASYNCHRONOUS = "asynchronous"  # Intake returns at once, callbacks finish it
