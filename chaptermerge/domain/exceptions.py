"""
Defines custom exception types for the Chapter Merge application.

Each exception matches the smallest scope a failure affects, so callers can
catch exactly what they are able to recover from: a single file's conversion,
a folder's chapter plan or merge, or the run as a whole.

All custom exceptions inherit from the base `ChapterMergeException`.
"""


class ChapterMergeException(Exception):
    """Base class for all custom exceptions in the Chapter Merge application."""

    pass


class InvalidRootException(ChapterMergeException):
    """
    Raised when the directory given as the root of the walk does not exist.

    This is the only fatal error: it is raised before any folder is touched and
    turns into a non-zero exit status.
    """

    pass


# --- Transcoder Specific Exceptions ---
class TranscoderException(ChapterMergeException):
    """Base class for failures reported by a transcoder implementation."""

    pass


class ConversionFailureException(TranscoderException):
    """
    Raised when a single video could not be converted to audio.

    Recovered by the folder converter: the file is reported as failed and the
    remaining files of the folder are still converted.
    """

    pass


class ProbeFailureException(TranscoderException):
    """
    Raised when the duration of an audio track cannot be determined.

    A chapter plan with a missing duration would place every following chapter
    at the wrong offset, so the folder's merge is abandoned.
    """

    pass


class MergeFailureException(TranscoderException):
    """
    Raised when concatenating a folder's tracks into the merged file fails.

    The merger removes its scratch files and leaves every track in place.
    """

    pass
