"""
Configuration settings related to audio output.

This module defines the audio format every video is converted to, the encoder
parameters used for conversion, and the metadata settings used when the
per-file tracks of a folder are merged into one chaptered file.
"""

# ======================================================================================
# Audio File Identification
# ======================================================================================

# The extension of converted tracks and of the merged folder file. Files with
# this extension in a folder are the tracks considered for merging.
AUDIO_EXTENSION = ".mp3"

# The container format name passed to the transcoder's convert operation.
AUDIO_FORMAT = AUDIO_EXTENSION.lstrip(".")


# ======================================================================================
# Audio Encoding Parameters
# ======================================================================================

# LAME MP3 encoder.
DEFAULT_AUDIO_ENCODER = "libmp3lame"

# Variable bitrate quality for LAME (0 is the best quality, 9 the smallest).
AUDIO_QUALITY_SCALE = 0

# ffmpeg -threads value. 0 lets ffmpeg choose the thread count.
FFMPEG_THREADS = 0

# ffmpeg -loglevel used for all transcoder calls.
FFMPEG_LOG_LEVEL = "warning"


# ======================================================================================
# Merge / Chapter Metadata Settings
# ======================================================================================

# Chapter offsets are written in milliseconds.
CHAPTER_TIMEBASE = "1/1000"

# ID3v2.3 is the version most players read chapter frames from.
ID3V2_VERSION = 3

# Header line required by ffmpeg's ffmetadata demuxer.
FFMETADATA_HEADER = ";FFMETADATA1"
