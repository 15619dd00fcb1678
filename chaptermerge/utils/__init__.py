"""
Utilities Package for the Chapter Merge Application.

This package contains helper modules that support the services without being
specific to any stage of the pipeline.

Modules:
    - ffmpeg_utils.py: Runs external commands (ffmpeg) with structured argument
      lists, logging and optional error-log records.
    - format_utils.py: Formats durations, chapter offsets and file sizes for logs.
    - module_updater.py: Locates and verifies the ffmpeg and ffprobe executables.
"""
