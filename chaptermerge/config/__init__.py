"""
Configuration Package for Chapter Merge.

This package centralizes the static configuration settings for the application.
Keeping the parameters here lets the ffmpeg arguments, file-type sets and
scratch file naming be adjusted without touching the pipeline code.

This package includes settings for:
- Video file types eligible for conversion.
- Audio output format and encoding parameters for conversion and merging.
- Common application settings like logging format, worker count, scratch file
  names and outcome status constants.
- User-overridable paths for external tools like FFmpeg.
"""
