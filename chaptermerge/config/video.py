"""
Configuration settings related to video sources.

This module defines which files in a folder are treated as videos to convert.
"""

# --- General Video Settings ---
# Compared against the lowercased suffix, so "Clip.MP4" qualifies.
VIDEO_EXTENSIONS = (".mp4", ".mkv", ".avi", ".mov", ".webm")
