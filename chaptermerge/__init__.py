"""
Chapter Merge: batch video-to-audio conversion with chaptered folder merges.

The package walks a directory tree, converts every video file it finds to an
MP3 next to the source, and, when a folder ends up with more than one MP3,
concatenates them into a single file named after the folder whose chapters
mirror the original files.

Layers:
    config: static settings and the optional `config.user.yaml` overrides.
    domain: media models, chapter/job/result data structures and exceptions.
    services: the ffmpeg transcoder and the per-folder converter, chapter
              planner, merger and report logs.
    pipeline: the tree walker that fans folders out over a worker pool.
    utils: command execution, formatting helpers and ffmpeg verification.
"""

__version__ = "1.0.0"
