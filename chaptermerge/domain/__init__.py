"""
This package contains the core domain models of the Chapter Merge application.

The domain layer describes the files and results the pipeline works with,
independent of ffmpeg, the filesystem walk and the command line. Keeping these
models free of side effects lets the chapter fold and the outcome
bookkeeping be tested without any media files.

Modules:
    exceptions.py: Custom exception types for each failure scope (invalid root,
                   single-file conversion, duration probe, merge).
    media.py: `MediaFile` (a discovered video) and `AudioTrack` (its converted
              audio, with a lazily probed, cached duration).
    models.py: `ChapterEntry`, `FolderJob`, `MergeResult` and the per-file and
               per-folder outcome records used for reporting.
"""
