"""
Services Package for the Chapter Merge Application.

This package contains the service layer: classes that each perform one stage
of the per-folder work and are coordinated by the tree walker pipeline.

- **Transcoder (`Transcoder`, `FFmpegTranscoder`):**
  The contract for converting, probing and concatenating media, and its ffmpeg
  implementation. Every other service talks to ffmpeg only through it.

- **Folder Converter (`FolderConverter`):**
  Converts the videos of one folder to MP3, skipping those already converted
  and isolating per-file failures.

- **Chapter Planner (`ChapterPlanner`):**
  Lists a folder's tracks, probes their durations and folds them into chapters.

- **Merger (`Merger`):**
  Concatenates the planned tracks into one chaptered file and cleans up the
  scratch files and, on success, the per-file tracks.

- **Logging Service (`ErrorLog`, `ReportLog`):**
  Plain-text error records and the YAML run report, separate from the
  real-time console logging.
"""
