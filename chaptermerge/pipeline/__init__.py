"""
This package contains the processing pipeline of the Chapter Merge application.

The pipeline discovers every directory of the tree, runs the convert, plan and
merge stages for each one on a bounded worker pool, and collects the per-folder
reports.
"""
