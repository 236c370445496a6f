"""
recjoin - surveillance recording joiner

This package merges the short timestamped segments written by
surveillance cameras into one recording per day (or per month):
- Extracts capture times from the segment file names
- Groups segments into ordered merge jobs
- Drives ffmpeg's concat demuxer with live progress output
- Recovers from unsupported audio codecs, unreadable segments and
  truncated files (via untrunc)

Merged segments are deleted or renamed so that later runs only pick up
new recordings, which are appended to the existing output files.
"""

__version__ = "0.1.0"
