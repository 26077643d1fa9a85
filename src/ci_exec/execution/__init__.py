"""Coordination of one remote execution: stream, upload, download, cancel."""
