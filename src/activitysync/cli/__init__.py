"""
Command-line interface for activitysync.
"""
