"""
Sync Engine — Mirror branches and tags across organizations.

This package provides repository bootstrap, per-remote fetching, the
per-branch merge/push state machine, and abandoned branch analysis.
"""
