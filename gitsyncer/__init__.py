"""
gitsyncer — Keep a git repository mirrored across many hosting organizations.
"""

__version__ = "0.1.0"
