"""
Configuration — Organizations, repositories and branch exclusions.
"""
