"""
CLI Package

Command-line entry point.
"""
