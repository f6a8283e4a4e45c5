"""
Command-line interface for shelf management.
"""
