"""
Core Utilities
==============

Git process execution, configuration and debug logging shared by the
shelves package and the CLI.
"""
