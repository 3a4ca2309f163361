"""
Package version information.

Version format: MAJOR.MINOR
- MAJOR: Breaking changes to the store contract (0 while pre-release)
- MINOR: Incremented with each merged change

Version is logged when the application store is bootstrapped.
"""

__version__ = "0.1"
