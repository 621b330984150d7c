"""REPL shell for interactive file system sessions.

This module provides an interactive shell for creating, navigating and
linking entries of the in-memory file system.
"""

from memfs.repl.shell import FSShell

__all__ = ["FSShell"]
