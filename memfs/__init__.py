"""
memfs - An in-memory Unix-like file system with an interactive shell.

Main API:
    from memfs import MemoryFS

    fs = MemoryFS()
    fs.mkdir("docs")
    fs.touch("docs/notes")
    fs.write_file("docs/notes", b"hello")

    # Hard links share content, symbolic links store a path
    fs.ln("docs/notes", "notes-alias")
    fs.ln("/docs/notes", "latest", symbolic=True)

    fs.cat("latest")        # b'hello'
"""

from .vfs import MemoryFS

__version__ = "0.1.0"
__all__ = ["MemoryFS"]
