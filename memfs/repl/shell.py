"""Interactive REPL shell for the in-memory file system."""

import logging
import shlex
from pathlib import Path
from typing import List, Optional, Set, Tuple

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import FileHistory, InMemoryHistory
from prompt_toolkit.styles import Style
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from memfs.config import ShellConfig
from memfs.decorators import handle_fs_errors
from memfs.vfs import (
    DirectoryNode,
    FSError,
    InvalidArgumentError,
    LinkHealth,
    MemoryFS,
    Node,
    SymlinkNode,
)

logger = logging.getLogger(__name__)


class PathCompleter(Completer):
    """Tab completion for file system paths."""

    def __init__(self, fs: MemoryFS):
        self.fs = fs

    def get_completions(self, document, complete_event):
        """Get path completion candidates."""
        text = document.text_before_cursor
        words = text.split()

        # Only complete arguments, never the command itself
        if len(words) > 1 and not text.endswith(" "):
            partial = words[-1]
        elif words and text.endswith(" "):
            partial = ""
        else:
            return

        for candidate in self.fs.complete(partial):
            yield Completion(candidate, start_position=-len(partial))


class FSShell:
    """Interactive shell over a MemoryFS session.

    Provides a Unix-like shell interface with commands:
    - format, touch, mkdir, rmdir, rm, mv: Build and reshape the tree
    - cd, pwd, ls, tree, stat: Navigate and inspect
    - cat, chmod, ln: Content, permissions and links
    - open, read, write, seek, close, fds: Descriptor I/O
    - fsck: Count entries and check consistency
    - help, ?, man: Help
    - exit, quit: Exit the shell
    """

    def __init__(
        self,
        fs: Optional[MemoryFS] = None,
        config: Optional[ShellConfig] = None,
        console: Optional[Console] = None,
    ):
        """Initialize the REPL shell.

        Args:
            fs: File system session (a fresh one if omitted)
            config: Prompt, history and color settings
            console: Output console (stdout if omitted)
        """
        self.config = config or ShellConfig()
        self.fs = fs or MemoryFS()
        self.console = console or Console(no_color=not self.config.color)
        self.running = True
        self.last_error: Optional[FSError] = None
        self.session: Optional[PromptSession] = None

        # Command registry
        self.commands = {
            "format": self.cmd_format,
            "mkfs": self.cmd_format,
            "touch": self.cmd_touch,
            "mkdir": self.cmd_mkdir,
            "rmdir": self.cmd_rmdir,
            "cd": self.cmd_cd,
            "pwd": self.cmd_pwd,
            "ls": self.cmd_ls,
            "cat": self.cmd_cat,
            "chmod": self.cmd_chmod,
            "ln": self.cmd_ln,
            "rm": self.cmd_rm,
            "mv": self.cmd_mv,
            "tree": self.cmd_tree,
            "fsck": self.cmd_fsck,
            "stat": self.cmd_stat,
            "open": self.cmd_open,
            "read": self.cmd_read,
            "write": self.cmd_write,
            "seek": self.cmd_seek,
            "close": self.cmd_close,
            "fds": self.cmd_fds,
            "help": self.cmd_help,
            "?": self.cmd_help,
            "man": self.cmd_help,
            "exit": self.cmd_exit,
            "quit": self.cmd_quit,
        }

    def get_prompt(self) -> str:
        """Generate prompt showing current path.

        Returns:
            Prompt string like "memfs:/docs $ "
        """
        return f"{self.config.prompt}:{self.fs.pwd()} $ "

    def _create_session(self) -> PromptSession:
        if self.config.history_file:
            history = FileHistory(str(Path(self.config.history_file).expanduser()))
        else:
            history = InMemoryHistory()
        return PromptSession(
            history=history,
            completer=PathCompleter(self.fs),
            style=Style.from_dict(
                {
                    "prompt": "ansicyan bold",
                }
            ),
        )

    def run(self):
        """Run the shell main loop."""
        self.session = self._create_session()
        self.console.print(
            "[bold cyan]memfs shell[/bold cyan] - In-memory file system", style="bold"
        )
        self.console.print("Type 'help' for available commands, 'exit' to quit.\n")

        while self.running:
            try:
                line = self.session.prompt(self.get_prompt())
                line = line.strip()

                if not line:
                    continue

                self.execute(line)

            except KeyboardInterrupt:
                self.console.print("\nUse 'exit' or 'quit' to exit the shell.")
                continue
            except EOFError:
                break

        self.cleanup()

    def execute(self, line: str) -> Optional[str]:
        """Parse and execute a command line.

        Args:
            line: Command line to execute

        Returns:
            The command's plain-text output, or None
        """
        self.last_error = None
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self.last_error = InvalidArgumentError(line, f"Parse error ({e})")
            self.console.print(f"[red]Parse error:[/red] {escape(str(e))}")
            return None

        if not parts:
            return None

        cmd, args = parts[0], parts[1:]
        if cmd not in self.commands:
            self.last_error = InvalidArgumentError(cmd, "Unknown command")
            self.console.print(
                f"[red]Unknown command:[/red] {escape(cmd)}. Type 'help' for available commands."
            )
            return None

        logger.debug(f"Executing {cmd} {args}")
        return self.commands[cmd](args)

    # Command implementations

    @handle_fs_errors
    def cmd_format(self, args: List[str]) -> Optional[str]:
        """Reset the file system to an empty root.

        Usage: format
        """
        self.fs.format()
        self.console.print("[green]File system formatted[/green]")
        return None

    @handle_fs_errors
    def cmd_touch(self, args: List[str]) -> Optional[str]:
        """Create empty files.

        Usage: touch <path> [path ...]
        """
        _require(args, 1, "touch <path> [path ...]")
        for path in args:
            self.fs.touch(path)
        return None

    @handle_fs_errors
    def cmd_mkdir(self, args: List[str]) -> Optional[str]:
        """Create directories.

        Usage: mkdir [-p] <path> [path ...]
        Options:
            -p: Create missing parent directories
        """
        flags, paths = _split_flags(args, "p")
        _require(paths, 1, "mkdir [-p] <path> [path ...]")
        for path in paths:
            self.fs.mkdir(path, parents="p" in flags)
        return None

    @handle_fs_errors
    def cmd_rmdir(self, args: List[str]) -> Optional[str]:
        """Remove empty directories.

        Usage: rmdir <path> [path ...]
        """
        _require(args, 1, "rmdir <path> [path ...]")
        for path in args:
            self.fs.rmdir(path)
        return None

    @handle_fs_errors
    def cmd_cd(self, args: List[str]) -> Optional[str]:
        """Change directory.

        Usage: cd [path]

        With no argument, returns to /.
        """
        self.fs.cd(args[0] if args else "/")
        return None

    @handle_fs_errors
    def cmd_pwd(self, args: List[str]) -> Optional[str]:
        """Print working directory.

        Usage: pwd
        """
        path = self.fs.pwd()
        self.console.print(path, markup=False, highlight=False)
        return path

    @handle_fs_errors
    def cmd_ls(self, args: List[str]) -> Optional[str]:
        """List directory contents.

        Usage: ls [-l] [-i] [path]
        Options:
            -l: Long listing (mode, links, size, modified)
            -i: Show inode numbers
        """
        flags, paths = _split_flags(args, "li")
        nodes = sorted(self.fs.ls(paths[0] if paths else "."), key=lambda n: n.name)
        long_format = "l" in flags
        show_inode = "i" in flags

        output_lines = []
        if long_format:
            table = Table(show_header=True, header_style="bold magenta", box=None)
            if show_inode:
                table.add_column("Inode", style="dim", justify="right")
            table.add_column("Mode", style="cyan")
            table.add_column("Links", justify="right")
            table.add_column("Size", justify="right")
            table.add_column("Modified", style="dim")
            table.add_column("Name")

            for node in nodes:
                modified = node.modified.strftime("%Y-%m-%d %H:%M")
                row = [
                    node.mode_string,
                    str(node.link_count),
                    str(node.size),
                    modified,
                    self._styled_name(node, with_target=True),
                ]
                if show_inode:
                    row.insert(0, str(node.inode))
                table.add_row(*row)

                line = (
                    f"{node.mode_string} {node.link_count:>2} {node.size:>6} "
                    f"{modified} {_display_name(node, with_target=True)}"
                )
                output_lines.append(f"{node.inode:>5} {line}" if show_inode else line)

            if nodes:
                self.console.print(table)
        else:
            for node in nodes:
                line = _display_name(node)
                styled = self._styled_name(node)
                if show_inode:
                    line = f"{node.inode:>5} {line}"
                    styled = f"[dim]{node.inode:>5}[/dim] {styled}"
                output_lines.append(line)
                self.console.print(styled, highlight=False)

        return "\n".join(output_lines)

    @handle_fs_errors
    def cmd_cat(self, args: List[str]) -> Optional[str]:
        """Print file content, following symbolic links.

        Usage: cat <path>
        """
        _require(args, 1, "cat <path>")
        content = self.fs.cat(args[0]).decode("utf-8", errors="replace")
        self.console.print(content, markup=False, highlight=False)
        return content

    @handle_fs_errors
    def cmd_chmod(self, args: List[str]) -> Optional[str]:
        """Set the permission mask (read=4, write=2, execute=1).

        Usage: chmod <mode 0-7> <path>

        Symbolic links cannot be chmod'ed; target the file instead.
        """
        _require(args, 2, "chmod <mode 0-7> <path>")
        mode = _parse_int(args[0], "mode")
        self.fs.chmod(mode, args[1])
        return None

    @handle_fs_errors
    def cmd_ln(self, args: List[str]) -> Optional[str]:
        """Create a hard link, or a symbolic link with -s.

        Usage: ln [-s] <source> <dest>

        Examples:
            ln notes notes-alias     - Hard link (shares content and inode)
            ln -s /docs/notes latest - Symbolic link (resolved on each access)
        """
        flags, paths = _split_flags(args, "s")
        _require(paths, 2, "ln [-s] <source> <dest>")
        self.fs.ln(paths[0], paths[1], symbolic="s" in flags)
        return None

    @handle_fs_errors
    def cmd_rm(self, args: List[str]) -> Optional[str]:
        """Remove files, links or empty directories.

        Usage: rm [-r] <path> [path ...]
        Options:
            -r: Recursively remove a directory and its contents
        """
        flags, paths = _split_flags(args, "r")
        _require(paths, 1, "rm [-r] <path> [path ...]")
        for path in paths:
            self.fs.rm(path, recursive="r" in flags)
        return None

    @handle_fs_errors
    def cmd_mv(self, args: List[str]) -> Optional[str]:
        """Move or rename an entry.

        Usage: mv <source> <dest>

        If dest is an existing directory the entry moves into it.
        An existing file at dest is never overwritten.
        """
        _require(args, 2, "mv <source> <dest>")
        self.fs.mv(args[0], args[1])
        return None

    @handle_fs_errors
    def cmd_tree(self, args: List[str]) -> Optional[str]:
        """Display the directory tree.

        Usage: tree [-i] [path]
        Options:
            -i: Show inode numbers
        """
        flags, paths = _split_flags(args, "i")
        start = self.fs.tree(paths[0] if paths else ".")
        show_inode = "i" in flags
        lines: List[str] = []
        counts = {"directories": 0, "files": 0}

        def label(node: Node) -> str:
            text = _display_name(node, with_target=True)
            return f"[{node.inode}] {text}" if show_inode else text

        root_label = start.get_path()
        if show_inode:
            root_label = f"[{start.inode}] {root_label}"
        lines.append(root_label)
        self.console.print(f"[bold blue]{escape(root_label)}[/bold blue]")

        # (node, prefix, is_last); children pushed in reverse so they pop sorted
        stack = [
            (child, "", i == 0)
            for i, child in enumerate(sorted(start.list_children(), key=lambda c: c.name, reverse=True))
        ]
        while stack:
            node, prefix, is_last = stack.pop()
            connector = "└── " if is_last else "├── "
            lines.append(f"{prefix}{connector}{label(node)}")
            self.console.print(f"{prefix}{connector}{self._styled_name(node, with_target=True)}", highlight=False)

            if isinstance(node, DirectoryNode):
                counts["directories"] += 1
                extension = "    " if is_last else "│   "
                children = sorted(node.list_children(), key=lambda c: c.name, reverse=True)
                stack.extend(
                    (child, prefix + extension, i == 0) for i, child in enumerate(children)
                )
            else:
                counts["files"] += 1

        self.console.print(
            f"\n[dim]{counts['directories']} directories, {counts['files']} files[/dim]"
        )
        return "\n".join(lines)

    @handle_fs_errors
    def cmd_fsck(self, args: List[str]) -> Optional[str]:
        """Count files and directories and check consistency.

        Usage: fsck
        """
        report = self.fs.fsck()
        summary = (
            f"{report.files} files, {report.directories} directories, "
            f"{report.symlinks} symbolic links ({report.dangling_links} dangling)"
        )
        self.console.print(summary)
        for problem in report.problems:
            self.console.print(f"[yellow]  ! {escape(problem)}[/yellow]")
        if report.clean:
            self.console.print("[green]✓ File system is consistent[/green]")
        return "\n".join([summary] + report.problems)

    @handle_fs_errors
    def cmd_stat(self, args: List[str]) -> Optional[str]:
        """Show entry metadata (does not follow a final symbolic link).

        Usage: stat <path>
        """
        _require(args, 1, "stat <path>")
        info = self.fs.stat(args[0])

        table = Table(show_header=False, box=None)
        table.add_column("Field", style="cyan")
        table.add_column("Value")

        output_lines = []
        for key in ("path", "type", "inode", "mode", "links", "size",
                    "created", "modified", "target", "health", "children_count"):
            if key not in info:
                continue
            value = info[key]
            if hasattr(value, "strftime"):
                value = value.strftime("%Y-%m-%d %H:%M:%S")
            table.add_row(key, escape(str(value)))
            output_lines.append(f"{key}: {value}")

        self.console.print(table)
        return "\n".join(output_lines)

    @handle_fs_errors
    def cmd_open(self, args: List[str]) -> Optional[str]:
        """Open a file and print its descriptor.

        Usage: open <path> [r|w|rw]
        """
        _require(args, 1, "open <path> [r|w|rw]")
        fd = self.fs.open(args[0], args[1] if len(args) > 1 else "r")
        self.console.print(str(fd))
        return str(fd)

    @handle_fs_errors
    def cmd_read(self, args: List[str]) -> Optional[str]:
        """Read from an open descriptor.

        Usage: read <fd> [count]

        Without a count, reads to the end of the file.
        """
        _require(args, 1, "read <fd> [count]")
        fd = _parse_int(args[0], "descriptor")
        count = _parse_int(args[1], "count") if len(args) > 1 else None
        text = self.fs.read(fd, count).decode("utf-8", errors="replace")
        self.console.print(text, markup=False, highlight=False)
        return text

    @handle_fs_errors
    def cmd_write(self, args: List[str]) -> Optional[str]:
        """Write text to a descriptor or a file.

        Usage: write <fd|path> <text...>

        With a path, the file is opened for writing, written from
        offset 0 (existing bytes past the text are kept) and closed.
        """
        _require(args, 2, "write <fd|path> <text...>")
        target = args[0]
        data = " ".join(args[1:]).encode("utf-8")

        if target.isdigit() and int(target) in self.fs.files:
            written = self.fs.write(int(target), data)
        else:
            written = self.fs.write_file(target, data)

        message = f"{written} bytes written"
        self.console.print(f"[dim]{message}[/dim]")
        return message

    @handle_fs_errors
    def cmd_seek(self, args: List[str]) -> Optional[str]:
        """Set a descriptor's offset.

        Usage: seek <fd> <offset>
        """
        _require(args, 2, "seek <fd> <offset>")
        self.fs.seek(_parse_int(args[0], "descriptor"), _parse_int(args[1], "offset"))
        return None

    @handle_fs_errors
    def cmd_close(self, args: List[str]) -> Optional[str]:
        """Close a descriptor.

        Usage: close <fd>
        """
        _require(args, 1, "close <fd>")
        self.fs.close(_parse_int(args[0], "descriptor"))
        return None

    @handle_fs_errors
    def cmd_fds(self, args: List[str]) -> Optional[str]:
        """List open descriptors.

        Usage: fds
        """
        handles = self.fs.descriptors()
        if not handles:
            self.console.print("[dim]No open descriptors[/dim]")
            return ""

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("FD", style="cyan", justify="right")
        table.add_column("Mode")
        table.add_column("Offset", justify="right")
        table.add_column("Path")

        output_lines = []
        for handle in handles:
            table.add_row(str(handle.fd), handle.mode.value, str(handle.offset), escape(handle.path))
            output_lines.append(f"{handle.fd}\t{handle.mode.value}\t{handle.offset}\t{handle.path}")

        self.console.print(table)
        return "\n".join(output_lines)

    def cmd_help(self, args: List[str]) -> Optional[str]:
        """Show help information.

        Usage: help [command]
        """
        if args:
            # Show help for specific command
            cmd = args[0]
            if cmd in self.commands:
                func = self.commands[cmd]
                self.console.print(f"[bold]{escape(cmd)}[/bold]")
                self.console.print(escape(func.__doc__ or "No documentation available."))
            else:
                self.console.print(f"[red]Unknown command:[/red] {escape(cmd)}")
            return None

        self.console.print("[bold cyan]Available Commands:[/bold cyan]\n")

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Command", style="cyan")
        table.add_column("Description", style="white")

        for usage, description in HELP_ROWS:
            table.add_row(escape(usage), description)

        self.console.print(table)

        self.console.print("\n[bold cyan]Permissions:[/bold cyan]")
        self.console.print("  read=4, write=2, execute=1; files default to 6, directories to 7")
        self.console.print("\n[bold cyan]Links:[/bold cyan]")
        self.console.print("  Hard links share content and inode; removing one keeps the others")
        self.console.print("  Symbolic links store a path and turn dead when the target is removed")
        return None

    def cmd_exit(self, args: List[str]) -> Optional[str]:
        """Exit the shell.

        Usage: exit
        """
        self.running = False
        self.console.print("[cyan]Goodbye![/cyan]")
        return None

    def cmd_quit(self, args: List[str]) -> Optional[str]:
        """Quit the shell.

        Usage: quit
        """
        return self.cmd_exit(args)

    def _styled_name(self, node: Node, with_target: bool = False) -> str:
        """Rich markup for a node name, colored by type."""
        if isinstance(node, DirectoryNode):
            return f"[bold blue]{escape(node.name)}/[/bold blue]"
        if isinstance(node, SymlinkNode):
            style = "red" if node.health is LinkHealth.DEAD else "cyan"
            text = escape(_display_name(node, with_target=with_target))
            return f"[{style}]{text}[/{style}]"
        return escape(node.name)

    def cleanup(self):
        """Close descriptors left open at shutdown."""
        for handle in self.fs.descriptors():
            self.fs.close(handle.fd)


HELP_ROWS: List[Tuple[str, str]] = [
    ("format | mkfs", "Reset to an empty file system"),
    ("touch <path>", "Create an empty file"),
    ("mkdir [-p] <path>", "Create a directory"),
    ("rmdir <path>", "Remove an empty directory"),
    ("cd [path]", "Change directory"),
    ("pwd", "Print working directory"),
    ("ls [-l] [-i] [path]", "List directory contents"),
    ("cat <path>", "Print file content"),
    ("chmod <mode> <path>", "Set permissions (0-7)"),
    ("ln [-s] <src> <dest>", "Create a hard or symbolic link"),
    ("rm [-r] <path>", "Remove a file, link or directory"),
    ("mv <src> <dest>", "Move or rename"),
    ("tree [-i] [path]", "Show the directory tree"),
    ("fsck", "Count entries and check consistency"),
    ("stat <path>", "Show entry metadata"),
    ("open <path> [r|w|rw]", "Open a file, print its descriptor"),
    ("read <fd> [n]", "Read from a descriptor"),
    ("write <fd|path> <text>", "Write to a descriptor or file"),
    ("seek <fd> <offset>", "Move a descriptor's offset"),
    ("close <fd>", "Close a descriptor"),
    ("fds", "List open descriptors"),
    ("help [cmd]", "Show help"),
    ("exit, quit", "Exit the shell"),
]


def _display_name(node: Node, with_target: bool = False) -> str:
    """Plain name with a type suffix, e.g. "docs/" or "latest -> /a"."""
    if isinstance(node, DirectoryNode):
        return f"{node.name}/"
    if isinstance(node, SymlinkNode):
        if not with_target:
            return f"{node.name}@"
        text = f"{node.name} -> {node.target_path}"
        if node.health is LinkHealth.DEAD:
            text += " (dead)"
        return text
    return node.name


def _split_flags(args: List[str], allowed: str) -> Tuple[Set[str], List[str]]:
    """Separate single-letter flags (combinable, e.g. -li) from operands."""
    flags: Set[str] = set()
    operands = []
    for arg in args:
        if arg.startswith("-") and len(arg) > 1 and not arg[1:].isdigit():
            for flag in arg[1:]:
                if flag not in allowed:
                    raise InvalidArgumentError(f"-{flag}", "Unknown option")
                flags.add(flag)
        else:
            operands.append(arg)
    return flags, operands


def _require(args: List[str], count: int, usage: str) -> None:
    if len(args) < count:
        raise InvalidArgumentError(message=f"usage: {usage}")


def _parse_int(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise InvalidArgumentError(value, f"Invalid {what}")
