import sys
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.traceback import install

from .config import load_config
from .decorators import handle_cli_errors

# Initialize Rich Traceback for better error messages
install(show_locals=True)

# Initialize Rich Console
console = Console()

# Configure logging to use Rich's RichHandler
logging.basicConfig(
    level=logging.INFO,  # Set to INFO by default, DEBUG if verbose
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

# Main app
app = typer.Typer()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
):
    """
    memfs - An in-memory Unix-like file system.

    Build directory trees, link files with hard and symbolic links, and
    read and write through file descriptors, all in memory.
    """
    if verbose or load_config().cli.verbose:
        logging.getLogger("memfs").setLevel(logging.DEBUG)
        if verbose:
            console.print("[bold green]Verbose mode enabled.[/bold green]")


@app.command()
def about():
    """Display information about memfs."""
    from . import __version__

    console.print(f"[bold cyan]memfs {__version__} - In-Memory File System[/bold cyan]")
    console.print("")
    console.print("A Unix-like file system that lives entirely in memory:")
    console.print("  • Directories, regular files and symbolic links")
    console.print("  • Hard links sharing content and inode")
    console.print("  • Symbolic links re-resolved on every access")
    console.print("  • Read/write/execute permission masks")
    console.print("  • File descriptors with per-descriptor offsets")
    console.print("")
    console.print("[bold]Commands:[/bold]")
    console.print("  memfs shell                  Start an interactive session")
    console.print("  memfs run <script>           Run shell commands from a file")
    console.print("  memfs config --show          Show configuration")
    console.print("")
    console.print("[bold]Getting Started:[/bold]")
    console.print("  1. memfs shell")
    console.print("  2. mkdir docs; cd docs; touch notes")
    console.print("  3. write notes hello; cat notes")


# ============================================================================
# Session Commands
# ============================================================================

@app.command()
def shell(
    prompt: Optional[str] = typer.Option(None, "--prompt", help="Override the prompt name"),
    history_file: Optional[str] = typer.Option(None, "--history-file", help="Persist command history to this file"),
):
    """
    Launch interactive shell on a fresh in-memory file system.

    Commands:
        mkdir, touch, rm, mv    - Build the tree
        cd, pwd, ls, tree       - Navigate
        cat, chmod, ln, stat    - Content, permissions and links
        open, read, write, ...  - Descriptor I/O
        help                    - Show help

    Example:
        memfs shell --history-file ~/.memfs_history
    """
    from .repl import FSShell
    from .vfs import MemoryFS

    config = load_config()
    if prompt is not None:
        config.shell.prompt = prompt
    if history_file is not None:
        config.shell.history_file = history_file

    try:
        fs_shell = FSShell(MemoryFS(config.fs), config=config.shell)
        fs_shell.run()
    except OSError as e:
        console.print(f"[red]Error launching shell: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


@app.command()
@handle_cli_errors
def run(
    script: Path = typer.Argument(..., help="File of shell commands, one per line ('-' for stdin)"),
    echo: bool = typer.Option(False, "--echo", "-e", help="Print each command before running it"),
    strict: bool = typer.Option(False, "--strict", help="Stop at the first failing command"),
):
    """
    Run shell commands from a script on a fresh file system.

    Blank lines and lines starting with '#' are skipped. Failing commands
    print an error and the script continues, unless --strict is given.

    Example:
        memfs run setup.fs --echo
    """
    from .repl import FSShell
    from .vfs import MemoryFS

    if str(script) == "-":
        lines = sys.stdin.read().splitlines()
    else:
        lines = Path(script).read_text().splitlines()

    config = load_config()
    fs_shell = FSShell(MemoryFS(config.fs), config=config.shell, console=console)

    failures = 0
    for number, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if echo:
            console.print(f"[dim]{escape(fs_shell.get_prompt())}[/dim]{escape(line)}")

        fs_shell.execute(line)
        if fs_shell.last_error is not None:
            failures += 1
            logger.debug(f"Line {number} failed: {fs_shell.last_error}")
            if strict:
                console.print(f"[red]Stopped at line {number}[/red]")
                raise typer.Exit(code=1)

        if not fs_shell.running:
            break

    fs_shell.cleanup()
    if failures:
        console.print(f"[yellow]{failures} command(s) failed[/yellow]")


@app.command()
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    init: bool = typer.Option(False, "--init", help="Initialize config file with defaults"),
    # File system settings
    set_file_mode: Optional[int] = typer.Option(None, "--file-mode", help="Set default file permissions (0-7)"),
    set_dir_mode: Optional[int] = typer.Option(None, "--dir-mode", help="Set default directory permissions (0-7)"),
    set_max_depth: Optional[int] = typer.Option(None, "--max-symlink-depth", help="Set longest symbolic link chain followed"),
    # Shell settings
    set_prompt: Optional[str] = typer.Option(None, "--prompt", help="Set shell prompt name"),
    set_history_file: Optional[str] = typer.Option(None, "--history-file", help="Set shell history file"),
    set_color: Optional[bool] = typer.Option(None, "--color/--no-color", help="Enable colored shell output"),
    # CLI settings
    set_verbose: Optional[bool] = typer.Option(None, "--cli-verbose/--no-cli-verbose", help="Enable verbose output by default"),
):
    """
    View or edit memfs configuration.

    Configuration is stored at ~/.config/memfs/config.json (or ~/.memfs/config.json).

    Examples:
        # Show current configuration
        memfs config --show

        # Initialize config file with defaults
        memfs config --init

        # Create new files read-only by default
        memfs config --file-mode 4

        # Set multiple values
        memfs config --prompt fs --history-file ~/.memfs_history
    """
    from memfs.config import ensure_config_exists, update_config, get_config_path

    # Handle --init
    if init:
        config_path = ensure_config_exists()
        console.print(f"[green]Configuration initialized at {config_path}[/green]")
        return

    # Check if any settings provided
    has_settings = any([
        set_file_mode is not None, set_dir_mode is not None, set_max_depth is not None,
        set_prompt, set_history_file, set_color is not None, set_verbose is not None,
    ])

    # Handle --show or no args (default to show)
    if show or not has_settings:
        current = load_config()
        config_path = get_config_path()

        console.print(f"\n[bold]memfs Configuration[/bold]")
        console.print(f"[dim]Location: {config_path}[/dim]\n")

        console.print("[bold cyan]File System Settings:[/bold cyan]")
        console.print(f"  File Mode:         {current.fs.default_file_mode}")
        console.print(f"  Directory Mode:    {current.fs.default_dir_mode}")
        console.print(f"  First Descriptor:  {current.fs.first_descriptor}")
        console.print(f"  Max Symlink Depth: {current.fs.max_symlink_depth}")

        console.print("\n[bold cyan]Shell Settings:[/bold cyan]")
        console.print(f"  Prompt:      {escape(current.shell.prompt)}")
        if current.shell.history_file:
            console.print(f"  History:     {escape(current.shell.history_file)}")
        else:
            console.print(f"  History:     [dim]not set[/dim]")
        console.print(f"  Color:       {current.shell.color}")

        console.print("\n[bold cyan]CLI Settings:[/bold cyan]")
        console.print(f"  Verbose:     {current.cli.verbose}")

        console.print(f"\n[dim]Edit with: memfs config --file-mode <mode> --prompt <name> etc.[/dim]")
        console.print(f"[dim]Or edit directly: {config_path}[/dim]\n")
        return

    for label, mode in (("--file-mode", set_file_mode), ("--dir-mode", set_dir_mode)):
        if mode is not None and not 0 <= mode <= 7:
            console.print(f"[red]Error: {label} must be between 0 and 7[/red]")
            raise typer.Exit(code=1)
    if set_max_depth is not None and set_max_depth < 1:
        console.print("[red]Error: --max-symlink-depth must be at least 1[/red]")
        raise typer.Exit(code=1)

    # Handle setting values
    changes = []

    if set_file_mode is not None:
        changes.append(f"File mode: {set_file_mode}")
    if set_dir_mode is not None:
        changes.append(f"Directory mode: {set_dir_mode}")
    if set_max_depth is not None:
        changes.append(f"Max symlink depth: {set_max_depth}")
    if set_prompt is not None:
        changes.append(f"Prompt: {set_prompt}")
    if set_history_file is not None:
        changes.append(f"History file: {set_history_file}")
    if set_color is not None:
        changes.append(f"Color: {set_color}")
    if set_verbose is not None:
        changes.append(f"CLI verbose: {set_verbose}")

    console.print("[blue]Updating configuration:[/blue]")
    for change in changes:
        console.print(f"  • {escape(change)}")

    update_config(
        default_file_mode=set_file_mode,
        default_dir_mode=set_dir_mode,
        max_symlink_depth=set_max_depth,
        prompt=set_prompt,
        history_file=set_history_file,
        color=set_color,
        verbose=set_verbose,
    )
    console.print("[green]✓ Configuration updated![/green]")
    console.print("[dim]Use 'memfs config --show' to view current settings[/dim]")


if __name__ == "__main__":
    app()
