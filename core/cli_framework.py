"""CLI application framework.

Provides a declarative way to build CLI applications with:
- Command registration via decorators
- Automatic argument parsing
- Consistent error handling and exit codes
- Output formatting
- Optional command journaling and agentic context flags
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .applog import AppLogger
from .cli_errors import ExitCode, handle_error
from .cli_output import OutputConfig, OutputFormat, OutputWriter


CommandFunc = Callable[[argparse.Namespace], int]
JournalFactory = Callable[[argparse.Namespace], Optional[AppLogger]]


@dataclass
class Argument:
    """Definition of a CLI argument."""
    name_or_flags: tuple
    kwargs: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CommandDef:
    """Definition of a CLI command."""
    name: str
    func: CommandFunc
    help: str = ""
    description: str = ""
    arguments: List[Argument] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)


class CLIApp:
    """Base class for CLI applications.

    Example usage:
        app = CLIApp("resumate", "Experience records")

        @app.command("list", help="List items")
        @app.argument("--filter", "-f", help="Filter pattern")
        def cmd_list(args):
            args._output.print(f"Listing with filter: {args.filter}")
            return 0

        if __name__ == "__main__":
            app.main()
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        *,
        version: Optional[str] = None,
        epilog: Optional[str] = None,
        add_common_args: bool = True,
    ):
        self.name = name
        self.description = description
        self.version = version
        self.epilog = epilog
        self.add_common_args = add_common_args

        self._commands: Dict[str, CommandDef] = {}
        self._pending_arguments: List[Argument] = []

    def command(
        self,
        name: str,
        *,
        help: str = "",
        description: str = "",
        aliases: Optional[List[str]] = None,
    ) -> Callable[[CommandFunc], CommandFunc]:
        """Decorator to register a command."""
        def decorator(func: CommandFunc) -> CommandFunc:
            # Collect any pending arguments from @argument decorators
            arguments = list(reversed(self._pending_arguments))
            self._pending_arguments.clear()
            self._commands[name] = CommandDef(
                name=name,
                func=func,
                help=help,
                description=description or help,
                arguments=arguments,
                aliases=aliases or [],
            )
            return func
        return decorator

    def argument(self, *name_or_flags: str, **kwargs: Any) -> Callable[[CommandFunc], CommandFunc]:
        """Decorator to add an argument to the next command.

        Must be used BELOW the @command decorator (decorators apply bottom-up).
        """
        def decorator(func: CommandFunc) -> CommandFunc:
            self._pending_arguments.append(Argument(name_or_flags, kwargs))
            return func
        return decorator

    @property
    def commands(self) -> List[str]:
        return list(self._commands)

    def build_parser(self) -> argparse.ArgumentParser:
        """Build the argument parser."""
        parser = argparse.ArgumentParser(
            prog=self.name,
            description=self.description,
            epilog=self.epilog,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        if self.version:
            parser.add_argument(
                "--version", "-V",
                action="version",
                version=f"%(prog)s {self.version}",
            )

        if self.add_common_args:
            self._add_common_arguments(parser)

        if self._commands:
            subparsers = parser.add_subparsers(dest="command", metavar="<command>")
            for cmd_def in self._commands.values():
                cmd_parser = subparsers.add_parser(
                    cmd_def.name,
                    help=cmd_def.help,
                    description=cmd_def.description,
                    aliases=cmd_def.aliases,
                )
                for arg in cmd_def.arguments:
                    cmd_parser.add_argument(*arg.name_or_flags, **arg.kwargs)
                cmd_parser.set_defaults(_cmd_func=cmd_def.func)

        return parser

    def _add_common_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--root",
            help="Project root directory (default: current directory)",
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Enable debug logging on stderr",
        )
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output",
        )

    def run(
        self,
        argv: Optional[Sequence[str]] = None,
        *,
        assistant: Any = None,
        emit_agentic: Optional[Callable[..., int]] = None,
        journal_factory: Optional[JournalFactory] = None,
    ) -> int:
        """Parse ``argv``, dispatch the command and return its exit code.

        Errors raised by a command are printed via ``handle_error``; when a
        journal is available the command start/end is recorded.
        """
        parser = self.build_parser()
        if assistant is not None:
            assistant.add_agentic_flags(parser)

        args = parser.parse_args(argv)

        if assistant is not None and emit_agentic is not None:
            agentic_result = assistant.maybe_emit_agentic(args, emit_func=emit_agentic)
            if agentic_result is not None:
                return int(agentic_result)

        verbose = bool(getattr(args, "verbose", False))
        configure_logging(verbose)
        args._output = OutputWriter(OutputConfig(
            format=OutputFormat.TEXT,
            verbose=verbose,
            quiet=bool(getattr(args, "quiet", False)),
        ))

        cmd_func = getattr(args, "_cmd_func", None)
        if cmd_func is None:
            parser.print_help()
            return ExitCode.USAGE

        journal = journal_factory(args) if journal_factory else None
        session = journal.start(args.command, list(argv) if argv is not None else sys.argv[1:]) if journal else None

        error: Optional[BaseException] = None
        try:
            code = int(cmd_func(args))
        except KeyboardInterrupt as e:
            error = e
            code = handle_error(e)
        except Exception as e:
            error = e
            code = handle_error(e, verbose=verbose)

        if journal and session:
            journal.end(session, status="ok" if code == ExitCode.SUCCESS else "error",
                        error=str(error) if error else None)
        return code

    def main(self, argv: Optional[Sequence[str]] = None, **kwargs: Any) -> None:
        """Run the CLI and exit with the return code."""
        sys.exit(self.run(argv, **kwargs))


def configure_logging(verbose: bool) -> None:
    """Route library loggers to stderr; DEBUG when verbose, WARNING otherwise."""
    level = logging.DEBUG if verbose else logging.WARNING
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)
    root.setLevel(level)
