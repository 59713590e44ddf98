"""Running external commands."""

from __future__ import annotations

import io
import subprocess
from typing import IO, Any

from gerberos.errors import GerberosError


class CommandError(GerberosError):
    """A command failed to run or exited with a non-zero status."""

    def __init__(self, name: str, arguments=(), output: str = "", exit_code: int = -1) -> None:
        self.name = name
        self.arguments = tuple(arguments)
        self.output = output
        self.exit_code = exit_code
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.exit_code >= 0:
            return f"exit status {self.exit_code}"
        return f'failed to run "{self.name}"'


class CommandNotFoundError(CommandError):
    """The command's executable could not be found."""

    def _describe(self) -> str:
        return f'"{self.name}": executable file not found'


def _fileno(stream: Any) -> int | None:
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


class Executor:
    """Runs commands; failures raise :class:`CommandError`."""

    def execute(self, name: str, *args: str) -> str:
        """Run a command and return its combined stdout and stderr."""
        return self.execute_with_std(None, None, name, *args)

    def execute_with_std(self, stdin: IO[Any] | None, stdout: IO[Any] | None, name: str, *args: str) -> str:
        """Run a command; with ``stdout`` given, return only its stderr."""
        options: dict[str, Any] = {"stderr": subprocess.STDOUT if stdout is None else subprocess.PIPE}
        if stdin is None:
            options["stdin"] = subprocess.DEVNULL
        elif _fileno(stdin) is not None:
            options["stdin"] = stdin
        else:
            data = stdin.read()
            options["input"] = data.encode() if isinstance(data, str) else data

        descriptor = None if stdout is None else _fileno(stdout)
        if descriptor is None:
            options["stdout"] = subprocess.PIPE
        else:
            stdout.flush()
            options["stdout"] = descriptor

        try:
            completed = subprocess.run([name, *args], check=False, **options)
        except FileNotFoundError as exc:
            raise CommandNotFoundError(name, args) from exc
        except OSError as exc:
            raise CommandError(name, args) from exc

        raw = completed.stdout
        if stdout is not None:
            if descriptor is None and raw:
                text_stream = isinstance(stdout, io.TextIOBase)
                stdout.write(raw.decode(errors="replace") if text_stream else raw)
            raw = completed.stderr
        output = raw.decode(errors="replace") if raw else ""
        if completed.returncode != 0:
            raise CommandError(name, args, output, max(completed.returncode, -1))
        return output


class FaultyExecutor(Executor):
    """Fakes the outcome of one particular command; runs all others normally."""

    def __init__(self, output: str, exit_code: int, error, name: str, *args: str) -> None:
        self.output = output
        self.exit_code = exit_code
        self.error = error
        self.name = name
        self.arguments = args

    def execute_with_std(self, stdin, stdout, name: str, *args: str) -> str:
        if (name, args) != (self.name, self.arguments):
            return super().execute_with_std(stdin, stdout, name, *args)
        error = self.error
        if error is None:
            return self.output
        if isinstance(error, type) and issubclass(error, CommandError):
            raise error(name, args, self.output, self.exit_code)
        if isinstance(error, CommandError):
            raise error
        raise CommandError(name, args, self.output, self.exit_code) from error