"""
The ``concourse-shell`` command.

Uses click for command-line argument parsing. A command line names an
operation followed by its arguments, for example::

    add name Jeff 1
    get keys=name,age record=1 time="last week"
    audit 1 start=yesterday
"""

import inspect
import logging
import os
import re
import shlex
import sys
from typing import Any, NoReturn

import click

from ..client import Concourse
from ..config import expand_path, resolve_connection_settings
from ..exceptions import AuthenticationError, ConcourseError, ConnectionError, InvalidArgumentError
from ..resolver import ALIASES

OPERATIONS = frozenset(
    {
        "abort",
        "add",
        "audit",
        "browse",
        "clear",
        "commit",
        "find",
        "get",
        "remove",
        "select",
        "set",
        "stage",
        "time",
    }
)
EXIT_COMMANDS = frozenset({"exit", "quit"})
HELP_COMMAND = "help"
CRITERIA_OPTIONS = frozenset(ALIASES["criteria"])
DEFAULT_RUN_COMMANDS = os.path.join("~", ".cashrc")

_INT_RE = re.compile(r"^-?\d+$")
_OPTION_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)=(.*)$", re.DOTALL)

logger = logging.getLogger(__name__)


def parse_value(token: str, lists: bool = True) -> Any:
    """
    Convert a command token: ints, booleans and ``a,b`` lists.

    Tokens containing whitespace, such as quoted criteria, are never split.
    """
    if lists and "," in token and not any(c.isspace() for c in token):
        return [parse_value(part) for part in token.split(",") if part]
    if _INT_RE.match(token):
        return int(token)
    if token.lower() in ("true", "false"):
        return token.lower() == "true"
    return token


def parse_command(line: str) -> tuple[str, list[Any], dict[str, Any]]:
    """
    Split a command line into operation, positional and keyed arguments.

    Criteria are always kept as strings.

    Raises:
        InvalidArgumentError: If the line is not a known operation
    """
    try:
        tokens = shlex.split(line)
    except ValueError as e:
        raise InvalidArgumentError(f"Cannot parse command: {e}") from e
    if not tokens:
        raise InvalidArgumentError("Empty command")
    operation, rest = tokens[0], tokens[1:]
    if operation not in OPERATIONS:
        raise InvalidArgumentError(f"Unknown operation '{operation}'")

    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    for token in rest:
        match = _OPTION_RE.match(token)
        if match:
            name, value = match.group(1), match.group(2)
            kwargs[name] = value if name in CRITERIA_OPTIONS else parse_value(value)
        elif operation == "find":
            args.append(token)
        else:
            args.append(parse_value(token))
    return operation, args, kwargs


def run_command(concourse: Concourse, operation: str, args: list[Any], kwargs: dict[str, Any]) -> Any:
    """
    Invoke a parsed command on the client.

    Raises:
        InvalidArgumentError: If the arguments do not fit the operation
    """
    method = getattr(concourse, operation)
    try:
        inspect.signature(method).bind(*args, **kwargs)
    except TypeError as e:
        raise InvalidArgumentError(f"{operation}: {e}", operation=operation) from e
    return method(*args, **kwargs)


def evaluate(concourse: Concourse, line: str) -> Any:
    """Run one command line against a connected client."""
    return run_command(concourse, *parse_command(line))


def format_result(result: Any) -> str:
    """Render a result for the terminal."""
    if result is None:
        return ""
    if isinstance(result, dict):
        return "\n".join(f"{k}: {v}" for k, v in result.items()) if result else "{}"
    return str(result)


def help_text(topic: str | None = None) -> str | None:
    """Usage for one operation, or a summary of all of them."""
    if not topic:
        lines = ["Operations:"]
        for operation in sorted(OPERATIONS):
            doc = inspect.getdoc(getattr(Concourse, operation)) or ""
            lines.append(f"  {operation:<8} {doc.splitlines()[0] if doc else ''}")
        lines.append("")
        lines.append("Type HELP <operation> for details. Type EXIT to quit.")
        return "\n".join(lines)
    topic = topic.lower()
    if topic not in OPERATIONS:
        return None
    usage = [topic]
    for param in inspect.signature(getattr(Concourse, topic)).parameters.values():
        if param.kind is param.VAR_KEYWORD:
            usage.append("[name=value ...]")
        elif param.name != "self":
            usage.append(f"[{param.name}]")
    return f"{' '.join(usage)}\n\n{inspect.getdoc(getattr(Concourse, topic)) or ''}".rstrip()


def read_command(prompt: str) -> str | None:
    """Read one command line; ``None`` at end of input."""
    try:
        return input(prompt)
    except EOFError:
        return None


def load_run_commands(concourse: Concourse, path: str) -> None:
    """
    Run the commands in a run-commands file, if it exists.

    Every line is parsed before any is run; a line that cannot be parsed
    is fatal. Lines starting with ``#`` are comments.
    """
    script = expand_path(path)
    if not script.is_file():
        return
    commands = []
    for number, raw in enumerate(script.read_text().splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            commands.append(parse_command(line))
        except InvalidArgumentError as e:
            die(
                f"A fatal error occurred while parsing the run-commands file at {script}\n"
                f"line {number}: {e.message}\n"
                "Fix these errors or start concourse shell with the --no-run-commands flag"
            )
    logger.debug(f"Running {len(commands)} commands from {script}")
    for command in commands:
        try:
            run_command(concourse, *command)
        except ConcourseError as e:
            click.echo(f"ERROR: {e.message}", err=True)


def die(message: str) -> NoReturn:
    """Report a fatal error and exit with status 1."""
    click.echo(f"ERROR: {message}", err=True)
    sys.exit(1)


@click.command(name="concourse-shell")
@click.option("--host", envvar="CONCOURSE_HOST", default="localhost", help="Concourse Server host")
@click.option("--port", "-p", envvar="CONCOURSE_PORT", default=1717, type=int, help="Concourse Server port")
@click.option("--username", "-u", envvar="CONCOURSE_USERNAME", default="admin", help="Login username")
@click.option("--password", envvar="CONCOURSE_PASSWORD", help="Login password (prompted if omitted)")
@click.option("--environment", "-e", envvar="CONCOURSE_ENVIRONMENT", default="", help="Environment to work in")
@click.option("--prefs", type=click.Path(dir_okay=False), help="Client preferences file")
@click.option("--run", "-r", "command", help="Run a single command and exit")
@click.option(
    "--run-commands",
    "--rc",
    "run_commands",
    default=DEFAULT_RUN_COMMANDS,
    show_default=True,
    help="Script of commands to run when the shell starts",
)
@click.option(
    "--no-run-commands",
    "--no-rc",
    "no_run_commands",
    is_flag=True,
    help="Do not load a run-commands file",
)
@click.option("--verbose", "-v", is_flag=True, help="Log driver activity to stderr")
def cli(
    host: str,
    port: int,
    username: str,
    password: str | None,
    environment: str,
    prefs: str | None,
    command: str | None,
    run_commands: str,
    no_run_commands: bool,
    verbose: bool,
) -> None:
    """Interactive shell for a Concourse Server."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if password is None and prefs is None:
        password = click.prompt(f"Password [{username}]", hide_input=True)

    options: dict[str, Any] = {"prefs": prefs} if prefs else {}
    try:
        concourse = Concourse.connect(host, port, username, password, environment, **options)
    except ConnectionError:
        settings = resolve_connection_settings(host, port, username, password, environment, options)
        die(f"Unable to connect to the Concourse Server at {settings.host}:{settings.port}")
    except AuthenticationError:
        die("Invalid username/password combination.")
    except ConcourseError as e:
        die(e.message)

    with concourse:
        if not no_run_commands:
            load_run_commands(concourse, run_commands)

        if command:
            try:
                click.echo(format_result(evaluate(concourse, command)))
            except ConcourseError as e:
                die(e.message)
            return

        click.echo(f"Connected to the '{concourse.environment or 'default'}' environment.")
        click.echo("")
        click.echo("Type HELP for help.")
        click.echo("Type EXIT to quit.")
        click.echo("")
        prompt = f"[{concourse.environment or 'default'}/cash]$ "
        while True:
            try:
                line = read_command(prompt)
            except KeyboardInterrupt:
                click.echo("")
                click.echo("Type EXIT to quit.")
                continue
            if line is None:
                break
            line = line.strip()
            if not line:
                continue
            word, _, topic = line.partition(" ")
            if word.lower() in EXIT_COMMANDS:
                break
            if word.lower() == HELP_COMMAND:
                text = help_text(topic.strip())
                if text is None:
                    click.echo(f"No help entry for {topic.strip()}", err=True)
                else:
                    click.echo(text)
                continue
            try:
                click.echo(format_result(evaluate(concourse, line)))
            except ConcourseError as e:
                click.echo(f"ERROR: {e.message}", err=True)
