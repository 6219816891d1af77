# degenerate/commands.py
"""
Textual command interpreter.

A script is a sequence of colon-delimited commands, one per line (or one per
command-line argument):

    resize:10:10      reallocate a 10x10 black matrix
    rotate:0.125      sample through a 1/8 turn rotation
    random            set the active operation
    for:4             run the body four times
    circle            render: filter the grid through a disk
    loop
    save:out.png

Filter keywords render immediately with the current operation, rotation and boundary
policy. `for`/`loop` pairs are matched when the program is compiled into a jump table;
nesting is rejected, as are unmatched halves.

Public API:
    program = Program.parse(["resize:4:4", "square"])
    state = State.new(program=program)
    run(state)
    print(bitmap(state.matrix))
"""
import abc
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from . import core
from .core import Boundary, ParseError
from .languages.base import Filter, Operation, natural, positive
from .languages.filters import FILTERS
from .languages.operations import OPERATIONS, Invert
from .logging_config import set_verbose

try:
    import readline
except ImportError:
    readline = None

logger = logging.getLogger(__name__)

HISTORY_LENGTH = 1000  # Interactive lines kept across sessions


## --- Command Model ---
class Command(abc.ABC):
    """
    Base class for commands.

    `apply` mutates the state and returns the index of the next command, or None to
    continue with the following one.
    """

    @abc.abstractmethod
    def apply(self, state: "State") -> Optional[int]:
        raise NotImplementedError


@dataclass(frozen=True)
class FilterCommand(Command):
    filter: Filter

    def apply(self, state):
        state.render(self.filter)


@dataclass(frozen=True)
class OperationCommand(Command):
    operation: Operation

    def apply(self, state):
        state.operation = self.operation


@dataclass(frozen=True)
class For(Command):
    count: int

    def apply(self, state):
        if state.loop_counter < self.count:
            return None
        state.loop_counter = 0
        return state.program.partner(state.program_counter) + 1


@dataclass(frozen=True)
class Loop(Command):
    def apply(self, state):
        state.loop_counter += 1
        return state.program.partner(state.program_counter)


@dataclass(frozen=True)
class Load(Command):
    path: Optional[str] = None

    def apply(self, state):
        state.load(self.path or state.default_path)


@dataclass(frozen=True)
class Save(Command):
    path: Optional[str] = None

    def apply(self, state):
        state.save(self.path or state.default_path)


@dataclass(frozen=True)
class Print(Command):
    def apply(self, state):
        state.print()


@dataclass(frozen=True)
class Repl(Command):
    def apply(self, state):
        repl(state)


@dataclass(frozen=True)
class Resize(Command):
    cols: int
    rows: int

    def apply(self, state):
        state.resize(self.cols, self.rows)


@dataclass(frozen=True)
class Rotate(Command):
    turns: float

    def apply(self, state):
        state.rotation = core.rotation(self.turns)


@dataclass(frozen=True)
class Verbose(Command):
    def apply(self, state):
        state.verbose = not state.verbose
        set_verbose(state.verbose)


@dataclass(frozen=True)
class Wrap(Command):
    """Toggles between background and toroidal sampling."""
    def apply(self, state):
        state.boundary = Boundary.BACKGROUND if state.boundary is Boundary.WRAP else Boundary.WRAP


## --- Parsing ---
def _path(tokens: Sequence[str]) -> Optional[str]:
    # Paths may contain ':' (e.g. drive letters), so the remaining tokens are rejoined.
    path = ":".join(tokens)
    return path or None


_SIMPLE = {
    "loop": Loop,
    "print": Print,
    "repl": Repl,
    "verbose": Verbose,
    "wrap": Wrap,
}

_WITH_ARGS = {
    "for": (For, (natural,)),
    "resize": (Resize, (positive, positive)),
    "rotate": (Rotate, (float,)),
}


def parse_command(text: str) -> Command:
    """
    Parses one command.

    Args:
        text: Command text such as "mod:2:0"

    Returns:
        The parsed Command

    Raises:
        ParseError: If the keyword is unknown or the arguments are malformed

    Examples:
        >>> parse_command("resize:4:2")
        Resize(cols=4, rows=2)
        >>> parse_command("save")
        Save(path=None)
    """
    name, *tokens = text.strip().split(":")
    try:
        if name in FILTERS:
            return FilterCommand(FILTERS.build(name, tokens))
        if name in OPERATIONS:
            return OperationCommand(OPERATIONS.build(name, tokens))
        if name in ("load", "save"):
            return (Load if name == "load" else Save)(_path(tokens))
        if name in _SIMPLE and not tokens:
            return _SIMPLE[name]()
        if name in _WITH_ARGS:
            constructor, converters = _WITH_ARGS[name]
            if len(tokens) == len(converters):
                return constructor(*(convert(token) for convert, token in zip(converters, tokens)))
    except ValueError as e:
        raise ParseError(f"Invalid command: {text}: {e}") from e
    raise ParseError(f"Invalid command: {text}")


def read_script(path: str) -> List[str]:
    """
    Reads commands from a script file, one per line.

    Blank lines and lines starting with '#' are ignored.
    """
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]


## --- Program ---
@dataclass(frozen=True)
class Program:
    """
    An immutable, compiled command sequence.

    Attributes:
        commands: The commands in execution order
        jumps: Index of each `for`/`loop` mapped to the index of its partner
    """
    commands: Tuple[Command, ...] = ()
    jumps: Dict[int, int] = field(default_factory=dict)

    @classmethod
    def compile(cls, commands: Iterable[Command]) -> "Program":
        """
        Builds the loop jump table.

        Raises:
            ParseError: For a `for` inside another block, a `loop` without a `for`,
                or a `for` that is never closed
        """
        commands = tuple(commands)
        jumps: Dict[int, int] = {}
        open_for = None
        for i, command in enumerate(commands):
            if isinstance(command, For):
                if open_for is not None:
                    raise ParseError(f"Nested loops are not supported: `for` at command {i} "
                                     f"inside `for` at command {open_for}")
                open_for = i
            elif isinstance(command, Loop):
                if open_for is None:
                    raise ParseError(f"`loop` at command {i} has no matching `for`")
                jumps[open_for] = i
                jumps[i] = open_for
                open_for = None
        if open_for is not None:
            raise ParseError(f"`for` at command {open_for} is never closed by `loop`")
        return cls(commands, jumps)

    @classmethod
    def parse(cls, lines: Iterable[str]) -> "Program":
        """Parses and compiles command texts, stopping at the first malformed one."""
        return cls.compile(parse_command(line) for line in lines)

    def partner(self, index: int) -> int:
        return self.jumps[index]

    def __len__(self):
        return len(self.commands)

    def __getitem__(self, index):
        return self.commands[index]


## --- Interpreter State ---
@dataclass(eq=False)
class State:
    """
    Mutable interpreter state, owned by exactly one running interpreter.

    Attributes:
        matrix: Color matrix of shape (rows, cols, 3)
        rng: Random source consumed by the `random` operation
        rotation: 3x3 sampling transform applied by filter commands
        operation: Active operation
        boundary: Out of range sampling policy
        program: The compiled program being executed
        program_counter: Index of the next command; len(program) halts
        loop_counter: Iterations completed by the current loop block
        verbose: Whether per-command diagnostics are logged
        default_path: Path used by `load`/`save` without an argument
        history_file: Interactive history location
        history_length: Maximum number of history entries kept
        prompt: Interactive prompt
        read_line: Line source for the interactive loop; defaults to `input`
    """
    matrix: np.ndarray
    rng: np.random.Generator
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    operation: Operation = field(default_factory=Invert)
    boundary: Boundary = Boundary.BACKGROUND
    program: Program = field(default_factory=Program)
    program_counter: int = 0
    loop_counter: int = 0
    verbose: bool = False
    default_path: str = core.DEFAULT_PATH
    history_file: Optional[str] = None
    history_length: int = HISTORY_LENGTH
    prompt: str = "> "
    read_line: Optional[Callable[[str], str]] = None

    @classmethod
    def new(cls, cols: int = core.DEFAULT_WIDTH, rows: int = core.DEFAULT_HEIGHT,
            seed: Optional[int] = None, **kwargs) -> "State":
        return cls(matrix=core.new_matrix(cols, rows), rng=np.random.default_rng(seed), **kwargs)

    @classmethod
    def from_config(cls, cfg, program: Optional[Program] = None) -> "State":
        """Creates a state from a configuration built by `config.load_config`."""
        return cls.new(
            cols=cfg.canvas.width,
            rows=cfg.canvas.height,
            seed=cfg.seed,
            program=program or Program(),
            default_path=cfg.io.default_path,
            history_file=cfg.repl.history_file,
            history_length=cfg.repl.history_length,
            prompt=cfg.repl.prompt,
        )

    @property
    def dimensions(self) -> core.Dimensions:
        return core.dimensions_of(self.matrix)

    def render(self, filter_: Filter) -> None:
        """Runs one render step with the active operation, rotation and boundary."""
        previous = self.matrix
        self.matrix = core.render_step(previous, filter_, self.operation, self.rotation,
                                       self.rng, self.boundary)
        if self.verbose:
            changed = int(np.any(previous != self.matrix, axis=-1).sum())
            logger.info("render %dx%d filter=%s operation=%s boundary=%s changed=%d",
                        *self.dimensions, filter_, self.operation, self.boundary.value, changed)

    def resize(self, cols: int, rows: int) -> None:
        self.matrix = core.new_matrix(cols, rows)

    def load(self, path: str) -> None:
        self.matrix = core.load_image(path)

    def save(self, path: str) -> None:
        core.export_image(self.matrix, path)

    def print(self) -> None:
        print(core.bitmap(self.matrix))


## --- Execution ---
def run(state: State) -> State:
    """
    Executes the state's program from its program counter until it halts.

    Errors propagate to the caller; the program counter is left on the failing
    command.
    """
    program = state.program
    while 0 <= state.program_counter < len(program):
        command = program[state.program_counter]
        if state.verbose:
            logger.info("[%d] %s (loop_counter=%d)", state.program_counter, command, state.loop_counter)
        target = command.apply(state)
        state.program_counter = state.program_counter + 1 if target is None else target
    return state


def run_script(lines: Iterable[str], state: Optional[State] = None) -> State:
    """Parses `lines` into a program and runs it on `state` (a fresh default state if None)."""
    program = Program.parse(lines)
    if state is None:
        state = State.new()
    state.program = program
    state.program_counter = 0
    state.loop_counter = 0
    return run(state)


## --- Interactive Loop ---
class History:
    """
    Line history persisted to a plain text file, one line per entry.

    At most `length` entries are kept, in memory and on disk; older ones are dropped.
    When the readline module is available, the history is also handed to it so
    previous lines can be recalled with the arrow keys.
    """
    def __init__(self, path: Optional[str], length: int = HISTORY_LENGTH):
        if length <= 0:
            raise ValueError(f"history length must be positive, got {length}")
        self.path = Path(path).expanduser() if path else None
        self.length = length
        self.lines: List[str] = []
        if readline is not None:
            readline.set_auto_history(False)
            readline.set_history_length(length)

    def load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        self.lines = self.path.read_text(encoding="utf-8").splitlines()[-self.length:]
        if readline is not None:
            readline.clear_history()
            for line in self.lines:
                readline.add_history(line)

    def append(self, line: str) -> None:
        self.lines.append(line)
        trimmed = len(self.lines) > self.length
        if trimmed:
            del self.lines[:-self.length]
        if readline is not None:
            readline.add_history(line)
            if readline.get_current_history_length() > self.length:
                readline.remove_history_item(0)
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if trimmed:
            self.path.write_text("".join(entry + "\n" for entry in self.lines), encoding="utf-8")
        else:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")


def repl(state: State) -> State:
    """
    Reads, executes and reports one command per line until end of input.

    Each line is parsed into a command and applied to the shared state, after which
    the matrix is printed. Parse and I/O errors are reported on stderr and the loop
    continues. `for`, `loop` and `repl` are rejected: a single line cannot hold a
    loop block, and the loop is already running.
    """
    read_line = state.read_line or input
    history = History(state.history_file, state.history_length)
    history.load()
    while True:
        try:
            line = read_line(state.prompt)
        except (EOFError, KeyboardInterrupt):
            break
        line = line.strip()
        if not line:
            continue
        history.append(line)
        try:
            command = parse_command(line)
            if isinstance(command, (For, Loop, Repl)):
                raise ParseError(f"`{line}` cannot be used interactively")
            if state.verbose:
                logger.info("repl: %s", command)
            command.apply(state)
            state.print()
        except ParseError as e:
            print(f"Could not parse command from `{line}`: {e}", file=sys.stderr)
        except OSError as e:
            print(f"Command `{line}` failed: {e}", file=sys.stderr)
    return state
