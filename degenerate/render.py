# degenerate/render.py
"""
Command-line entry point.

    degenerate resize:10:10 circle            run commands, print the bitmap
    degenerate random all --seed 7 save:a.png options may sit between commands
    degenerate run --script art.txt           commands from a file
    degenerate repl                           interactive session
    degenerate scene kaleidoscope --output k.png
    degenerate scene kaleidoscope --output k.gif --frames 60
    degenerate batch spirals                  render output/spirals.csv

Exit status: 0 on success, 2 for parse or configuration errors, 1 for file errors.
"""
import argparse
import sys

from .commands import Program, State, read_script, run, run_script
from .compose import Frame, animate
from .config import load_config
from .core import ConfigError, ParseError, render_from_csv
from .logging_config import set_verbose, setup_logging
from .scenes import SCENES

SUBCOMMANDS = ("scene", "batch")  # anything else runs commands


def build_common_options() -> argparse.ArgumentParser:
    """Options shared by every subcommand."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=str, default=None, help="YAML file merged over the defaults.")
    common.add_argument("--set", dest="overrides", action="append", default=[], metavar="KEY=VALUE",
                        help="Dotted config override, e.g. canvas.width=40 (repeatable).")
    common.add_argument("--seed", type=int, default=None, help="Seed for the random operation.")
    common.add_argument("--width", type=int, default=None, help="Initial matrix columns.")
    common.add_argument("--height", type=int, default=None, help="Initial matrix rows.")
    common.add_argument("--verbose", action="store_true", help="Log each command and render step.")
    return common


def add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("commands", nargs="*", help="Commands such as resize:10:10 circle save:out.png")
    parser.add_argument("--script", type=str, default=None, help="File with one command per line, run first.")
    parser.add_argument("--no-print", action="store_true", help="Do not print the final bitmap.")


def build_run_parser() -> argparse.ArgumentParser:
    """
    Parser for the `run` subcommand on its own.

    Options may appear between commands, so it is parsed with `parse_intermixed_args`,
    which argparse refuses for parsers that have subparsers.
    """
    parser = argparse.ArgumentParser(prog="degenerate run", parents=[build_common_options()],
                                     description="Run commands, then print the final bitmap.")
    add_run_arguments(parser)
    return parser


def build_argparser() -> argparse.ArgumentParser:
    """Builds the full parser; `main` routes the implicit `run` subcommand to `build_run_parser`."""
    common = build_common_options()
    parser = argparse.ArgumentParser(
        prog="degenerate",
        description="Generate images by resampling a color grid through transforms, shape filters and color operations.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    # --- Parser for running a command script ---
    parser_run = subparsers.add_parser("run", parents=[common], help="Run commands (the default).")
    add_run_arguments(parser_run)

    # --- Parser for rendering a preset scene ---
    parser_scene = subparsers.add_parser("scene", parents=[common], help="Render a preset composition.")
    parser_scene.add_argument("name", choices=sorted(SCENES), help="Scene to render.")
    parser_scene.add_argument("--output", type=str, default=None, help="Output image (default io.default_path).")
    parser_scene.add_argument("--frames", type=int, default=None, help="Render an animation with this many frames.")
    parser_scene.add_argument("--time", type=float, default=0.0, help="Scene time in milliseconds for a still image.")

    # --- Parser for rendering scripts from a CSV file ---
    parser_batch = subparsers.add_parser("batch", parents=[common], help="Render all scripts from a CSV file.")
    parser_batch.add_argument("name", type=str, help="Base name of the CSV in the batch output directory.")
    parser_batch.add_argument("--col", type=str, default=None, help="Column with the scripts.")
    return parser


def configure(args: argparse.Namespace):
    """Loads the configuration with command-line flags applied on top, and sets up logging."""
    overrides = list(args.overrides)
    if args.seed is not None:
        overrides.append(f"seed={args.seed}")
    if args.width is not None:
        overrides.append(f"canvas.width={args.width}")
    if args.height is not None:
        overrides.append(f"canvas.height={args.height}")
    if getattr(args, "no_print", False):
        overrides.append("output.print_result=false")
    cfg = load_config(args.config, overrides)
    try:
        setup_logging(cfg.logging.level, cfg.logging.format)
    except ValueError as e:
        raise ConfigError(str(e)) from e
    return cfg


def cmd_run(args: argparse.Namespace, cfg) -> None:
    lines = read_script(args.script) if args.script else []
    lines.extend(args.commands or [])
    state = State.from_config(cfg, Program.parse(lines))
    state.verbose = args.verbose
    run(state)
    if cfg.output.print_result:
        state.print()


def cmd_scene(args: argparse.Namespace, cfg) -> None:
    scene = SCENES[args.name]
    output = args.output or cfg.io.default_path
    count = args.frames
    if count is None and output.lower().endswith(".gif"):
        count = cfg.animation.frames

    def make_state():
        state = State.from_config(cfg)
        state.verbose = args.verbose
        return state

    if count:
        print(f"Rendering {count} frames of scene '{args.name}'...")
        animate(scene, count, output, fps=cfg.animation.fps, make_state=make_state)
    else:
        state = make_state()
        scene(Frame(0, args.time), state)
        state.save(output)
    print(f"✅ Saved scene '{args.name}' to: {output}")


def cmd_batch(args: argparse.Namespace, cfg) -> None:
    def runner(program_string: str):
        return run_script(program_string.split(), State.from_config(cfg)).matrix

    print(f"Rendering CSV '{args.name}.csv'...")
    render_from_csv(runner, args.name, program_col=args.col or cfg.batch.program_col,
                    output_dir=cfg.batch.output_dir)


def main(argv=None) -> int:
    """Main execution function with command-line parsing."""
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] in SUBCOMMANDS + ("-h", "--help"):
        args = build_argparser().parse_args(argv)
    else:
        if argv[:1] == ["run"]:
            argv = argv[1:]
        args = build_run_parser().parse_intermixed_args(argv)
        args.command = "run"

    try:
        cfg = configure(args)
        if args.verbose:
            set_verbose(True)
        if args.command == "run":
            cmd_run(args, cfg)
        elif args.command == "scene":
            cmd_scene(args, cfg)
        elif args.command == "batch":
            cmd_batch(args, cfg)
        else:
            raise AssertionError("unreachable")
    except (ParseError, ConfigError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except KeyError as e:
        print(f"error: {e.args[0]}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
