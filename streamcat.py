#!/usr/bin/env python3
"""
StreamCat

A Python clone of cat: concatenate files to standard output, optionally
numbering lines and making line ends, tabs and non-printing bytes visible.
"""

import argparse
import logging
import os
import stat
import sys
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, List, Optional, Tuple

from tqdm import tqdm

# Define version
__version__ = "1.0.0"
__author__ = "tboy1337"


# Set up logging; stdout carries the data so everything else goes to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(name)s: %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger("streamcat")


NEWLINE = 0x0A
TAB = 0x09
CR = 0x0D
DEL = 0x7F

STDIN_PATH = "-"
NUMBER_WIDTH = 6

SHORT_OPTIONS = "AbeEnstTuv"

LONG_OPTIONS = {
    "--show-all": "A",
    "--number-nonblank": "b",
    "--show-ends": "E",
    "--number": "n",
    "--squeeze-blank": "s",
    "--show-tabs": "T",
    "--show-nonprinting": "v",
}

# Letters that stand for a bundle of other letters
COMPOSITE_OPTIONS = {
    "A": "vET",
    "e": "vE",
    "t": "vT",
}

# Long options handled by argparse rather than the display flag resolver
PROGRAM_OPTIONS = {"--help", "--version", "--verbose", "--progress"}

DISPLAY_OPTIONS_HELP = """\
display options:
  -A, --show-all           equivalent to -vET
  -b, --number-nonblank    number nonempty output lines, overrides -n
  -e                       equivalent to -vE
  -E, --show-ends          display $ at end of each line
  -n, --number             number all output lines
  -s, --squeeze-blank      suppress repeated empty output lines
  -t                       equivalent to -vT
  -T, --show-tabs          display TAB characters as ^I
  -u                       (ignored)
  -v, --show-nonprinting   use ^ and M- notation, except for LFD and TAB

With no FILE, or when FILE is -, read standard input.

examples:
  streamcat f - g  Output f's contents, then standard input, then g's contents.
  streamcat        Copy standard input to standard output."""


class CatError(Exception):
    """Base class for errors reported to the user."""


class InvalidOption(CatError):
    """An unrecognized flag letter or long option name."""

    def __init__(self, option: str) -> None:
        self.option = option
        if option.startswith("--"):
            message = f"unrecognized option '{option}'"
        else:
            message = f"invalid option -- '{option}'"
        super().__init__(f"{message}\nTry 'streamcat --help' for more information.")


class PathNotFound(CatError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"{path}: No such file or directory")


class NotARegularFile(CatError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"{path}: not a regular file")


class ReadFailure(CatError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


@dataclass(frozen=True)
class OptionSet:
    """The canonical display toggles, with composite flags already expanded."""

    show_all: bool = False
    number_nonblank: bool = False
    show_ends: bool = False
    number_all: bool = False
    squeeze_blank: bool = False
    show_tabs: bool = False
    show_nonprinting: bool = False
    unbuffered: bool = False

    @classmethod
    def from_letters(cls, letters: Iterable[str]) -> "OptionSet":
        """Build the option set from resolved short letters."""
        expanded = set(letters)
        for letter in list(expanded):
            expanded.update(COMPOSITE_OPTIONS.get(letter, ""))

        return cls(
            show_all="A" in expanded,
            number_nonblank="b" in expanded,
            show_ends="E" in expanded,
            # -b overrides -n regardless of order
            number_all="n" in expanded and "b" not in expanded,
            squeeze_blank="s" in expanded,
            show_tabs="T" in expanded,
            show_nonprinting="v" in expanded,
            unbuffered="u" in expanded,
        )

    @property
    def numbering(self) -> bool:
        return self.number_all or self.number_nonblank


@dataclass
class TranscodingState:
    """
    Running state shared by every source of one invocation.

    consecutive_newline_count starts at 1 because output begins at a line
    boundary, so a leading run of blank lines is squeezed like any other.
    """

    line_number: int = 1
    consecutive_newline_count: int = 1
    previous_byte: Optional[int] = None


def option_letters(token: str) -> List[str]:
    """Return the short letters named by one flag token."""
    if token.startswith("--"):
        letter = LONG_OPTIONS.get(token)
        if letter is None:
            raise InvalidOption(token)
        return [letter]

    letters: List[str] = []
    for char in token[1:]:
        if char not in SHORT_OPTIONS:
            raise InvalidOption(char)
        letters.append(char)
    return letters


def resolve_options(tokens: Iterable[str]) -> OptionSet:
    """
    Resolve flag tokens such as "-bET" or "--show-ends" into an OptionSet.

    Raises InvalidOption for the first unrecognized letter or long name.
    """
    letters: List[str] = []
    for token in tokens:
        letters.extend(option_letters(token))
    return OptionSet.from_letters(letters)


def escape_nonprinting(byte: int) -> bytes:
    """Render a byte in ^ and M- notation."""
    if byte >= 128:
        return b"M-" + escape_nonprinting(byte - 128)
    if byte == DEL:
        return b"^?"
    if byte >= 32:
        return bytes((byte,))
    return b"^" + bytes((byte + 64,))


def line_number_field(number: int) -> bytes:
    return f"{number:>{NUMBER_WIDTH}} ".encode("ascii")


def holds_carriage_return(options: OptionSet) -> bool:
    """Whether a raw CR must wait to see if it is the start of a CR LF pair."""
    return options.show_ends and not options.show_nonprinting


def render_byte(byte: int, previous_byte: Optional[int], options: OptionSet) -> bytes:
    """
    Render a single byte under the given options.

    Pure: squeezing and numbering are left to transcode(). A held CR (see
    holds_carriage_return) renders as nothing and is re-emitted by whatever
    byte follows it.
    """
    held_cr = previous_byte == CR and holds_carriage_return(options)

    if byte == NEWLINE:
        if not options.show_ends:
            return b"\n"
        return b"^M$\n" if held_cr else b"$\n"

    prefix = b"\r" if held_cr else b""

    if byte == TAB:
        return prefix + (b"^I" if options.show_tabs else b"\t")
    if byte == CR and holds_carriage_return(options):
        return prefix
    if options.show_nonprinting:
        return prefix + escape_nonprinting(byte)
    return prefix + bytes((byte,))


def transcode(data: bytes, options: OptionSet, state: TranscodingState) -> bytes:
    """
    Render one source, mutating state so the next source carries on from it.

    The source always ends on a line boundary: a final newline terminates the
    last line, and a source without one gets a single synthetic line end.
    """
    out = bytearray()
    at_line_start = True

    for byte in data:
        if byte == NEWLINE:
            squeezed = (
                options.squeeze_blank and state.consecutive_newline_count >= 2
            )
            state.consecutive_newline_count += 1
            if not squeezed:
                if at_line_start and options.number_all:
                    out += line_number_field(state.line_number)
                    state.line_number += 1
                out += render_byte(byte, state.previous_byte, options)
            at_line_start = True
        else:
            state.consecutive_newline_count = 0
            if at_line_start and options.numbering:
                out += line_number_field(state.line_number)
                state.line_number += 1
            out += render_byte(byte, state.previous_byte, options)
            at_line_start = False
        state.previous_byte = byte

    if not at_line_start:
        if state.previous_byte == CR and holds_carriage_return(options):
            out += b"\r"
        out += render_byte(NEWLINE, None, options)
        state.consecutive_newline_count += 1
        state.previous_byte = NEWLINE

    return bytes(out)


def split_arguments(argv: Iterable[str]) -> Tuple[List[str], List[str], List[str]]:
    """Split raw arguments into display flags, paths and program options."""
    flags: List[str] = []
    paths: List[str] = []
    program_args: List[str] = []
    options_done = False

    for arg in argv:
        if options_done or arg == STDIN_PATH or not arg.startswith("-"):
            paths.append(arg)
        elif arg == "--":
            options_done = True
        elif arg in PROGRAM_OPTIONS:
            program_args.append(arg)
        else:
            flags.append(arg)

    if not paths:
        paths.append(STDIN_PATH)
    return flags, paths, program_args


def validate_path(path: str) -> None:
    """Check that path names a readable regular file."""
    if path == STDIN_PATH:
        return
    try:
        mode = os.stat(path).st_mode
    except FileNotFoundError as e:
        raise PathNotFound(path) from e
    except OSError as e:
        raise ReadFailure(path, e.strerror or str(e)) from e

    if not stat.S_ISREG(mode):
        raise NotARegularFile(path)
    if not os.access(path, os.R_OK):
        raise ReadFailure(path, "Permission denied")


def read_source(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError as e:
        raise PathNotFound(path) from e
    except IsADirectoryError as e:
        raise NotARegularFile(path) from e
    except OSError as e:
        raise ReadFailure(path, e.strerror or str(e)) from e


def iter_stdin_chunks(stream: BinaryIO) -> Iterator[bytes]:
    """Yield standard input one line at a time until end of stream."""
    while True:
        try:
            chunk = stream.readline()
        except OSError as e:
            raise ReadFailure(STDIN_PATH, e.strerror or str(e)) from e
        if not chunk:
            return
        yield chunk


def concatenate(
    paths: List[str],
    options: OptionSet,
    output: Optional[BinaryIO] = None,
    stdin: Optional[BinaryIO] = None,
    progress: bool = False,
) -> TranscodingState:
    """Write every source to output in order, sharing one TranscodingState."""
    if output is None:
        output = sys.stdout.buffer

    state = TranscodingState()

    with tqdm(
        paths, desc="Concatenating", unit="file", file=sys.stderr, disable=not progress
    ) as sources:
        for path in sources:
            if path == STDIN_PATH:
                logger.debug("Reading standard input")
                for chunk in iter_stdin_chunks(stdin or sys.stdin.buffer):
                    output.write(transcode(chunk, options, state))
                    output.flush()
            else:
                data = read_source(path)
                logger.debug("Read %d bytes from %s", len(data), path)
                output.write(transcode(data, options, state))
                output.flush()

    return state


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streamcat",
        usage="%(prog)s [OPTION]... [FILE]...",
        description="Concatenate FILE(s) to standard output.",
        epilog=DISPLAY_OPTIONS_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable verbose logging on stderr"
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar over the input files on stderr",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"streamcat v{__version__}",
        help="Show program version and exit",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    try:
        if argv is None:
            argv = sys.argv[1:]

        flags, paths, program_args = split_arguments(argv)
        args = build_parser().parse_args(program_args)

        # Set logging level based on verbosity
        if args.verbose:
            logger.setLevel(logging.DEBUG)

        options = resolve_options(flags)
        logger.debug("Resolved options: %s", options)

        # Nothing is written unless every argument checks out
        for path in paths:
            validate_path(path)

        concatenate(paths, options, progress=args.progress)
        return 0
    except CatError as e:
        logger.error("%s", e)
        return 1
    except BrokenPipeError:
        # Point stdout at devnull so the interpreter's final flush stays quiet
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return 1
    except KeyboardInterrupt:
        return 130
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("An unexpected error occurred: %s", str(e))
        if logger.isEnabledFor(logging.DEBUG):
            import traceback  # pylint: disable=import-outside-toplevel

            logger.debug("Traceback: %s", traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
