"""Command line tool for filtering, merging and listing MARCXML collections.

Reads a collection on stdin and writes the result to stdout, so it can be
combined with pipes and redirection::

    mxtool -keep 't=^Design' < in.xml > out.xml
    mxtool -cat other.xml < in.xml > both.xml
    mxtool -lib < in.xml

The schema used for validation is taken from ``MXTOOL_XSD``.
"""
import argparse
import io
import logging
import os
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional, TextIO

from lxml import etree

from collection_ops import Selector, bib_format, concat, lib_format, select_records
from marc_errors import MxError
from marc_utils import LOG_ENV_VAR, load_collection, open_schema, read_collection
from review_records import review, terminal_keys

logger = logging.getLogger("mxtool")


def configure_logging(log_file: Optional[str] = None) -> logging.Logger:
    """Send warnings and errors to stderr and everything, debug included, to ``log_file``."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.WARNING)
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console)

    if log_file:
        fh = logging.FileHandler(log_file, mode="w", encoding="utf-8")  # 'w' = overwrite
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s: %(message)s"))
        logger.addHandler(fh)
    return logger


@contextmanager
def utf8_stdout() -> Iterator[TextIO]:
    """Yield a UTF-8 text stream over stdout, whatever the locale encoding is.

    The XML declaration written to stdout promises UTF-8, so the output must
    not depend on the terminal or on ``PYTHONIOENCODING``.
    """
    buffer = getattr(sys.stdout, "buffer", None)
    if buffer is None:
        yield sys.stdout
        return
    sys.stdout.flush()
    out = io.TextIOWrapper(buffer, encoding="utf-8", newline="\n")
    try:
        yield out
    finally:
        out.flush()
        out.detach()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mxtool",
        description="Manipulate MARCXML collections read from stdin.",
        allow_abbrev=False,
    )
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("-review", action="store_true", help="interactively pick records")
    group.add_argument("-cat", metavar="FILE", help="append the records of FILE")
    group.add_argument("-keep", metavar="PATTERN", help="keep records matching <a|t|p>=<regex>")
    group.add_argument("-discard", metavar="PATTERN", help="drop records matching <a|t|p>=<regex>")
    group.add_argument("-lib", action="store_true", help="list records sorted by call number")
    group.add_argument("-bib", action="store_true", help="list records sorted by author")
    parser.add_argument(
        "--progress",
        action="store_true",
        help="show a progress bar while computing sort keys",
    )
    return parser


def run_command(args: argparse.Namespace, schema: etree.XMLSchema, stdin, out: TextIO) -> int:
    """Run the command selected in ``args`` and return the number of items written."""
    if args.cat is not None:
        with read_collection(stdin, schema) as top1, load_collection(args.cat, schema) as top2:
            return concat(top1, top2, out)

    with read_collection(stdin, schema) as top:
        if args.review:
            with terminal_keys() as (read_key, tty_out):
                return review(top, out, read_key, tty_out)
        if args.keep is not None:
            return select_records(top, Selector.KEEP, args.keep, out)
        if args.discard is not None:
            return select_records(top, Selector.DISCARD, args.discard, out)
        if args.lib:
            return lib_format(top, out, progress=args.progress)
        return bib_format(top, out, progress=args.progress)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(os.environ.get(LOG_ENV_VAR))

    try:
        with open_schema() as schema, utf8_stdout() as out:
            written = run_command(args, schema, sys.stdin.buffer, out)
    except MxError as e:
        logger.error("%s", e)
        return 1
    except OSError as e:
        logger.error("could not open terminal or input: %s", e)
        return 1

    logger.info("Done, %d items written", written)
    return 0


if __name__ == "__main__":
    sys.exit(main())
