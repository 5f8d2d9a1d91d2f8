import logging
import termios
from contextlib import contextmanager
from typing import Callable, Iterator, TextIO, Tuple

from bib_summary import derive_bib_summary
from marc_element import XmElem
from marc_writer import write_element, write_footer, write_header

logger = logging.getLogger("mxtool.review")

KEEP_KEY = "\n"
SKIP_KEY = " "
KEEP_REST_KEY = "k"
DISCARD_REST_KEY = "d"

KEY_HELP = (
    "\nInvalid input:"
    "\n< enter > : keep record"
    "\n< space > : skip record"
    "\n< k > : keep remaining records"
    "\n< d > : discard remaining records\n"
)


def _review_line(number: int, record: XmElem) -> str:
    bib = derive_bib_summary(record)
    line = f"{number}. {bib.author} {bib.title} {bib.pubinfo} {bib.callnum}"
    return line + ("\n" if bib.callnum.endswith(".") else ".\n")


def review(
    top: XmElem,
    out: TextIO,
    read_key: Callable[[], str],
    tty_out: TextIO,
) -> int:
    """Let the user pick records of ``top`` one key press at a time.

    Kept records are written to ``out`` inside the collection envelope,
    prompts go to ``tty_out``. Returns the number of records kept.
    """
    write_header(out)
    kept = 0
    children = top.children
    i = 0
    while i < len(children):
        record = children[i]
        if record.tag != "record":
            i += 1
            continue

        tty_out.write(_review_line(i + 1, record))
        tty_out.flush()
        key = read_key()

        if key == KEEP_KEY:
            write_element(record, out, 1)
            kept += 1
        elif key == SKIP_KEY:
            pass
        elif key == KEEP_REST_KEY:
            for rest in children[i:]:
                write_element(rest, out, 1)
                kept += 1
            break
        elif key == DISCARD_REST_KEY or not key:
            # end of input discards the rest as well
            break
        else:
            tty_out.write(KEY_HELP)
            continue
        i += 1

    write_footer(out)
    logger.info("Review kept %d records", kept)
    return kept


@contextmanager
def terminal_keys(device: str = "/dev/tty") -> Iterator[Tuple[Callable[[], str], TextIO]]:
    """Open the terminal unbuffered without echo and yield ``(read_key, tty_out)``.

    The previous terminal settings are restored on exit.
    """
    with open(device, "r") as tty_in, open(device, "w") as tty_out:
        fd = tty_in.fileno()
        initial = termios.tcgetattr(fd)
        settings = termios.tcgetattr(fd)
        settings[3] &= ~(termios.ICANON | termios.ECHO | termios.ISIG)
        settings[6][termios.VMIN] = 1
        settings[6][termios.VTIME] = 0
        termios.tcsetattr(fd, termios.TCSANOW, settings)
        try:
            yield (lambda: tty_in.read(1)), tty_out
        finally:
            termios.tcsetattr(fd, termios.TCSANOW, initial)
