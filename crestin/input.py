"""Terminal input: raw single-key reading."""
import select as _sel
import sys
import termios
import tty

# raw byte(s) -> action name
_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\x7f": "backspace",
    "\x08": "backspace",
}
_CSI_KEYS = {"A": "up", "B": "down"}

_ESC_WAIT = 0.05


def _pending(timeout: float) -> bool:
    readable, _, _ = _sel.select([sys.stdin], [], [], timeout)
    return bool(readable)


def _decode_escape() -> str:
    """Called after ESC: arrow keys arrive as ESC [ A/B, a lone ESC as nothing."""
    if not _pending(_ESC_WAIT):
        return "esc"
    if sys.stdin.read(1) != "[" or not _pending(_ESC_WAIT):
        return "ignore"
    return _CSI_KEYS.get(sys.stdin.read(1), "ignore")


def _read_key(timeout: float = 0.3) -> str | None:
    """Wait up to timeout for one keypress; return its action name or the raw char."""
    fd = sys.stdin.fileno()
    old = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        if not _pending(timeout):
            return None
        ch = sys.stdin.read(1)
        if ch == "\x1b":
            return _decode_escape()
        return _KEYS.get(ch, ch)
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old)
