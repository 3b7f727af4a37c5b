"""Klipper clipboard gateway implementation.

Talks to KDE's Klipper over the D-Bus session bus using the ``gdbus``
command-line client. Replies are parsed from GVariant text notation.
"""

import ast
import logging
import math
import re
import subprocess

from klipexpire.gateway.base import (
    ClipboardGateway,
    GatewayUnavailableError,
    ItemNotFoundError,
)
from klipexpire.models.item import ClipboardItem
from klipexpire.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

KLIPPER_SERVICE = "org.kde.klipper"
KLIPPER_OBJECT_PATH = "/klipper"
KLIPPER_INTERFACE = "org.kde.klipper.klipper"

DEFAULT_TIMEOUT = 5.0

# Linux MAX_ARG_STRLEN: longest single argv string, terminating NUL included
MAX_ARGUMENT_BYTES = 32 * 4096

# gdbus prints a lone empty container with a type annotation, e.g. "(@as [],)"
_EMPTY_ANNOTATED = re.compile(r"\(@[a-z{}()]+ (\[\]|\{\}),\)")

# Characters with a dedicated GVariant escape sequence
_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def encode_gvariant_string(value: str) -> str:
    """Encode text as a GVariant string literal for use as a gdbus argument.

    Args:
        value: Text to encode.

    Returns:
        Single-quoted GVariant literal with backslash escapes.
    """
    parts: list[str] = []
    for ch in value:
        if ch in _ESCAPES:
            parts.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ch == "\x7f":
            parts.append(f"\\u{ord(ch):04x}")
        else:
            parts.append(ch)
    return "'" + "".join(parts) + "'"


def parse_gvariant_reply(text: str) -> tuple[object, ...]:
    """Parse the tuple printed by ``gdbus call``.

    GVariant text notation for strings, arrays and tuples is close enough to
    Python literal syntax that ``ast.literal_eval`` handles it once empty
    container type annotations are stripped.

    Args:
        text: Raw stdout from gdbus.

    Returns:
        The reply values as a tuple.

    Raises:
        GatewayUnavailableError: If the reply cannot be parsed.
    """
    cleaned = text.strip()
    empty = _EMPTY_ANNOTATED.fullmatch(cleaned)
    if empty:
        cleaned = f"({empty.group(1)},)"
    try:
        value = ast.literal_eval(cleaned)
    except (ValueError, SyntaxError) as e:
        msg = f"Unparsable D-Bus reply: {text.strip()[:80]!r}"
        raise GatewayUnavailableError(msg) from e
    if not isinstance(value, tuple):
        msg = f"Unexpected D-Bus reply shape: {type(value).__name__}"
        raise GatewayUnavailableError(msg)
    return value


class KlipperGateway(ClipboardGateway):
    """Gateway for the Klipper clipboard manager.

    Klipper exposes no per-entry removal, so removing an entry rewrites the
    whole history without it: the history is cleared and the surviving
    entries are pushed back oldest first, leaving the newest survivor as
    the active selection.

    Attributes:
        timeout: Per-call timeout in seconds.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize the gateway.

        Args:
            timeout: Maximum seconds to wait for each D-Bus call.
        """
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        """Per-call timeout in seconds."""
        return self._timeout

    def is_available(self) -> bool:
        """Check if the gdbus client is installed."""
        return command_exists("gdbus")

    def list_history(self) -> list[ClipboardItem]:
        """Read Klipper's history, newest first."""
        reply = self._call("getClipboardHistoryMenu")
        entries = reply[0] if reply else None
        if not isinstance(entries, list) or not all(isinstance(e, str) for e in entries):
            msg = "Unexpected reply to getClipboardHistoryMenu"
            raise GatewayUnavailableError(msg)
        return [ClipboardItem(content=content, position=i) for i, content in enumerate(entries)]

    def remove(self, item: ClipboardItem) -> None:
        """Remove every history entry carrying the item's content.

        Nothing is changed if a surviving entry is too large to pass back
        to gdbus. Once history is cleared, every survivor is re-pushed even
        if some pushes fail; the first failure is raised afterwards.

        Raises:
            ItemNotFoundError: If no entry with this content is present.
            GatewayUnavailableError: If Klipper cannot be reached.
        """
        history = self.list_history()
        remaining = [entry.content for entry in history if entry.content != item.content]
        if len(remaining) == len(history):
            msg = f"Entry {item.short_id} is not in Klipper history"
            raise ItemNotFoundError(msg)

        # Every survivor must fit in one argv entry before history is cleared
        encoded = [encode_gvariant_string(content) for content in reversed(remaining)]
        for arg in encoded:
            size = len(arg.encode("utf-8"))
            if size >= MAX_ARGUMENT_BYTES:
                msg = (
                    f"Cannot remove {item.short_id}: a surviving entry is too large "
                    f"to restore through gdbus ({size} bytes)"
                )
                raise GatewayUnavailableError(msg)

        logger.debug(
            "Rewriting Klipper history without %s (%d entries kept)",
            item.short_id,
            len(remaining),
        )
        self._call("clearClipboardHistory")
        if not remaining:
            self._call("clearClipboardContents")
            return

        failures: list[GatewayUnavailableError] = []
        for arg in encoded:
            try:
                self._call("setClipboardContents", arg)
            except GatewayUnavailableError as e:
                failures.append(e)
        if failures:
            logger.warning(
                "Restored %d of %d entries after removing %s",
                len(encoded) - len(failures),
                len(encoded),
                item.short_id,
            )
            raise failures[0]

    def get_selection(self) -> str:
        """Read Klipper's current clipboard contents."""
        reply = self._call("getClipboardContents")
        if not reply or not isinstance(reply[0], str):
            msg = "Unexpected reply to getClipboardContents"
            raise GatewayUnavailableError(msg)
        return reply[0]

    def set_selection(self, text: str) -> None:
        """Replace Klipper's current clipboard contents."""
        self._call("setClipboardContents", encode_gvariant_string(text))

    def _call(self, method: str, *args: str) -> tuple[object, ...]:
        """Invoke a Klipper D-Bus method and parse its reply.

        Args:
            method: Method name on the Klipper interface.
            *args: Arguments already encoded as GVariant text.

        Returns:
            Parsed reply tuple.

        Raises:
            GatewayUnavailableError: On timeout, missing client, or call failure.
        """
        cmd = [
            "gdbus",
            "call",
            "--session",
            "--dest",
            KLIPPER_SERVICE,
            "--object-path",
            KLIPPER_OBJECT_PATH,
            "--timeout",
            str(max(1, math.ceil(self._timeout))),
            "--method",
            f"{KLIPPER_INTERFACE}.{method}",
            *args,
        ]
        try:
            # gdbus enforces its own timeout; the extra second covers process startup
            result = run_command(cmd, timeout=self._timeout + 1.0)
        except subprocess.TimeoutExpired as e:
            msg = f"Klipper call {method} timed out after {self._timeout:g}s"
            raise GatewayUnavailableError(msg) from e
        except OSError as e:
            msg = f"Cannot run gdbus: {e}"
            raise GatewayUnavailableError(msg) from e

        if not result.success:
            msg = f"Klipper call {method} failed: {result.stderr.strip() or 'unknown error'}"
            raise GatewayUnavailableError(msg)

        return parse_gvariant_reply(result.stdout)
