"""Clipboard sink for copied secret values."""

from __future__ import annotations

from typing import Protocol

import pyperclip


class ClipboardError(Exception):
    """The system clipboard is unavailable or rejected the write."""


class ClipboardSink(Protocol):
    def set_contents(self, text: str) -> None: ...


class PyperclipClipboard:
    """System clipboard via pyperclip (pbcopy, xclip/xsel, wl-copy, win32)."""

    def set_contents(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise ClipboardError(str(e)) from e
