"""
Output capture module for routing drained process output.
Implements the none/stdout/capture/tee output modes.

Bytes from each child stream go through their own incremental decoder, so a
multi-byte character split across two reads is decoded intact.
"""

import codecs
from enum import Enum
from typing import BinaryIO, Dict, List, Optional, Union


class OutputMode(str, Enum):
    """Where process output goes."""
    NONE = "none"  # discard, just run the command
    STDOUT = "stdout"  # stream to the caller's stdout
    CAPTURE = "capture"  # accumulate and return
    TEE = "tee"  # both stream and capture

    @property
    def captures(self) -> bool:
        return self in (OutputMode.CAPTURE, OutputMode.TEE)

    @property
    def streams(self) -> bool:
        return self in (OutputMode.STDOUT, OutputMode.TEE)

    @classmethod
    def parse(cls, value: Union["OutputMode", str]) -> "OutputMode":
        """Resolve a mode from an enum member or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Output mode must be a string, got {type(value).__name__}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown output mode: {value!r}. Expected one of: {choices}")


class OutputSink:
    """
    Destination for drained output chunks.
    Writes raw bytes to the console and/or decodes them into a capture buffer.
    """

    def __init__(
        self,
        mode: OutputMode,
        console: Optional[BinaryIO] = None,
        encoding: str = "utf-8",
    ):
        """
        Initialize output sink.

        Args:
            mode: Output mode deciding which destinations are active
            console: Binary stream for streamed output (required when mode streams)
            encoding: Text encoding used for captured output
        """
        if mode.streams and console is None:
            raise ValueError(f"Output mode '{mode.value}' requires a console stream")

        self.mode = mode
        self.console = console
        self.encoding = encoding
        self._decoders: Dict[str, codecs.IncrementalDecoder] = {}
        self._parts: List[str] = []

    def write(self, stream_name: str, chunk: bytes) -> None:
        """Route one chunk read from the named child stream."""
        if not chunk:
            return

        if self.mode.captures:
            decoder = self._decoders.get(stream_name)
            if decoder is None:
                decoder = codecs.getincrementaldecoder(self.encoding)(errors="replace")
                self._decoders[stream_name] = decoder
            text = decoder.decode(chunk)
            if text:
                self._parts.append(text)

        if self.mode.streams:
            self.console.write(chunk)
            self.console.flush()

    def finish(self) -> str:
        """Flush pending decoder state and return the captured text."""
        for decoder in self._decoders.values():
            tail = decoder.decode(b"", final=True)
            if tail:
                self._parts.append(tail)
        self._decoders.clear()
        return self.output

    @property
    def output(self) -> str:
        return "".join(self._parts)
