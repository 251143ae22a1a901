from __future__ import annotations

import asyncio

import pytest
from structlog.testing import capture_logs

from watchmux.logger import get_logger
from watchmux.runner.multiplexer import Multiplexer
from watchmux.runner.outcome import SinkClosed
from watchmux.runner.reader import discard_stream, read_and_forward
from watchmux.runner.style import format_line, paint_title
from watchmux.runner.types import STDERR_COLOR, STDOUT_COLOR


def _stream(*chunks: bytes, limit: int = 2**16) -> asyncio.StreamReader:
    reader = asyncio.StreamReader(limit=limit)
    for chunk in chunks:
        reader.feed_data(chunk)
    reader.feed_eof()
    return reader


async def _forward(reader: asyncio.StreamReader, color: int = STDOUT_COLOR) -> list[str]:
    multiplexer = Multiplexer(capacity=64)
    await read_and_forward(
        reader, title="web", color=color, sink=multiplexer, log=get_logger("test")
    )
    await multiplexer.seal()
    lines: list[str] = []
    while (line := await multiplexer.receive()) is not None:
        lines.append(line)
    return lines


def test_format_line_tags_title_with_color() -> None:
    line = format_line("api", 173, "ready")
    assert line == "\x1b[48;5;173m[ api ]\x1b[0m ready\n"
    assert line.startswith(paint_title("api", 173))


@pytest.mark.asyncio
async def test_lines_are_tagged_in_stream_order() -> None:
    lines = await _forward(_stream(b"one\ntwo\n", b"three\n"))
    assert lines == [
        format_line("web", STDOUT_COLOR, "one"),
        format_line("web", STDOUT_COLOR, "two"),
        format_line("web", STDOUT_COLOR, "three"),
    ]


@pytest.mark.asyncio
async def test_crlf_and_missing_final_newline() -> None:
    lines = await _forward(_stream(b"dos\r\n", b"tail"), color=STDERR_COLOR)
    assert lines == [
        format_line("web", STDERR_COLOR, "dos"),
        format_line("web", STDERR_COLOR, "tail"),
    ]


@pytest.mark.asyncio
async def test_empty_lines_are_kept() -> None:
    lines = await _forward(_stream(b"\n\nx\n"))
    assert [line.endswith(" \n") for line in lines[:2]] == [True, True]
    assert len(lines) == 3


@pytest.mark.asyncio
async def test_invalid_utf8_stops_forwarding_and_drains() -> None:
    reader = _stream(b"good\n", b"\xff\xfe bad\n", b"after\n")
    with capture_logs() as logs:
        lines = await _forward(reader)

    assert lines == [format_line("web", STDOUT_COLOR, "good")]
    assert reader.at_eof()
    assert any(entry["event"] == "proc.out_decode_error" for entry in logs)


@pytest.mark.asyncio
async def test_oversized_line_stops_forwarding() -> None:
    reader = _stream(b"ok\n", b"x" * 64 + b"\n", b"later\n", limit=16)
    with capture_logs() as logs:
        lines = await _forward(reader)

    assert lines == [format_line("web", STDOUT_COLOR, "ok")]
    assert any(entry["event"] == "proc.out_overrun" for entry in logs)


@pytest.mark.asyncio
async def test_closed_sink_aborts_reader() -> None:
    multiplexer = Multiplexer(capacity=4)
    await multiplexer.close()

    with pytest.raises(SinkClosed):
        await read_and_forward(
            _stream(b"lost\n"),
            title="web",
            color=STDOUT_COLOR,
            sink=multiplexer,
            log=get_logger("test"),
        )


@pytest.mark.asyncio
async def test_missing_stream_is_a_no_op() -> None:
    multiplexer = Multiplexer(capacity=1)
    await read_and_forward(
        None, title="web", color=STDOUT_COLOR, sink=multiplexer, log=get_logger("test")
    )
    await discard_stream(None)
    assert len(multiplexer) == 0
