"""File system actions: stats, chunked reads, and appends.

Large files are never loaded into the prompt wholesale. The model asks for
``readFileStats`` first, pages through content with ``readFileChunk``, and can
only grow a file with ``appendFileChunk``.
"""

from itertools import islice
from pathlib import Path
from typing import Any

from coder_cli.actions.models import ActionResult, FileChunkResult, FileStatsResult
from coder_cli.logging import get_logger

log = get_logger(__name__)


async def read_file_stats(params: dict[str, Any]) -> FileStatsResult:
    """Get file statistics (size, line count, existence).

    ``lineCount`` is the number of newline-separated segments of the whole
    file, so a file without a trailing newline still counts its last partial
    line, and a file ending in a newline counts an empty trailing segment.
    """
    path = Path(str(params["path"]))

    try:
        stats = path.stat()
        if not path.is_file():
            return FileStatsResult(
                success=False,
                exists=False,
                message=f"Path exists but is not a file: {path}",
            )
        content = path.read_bytes().decode("utf-8", errors="replace")
    except FileNotFoundError:
        return FileStatsResult(
            success=True,
            exists=False,
            size=0,
            line_count=0,
            message="File does not exist",
        )
    except OSError as e:
        log.error("Error getting file stats", path=str(path), error=str(e))
        return FileStatsResult(
            success=False,
            exists=False,
            message=f"Error getting file stats: {e}",
        )

    return FileStatsResult(
        success=True,
        exists=True,
        size=stats.st_size,
        line_count=len(content.split("\n")),
        message="File stats retrieved successfully",
    )


def _coerce_line_arg(params: dict[str, Any], key: str, minimum: int) -> int:
    value = int(params[key])
    if value < minimum:
        raise ValueError(f'Parameter "{key}" must be >= {minimum}, got {value}')
    return value


async def read_file_chunk(params: dict[str, Any]) -> FileChunkResult:
    """Read ``lineCount`` lines starting at 0-indexed ``startLine``.

    The file is streamed line by line and reading stops as soon as the
    requested window is filled.
    """
    path = Path(str(params["path"]))
    start_line = _coerce_line_arg(params, "startLine", 0)
    line_count = _coerce_line_arg(params, "lineCount", 1)

    try:
        path.stat()
    except FileNotFoundError:
        return FileChunkResult(success=False, message="File does not exist")
    except OSError as e:
        log.error("Error reading file chunk", path=str(path), error=str(e))
        return FileChunkResult(success=False, message=f"Error reading file chunk: {e}")

    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            window = islice(handle, start_line, start_line + line_count)
            lines = [line.rstrip("\n") for line in window]
    except OSError as e:
        log.error("File stream error", path=str(path), error=str(e))
        return FileChunkResult(success=False, message=f"File stream error: {e}")

    if not lines:
        return FileChunkResult(
            success=True,
            content="",
            read_lines=0,
            is_eof=True,
            message="File is empty",
        )

    return FileChunkResult(
        success=True,
        content="\n".join(lines),
        read_lines=len(lines),
        is_eof=len(lines) < line_count,
        message=f"Read {len(lines)} lines from file",
    )


async def append_file_chunk(params: dict[str, Any]) -> ActionResult:
    """Append content to the end of a file, creating it if needed."""
    path = Path(str(params["path"]))
    content = str(params["content"])

    try:
        with open(path, "a", encoding="utf-8", newline="") as handle:
            handle.write(content)
    except OSError as e:
        log.error("Error appending to file", path=str(path), error=str(e))
        return ActionResult(success=False, message=f"Error appending to file: {e}")

    return ActionResult(success=True, message="Content appended successfully")
