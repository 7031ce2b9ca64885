"""Process execution and streaming output handling.

This module runs subprocesses on the asyncio event loop and hands their
output to middleware chunk by chunk, as soon as the child produces it.

Example:
    ```python
    from littlefs_upload.utils.stream_process import run_command, OutputMiddleware

    class PrefixMiddleware(OutputMiddleware[str]):
        def process(self, chunk: str, stream_type: str) -> str:
            print(f"[{stream_type}] {chunk}", end="")
            return chunk

    return_code, stdout, stderr = await run_command(
        ["mklittlefs", "--help"], middleware=PrefixMiddleware()
    )
    ```
"""

import asyncio
import codecs
from typing import Generic, TypeAlias, TypeVar


T = TypeVar("T")  # Type of processed output

# (return_code, stdout chunks, stderr chunks)
ProcessResult: TypeAlias = tuple[int, list[T], list[T]]

READ_CHUNK_SIZE = 4096


class OutputMiddleware(Generic[T]):
    """Base class for processing command output streams.

    Implementations receive decoded chunks in the order the child wrote them
    to each stream. Chunks are not line-aligned.
    """

    def process(self, chunk: str, stream_type: str) -> T:
        """Process a chunk of output from a subprocess stream.

        Args:
            chunk: Decoded text read from the process
            stream_type: Either "stdout" or "stderr"

        Returns:
            Processed output of type T

        Raises:
            NotImplementedError: Subclasses must implement this method
        """
        raise NotImplementedError()


async def _stream_output(
    stream: asyncio.StreamReader,
    stream_type: str,
    middleware: OutputMiddleware[T],
) -> list[T]:
    """Forward every chunk of ``stream`` to the middleware until EOF."""
    # Incremental decoding keeps multi-byte characters split across reads intact
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    captured: list[T] = []
    while True:
        data = await stream.read(READ_CHUNK_SIZE)
        text = decoder.decode(data, final=not data)
        if text:
            processed = middleware.process(text, stream_type)
            if processed is not None:
                captured.append(processed)
        if not data:
            break
    return captured


async def run_command(
    cmd: list[str],
    middleware: OutputMiddleware[T],
) -> ProcessResult[T]:
    """Run a command and process its output through middleware.

    Both output streams are drained concurrently. The return code is read
    only after both reach EOF, so all output has been processed by the time
    this coroutine returns.

    Args:
        cmd: Executable followed by its arguments
        middleware: Middleware receiving each output chunk

    Returns:
        Tuple containing the return code and the processed stdout and
        stderr chunks

    Raises:
        OSError: If the executable cannot be started
    """
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    assert process.stdout is not None
    assert process.stderr is not None

    stdout_chunks, stderr_chunks = await asyncio.gather(
        _stream_output(process.stdout, "stdout", middleware),
        _stream_output(process.stderr, "stderr", middleware),
    )
    return_code = await process.wait()

    return return_code, stdout_chunks, stderr_chunks
