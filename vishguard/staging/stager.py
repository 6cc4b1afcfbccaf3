"""
Artifact Stager

Copies an opaque input stream into the staging directory and derives the
content fingerprint used as the cache key.

Design Decisions:
- Content is written to a ".part" file and renamed once fully drained, so a
  staged file under its final name is always complete
- The fingerprint is a SHA-256 over the bytes only, never the name
- File operations are async-friendly using aiofiles
"""

import asyncio
import hashlib
import inspect
import itertools
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
import structlog

from vishguard.errors import IOFailure
from vishguard.models import Artifact, InputHandle

logger = structlog.get_logger(__name__)

MAX_NAME_LENGTH = 120
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")


def generate_id() -> str:
    """Generate a unique ID for a staged file."""
    return uuid.uuid4().hex[:12]


def sanitize_name(hint: str | None) -> str | None:
    """Reduce a name hint to a safe basename, or None if nothing usable is left."""
    if not hint:
        return None

    # Drop any directory part, whichever separator the caller used
    name = re.split(r"[\\/]", hint.strip())[-1]
    name = _UNSAFE_CHARS.sub("_", name).strip(" ._")

    if not name or len(name) > MAX_NAME_LENGTH:
        return None
    return name


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ArtifactStager:
    """Stages input handles into local files.

    Example:
        stager = ArtifactStager(Path("/tmp/staging"))
        artifact = await stager.stage(InputHandle.from_path("call.m4a"))
        try:
            ...
        finally:
            await stager.release(artifact)
    """

    def __init__(self, staging_dir: Path, chunk_size: int = 64 * 1024):
        self.staging_dir = Path(staging_dir)
        self.chunk_size = chunk_size
        self._counter = itertools.count(1)

    def fallback_name(self) -> str:
        """Name used when the hint is missing or unusable."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        return f"recording_{stamp}_{next(self._counter)}.bin"

    async def stage(self, handle: InputHandle) -> Artifact:
        """Drain the handle's stream into a staged file.

        Args:
            handle: Source stream opener plus optional name hint.

        Returns:
            Artifact describing the complete staged file.

        Raises:
            IOFailure: If the source cannot be read or the file cannot be written.
        """
        display_name = sanitize_name(handle.name) or self.fallback_name()
        final_path = self.staging_dir / f"{generate_id()}_{display_name}"
        part_path = final_path.with_name(final_path.name + ".part")

        try:
            await aiofiles.os.makedirs(self.staging_dir, exist_ok=True)
        except OSError as e:
            raise IOFailure(f"Cannot create staging directory {self.staging_dir}: {e}") from e

        digest = hashlib.sha256()
        size = 0
        completed = False

        try:
            try:
                source = handle.opener()
            except Exception as e:
                raise IOFailure(f"Cannot open input {handle.name or '<stream>'}: {e}") from e

            try:
                async with aiofiles.open(part_path, "wb") as out:
                    while True:
                        chunk = await self._read_chunk(source)
                        if not chunk:
                            break
                        digest.update(chunk)
                        size += len(chunk)
                        await out.write(chunk)
            finally:
                await self._close_source(source)

            await aiofiles.os.rename(part_path, final_path)
            completed = True

        except (OSError, ValueError) as e:
            # ValueError is what closed or detached streams raise on read
            raise IOFailure(f"Staging {display_name} failed: {e}") from e

        finally:
            if not completed:
                await self._remove(part_path)

        artifact = Artifact(
            local_path=final_path,
            display_name=display_name,
            size_bytes=size,
            fingerprint=digest.hexdigest(),
        )
        logger.info(
            "artifact_staged",
            display_name=display_name,
            size_bytes=size,
            fingerprint=artifact.fingerprint[:16],
        )
        return artifact

    async def release(self, artifact: Artifact) -> None:
        """Remove the artifact's backing file. Safe to call more than once."""
        await self._remove(artifact.local_path)
        logger.debug("artifact_released", path=str(artifact.local_path))

    async def _read_chunk(self, source: Any) -> bytes:
        read = source.read
        if inspect.iscoroutinefunction(read):
            chunk = await read(self.chunk_size)
        else:
            # Blocking file reads go to a worker thread
            chunk = await _maybe_await(await asyncio.to_thread(read, self.chunk_size))

        if chunk is None:
            return b""
        if not isinstance(chunk, (bytes, bytearray, memoryview)):
            raise IOFailure(f"Input stream yielded {type(chunk).__name__}, expected bytes")
        return bytes(chunk)

    async def _close_source(self, source: Any) -> None:
        close = getattr(source, "close", None)
        if close is None:
            return
        try:
            await _maybe_await(close())
        except OSError as e:
            logger.warning("input_close_failed", error=str(e))

    async def _remove(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("staged_file_remove_failed", path=str(path), error=str(e))
