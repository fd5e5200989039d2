"""Non-blocking file helpers for the build pipeline.

Every helper suspends the calling coroutine while the filesystem call runs,
so independent pipelines interleave on the event loop. OSError surfaces as
FileSystemError.
"""
import asyncio
import os
import shutil
from pathlib import Path

from pagesmith.compiler.exceptions import FileSystemError


def _fs_error(e: OSError, path: Path) -> FileSystemError:
    return FileSystemError(e.strerror or str(e), path=str(path))


async def read_text(path: Path) -> str:
    try:
        return await asyncio.to_thread(path.read_text, encoding="utf-8")
    except OSError as e:
        raise _fs_error(e, path) from e


async def read_bytes(path: Path) -> bytes:
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise _fs_error(e, path) from e


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_bytes(data)
    os.replace(tmp, path)


async def write_bytes(path: Path, data: bytes) -> None:
    """Write data to path, creating parent directories."""
    try:
        await asyncio.to_thread(_write, path, data)
    except OSError as e:
        raise _fs_error(e, path) from e


async def remove(path: Path) -> None:
    try:
        await asyncio.to_thread(path.unlink, missing_ok=True)
    except OSError as e:
        raise _fs_error(e, path) from e


def _symlink(target: Path, link: Path) -> None:
    link.parent.mkdir(parents=True, exist_ok=True)
    if link.is_symlink() or link.exists():
        if link.is_dir() and not link.is_symlink():
            shutil.rmtree(link)
        else:
            link.unlink()
    link.symlink_to(os.path.relpath(target, link.parent), target_is_directory=target.is_dir())


async def symlink(target: Path, link: Path) -> None:
    """Relative symlink at link pointing to target, replacing what was there."""
    try:
        await asyncio.to_thread(_symlink, target, link)
    except OSError as e:
        raise _fs_error(e, link) from e


def _copy(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, destination, dirs_exist_ok=True)
    else:
        shutil.copy2(source, destination)


async def copy(source: Path, destination: Path) -> None:
    try:
        await asyncio.to_thread(_copy, source, destination)
    except OSError as e:
        raise _fs_error(e, destination) from e


def _reset_directory(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


async def reset_directory(path: Path) -> None:
    """Remove path entirely and recreate it empty."""
    try:
        await asyncio.to_thread(_reset_directory, path)
    except OSError as e:
        raise _fs_error(e, path) from e
