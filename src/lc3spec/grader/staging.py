"""
Sandbox context and file staging.

Nothing here changes the process working directory: each call gets the
Sandbox explicitly, resolves paths against `sandbox.workdir`, and runs the
assembler with `cwd=sandbox.workdir`.
"""

from __future__ import annotations

import glob
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from lc3spec.config import ASSEMBLER_CMD, OBJECT_EXT, SOURCE_EXT, debug_enabled
from lc3spec.sim.errors import DoesNotAssembleError, InvalidFilename, LC3Error


def _dbg(msg: str) -> None:
    if debug_enabled():
        print(f"[SANDBOX] {msg}")


@dataclass
class Sandbox:
    """One temporary working directory plus the directory sources come from."""
    workdir: Path
    origin_dir: Path

    @classmethod
    def create(cls, origin_dir: Optional[os.PathLike] = None, *, prefix: str = "lc3spec-") -> "Sandbox":
        origin = Path(origin_dir) if origin_dir is not None else Path.cwd()
        workdir = Path(tempfile.mkdtemp(prefix=prefix))
        _dbg(f"created {workdir} (sources from {origin})")
        return cls(workdir=workdir, origin_dir=origin.resolve())

    def path(self, name: os.PathLike | str) -> Path:
        return self.workdir / Path(os.fspath(name)).name

    @property
    def exists(self) -> bool:
        return self.workdir.is_dir()

    def cleanup(self) -> None:
        shutil.rmtree(self.workdir, ignore_errors=True)
        _dbg(f"removed {self.workdir}")

    def __enter__(self) -> "Sandbox":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()


def _stem(name: str) -> str:
    root, ext = os.path.splitext(name)
    return root if ext else name


def _siblings(directory: Path, stem: str) -> List[Path]:
    """Files in `directory` whose basename (extension dropped) is `stem`."""
    pattern = os.path.join(glob.escape(str(directory)), glob.escape(stem) + "*")
    found = [Path(p) for p in glob.glob(pattern)]
    return sorted(p for p in found if p.is_file() and _stem(p.name) == stem)


def ensure_file_present(sandbox: Sandbox, filename) -> Path:
    """Copy `filename` and every file sharing its basename into the sandbox.

    Relative names are looked up in the sandbox's origin directory. Nothing is
    copied when a file with that basename is already staged.
    """
    if filename is None or not os.fspath(filename):
        raise InvalidFilename("Filename must not be empty")
    src = Path(os.fspath(filename))
    stem = _stem(src.name)

    if not _siblings(sandbox.workdir, stem):
        src_dir = src.parent if src.is_absolute() else sandbox.origin_dir / src.parent
        for f in _siblings(src_dir, stem):
            shutil.copy2(f, sandbox.workdir / f.name)
            _dbg(f"staged {f}")

    if not _siblings(sandbox.workdir, stem):
        raise DoesNotAssembleError(f"Cannot find {filename}")
    return sandbox.workdir / src.name


def ensure_assembled(sandbox: Sandbox, filename, assembler: Optional[Sequence[str]] = None) -> Path:
    """Check that a staged file assembles; return the file that was checked.

    Without an extension the source file wins over the object file. A source
    file must pass the external assembler; an object file must be non-empty.
    """
    path = sandbox.path(filename)

    if path.suffix not in (SOURCE_EXT, OBJECT_EXT):
        asm_file = path.with_name(path.name + SOURCE_EXT)
        obj_file = path.with_name(path.name + OBJECT_EXT)
        if asm_file.exists():
            path = asm_file
        elif obj_file.exists():
            path = obj_file
        else:
            raise DoesNotAssembleError(f"Cannot find {asm_file.name} or {obj_file.name}")

    if path.suffix == SOURCE_EXT:
        if not path.is_file():
            raise DoesNotAssembleError(f"Cannot find {path.name}")
        cmd = list(assembler) if assembler else [ASSEMBLER_CMD]
        _dbg(f"assembling {path.name} with {cmd[0]}")
        try:
            proc = subprocess.run(
                cmd + [str(path)],
                cwd=str(sandbox.workdir),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError as ex:
            raise LC3Error(f"Assembler not found: {cmd[0]}") from ex
        if proc.returncode != 0:
            raise DoesNotAssembleError(f"File does not assemble: {path.name}\n{proc.stdout}")
    else:
        if not path.is_file() or path.stat().st_size == 0:
            raise DoesNotAssembleError(f"File has zero size or does not exist: {path.name}")
    return path


def assemble_and_load(sandbox: Sandbox, lc3, text: str, *, name: str = "lc3spec-tmp",
                      assembler: Optional[Sequence[str]] = None) -> bool:
    """Assemble an inline program, load it, then delete every file it produced."""
    fd, tmp_path = tempfile.mkstemp(prefix=name, suffix=SOURCE_EXT, dir=str(sandbox.workdir))
    prefix = tmp_path[: -len(SOURCE_EXT)]
    try:
        with os.fdopen(fd, "w") as f:
            f.write(text)
            if not text.endswith("\n"):
                f.write("\n")
        ensure_assembled(sandbox, tmp_path, assembler)
        return lc3.load_file(prefix)
    finally:
        # an empty prefix would match everything
        if prefix and os.path.basename(prefix):
            for p in glob.glob(glob.escape(prefix) + "*"):
                os.unlink(p)
