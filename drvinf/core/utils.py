from __future__ import annotations
import json
import logging
import os
import stat
from pathlib import Path
from typing import Any, Union

from .exceptions import Fatal, wrap_io

PathLike = Union[str, Path]

class U:
    @staticmethod
    def die(logger: logging.Logger, msg: str, code: int = 1) -> None:
        logger.error(msg)
        raise Fatal(code, msg)
    @staticmethod
    def ensure_dir(p: Path) -> None:
        p.mkdir(parents=True, exist_ok=True)
    @staticmethod
    def json_dump(obj: Any) -> str:
        try:
            return json.dumps(obj, indent=2, sort_keys=True, default=str)
        except Exception:
            return repr(obj)
    @staticmethod
    def read_file(path: PathLike) -> bytes:
        """Whole-file read. Any OS-level failure surfaces as DocumentIOError."""
        p = Path(path)
        try:
            return p.read_bytes()
        except PermissionError as e:
            raise wrap_io(f"Access denied, could not read file: {p}", e, path=str(p))
        except OSError as e:
            raise wrap_io(f"Could not read file: {p}", e, path=str(p))
    @staticmethod
    def clear_readonly_attribute(path: PathLike) -> None:
        p = Path(path)
        if not p.exists():
            return
        mode = p.stat().st_mode
        if not mode & stat.S_IWRITE:
            os.chmod(p, mode | stat.S_IWRITE)
    @staticmethod
    def write_file(path: PathLike, data: bytes) -> None:
        p = Path(path)
        try:
            U.clear_readonly_attribute(p)
            p.write_bytes(data)
        except OSError as e:
            raise wrap_io(f"Could not write file: {p}", e, path=str(p))
