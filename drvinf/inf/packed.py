# drvinf/inf/packed.py
# -*- coding: utf-8 -*-
"""
Packed documents: `name.ext` stored as a single-file cabinet named `name.ex_`.
"""
from __future__ import annotations

import logging
from typing import List

from cabarchive import CabArchive, CabFile, CorruptionError, NotSupportedError

from ..core.exceptions import MalformedDocumentError, NotFoundError
from ..core.logger import get_logger

logger: logging.Logger = get_logger("packed")


def packed_file_name(file_name: str) -> str:
    """nettcpip.inf -> nettcpip.in_"""
    if not file_name:
        raise ValueError("packed_file_name: empty file name")
    return file_name[:-1] + "_"


def unpack(data: bytes, inner_file_name: str) -> bytes:
    """Extract `inner_file_name` (case-insensitive) from a cabinet."""
    try:
        arc = CabArchive(data)
    except (CorruptionError, NotSupportedError) as e:
        raise MalformedDocumentError(
            msg=f"Cannot unpack '{packed_file_name(inner_file_name)}', cab file is corrupted",
            cause=e,
            context={"inner_file": inner_file_name},
        )
    wanted = inner_file_name.lower()
    for name, cf in arc.items():
        if name.lower() == wanted:
            logger.debug("Unpacked %s (%d bytes)", name, len(cf.buf or b""))
            return bytes(cf.buf or b"")
    raise NotFoundError(
        msg=f"Cabinet does not contain the expected file '{inner_file_name}'",
        context={"members": sorted(arc.keys())},
    )


def pack(data: bytes, inner_file_name: str) -> bytes:
    """Build a compressed single-file cabinet holding `data` as `inner_file_name`."""
    arc = CabArchive()
    arc[inner_file_name] = CabFile(data)
    packed = arc.save(compress=True)
    logger.debug("Packed %s: %d -> %d bytes", inner_file_name, len(data), len(packed))
    return packed


def member_names(data: bytes) -> List[str]:
    try:
        arc = CabArchive(data)
    except (CorruptionError, NotSupportedError) as e:
        raise MalformedDocumentError(msg="Cannot list cabinet members, cab file is corrupted", cause=e)
    return sorted(arc.keys())
