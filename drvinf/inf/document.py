# drvinf/inf/document.py
# -*- coding: utf-8 -*-
"""
Line-oriented INF/SIF document store.

.inf and .sif files (and the emulated registry hives Windows setup keeps
in the same format) are INI-like, but real-world files break most INI
rules: sections repeat, lines continue with a trailing backslash, values
carry quoted commas and trailing comments. Many of these files are
digitally signed, so every edit rewrites only the targeted line and keeps
all other bytes (including line endings) as found.
"""
from __future__ import annotations

import codecs
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..core.exceptions import MalformedDocumentError, NotFoundError
from ..core.logger import get_logger
from ..core.utils import U
from . import packed as _packed
from .quoting import (
    has_unterminated_quote,
    index_of_unquoted,
    quote,
    split_ignoring_quoted,
    unquote,
)

PathLike = Union[str, Path]
LinePredicate = Callable[[str], bool]

# (content, line ending) pairs; the ending is "" only for a final unterminated line
_Line = Tuple[str, str]

EOF_MARKER = "\x1a"
DEFAULT_NEWLINE = "\r\n"

_LINE_RE = re.compile(r"([^\r\n]*)(\r\n|\r|\n|$)")
_CR_RUN_RE = re.compile(r"\r{2,}")


class DocumentEncoding(str, Enum):
    ASCII = "ascii"
    LATIN1 = "latin-1"
    UTF8 = "utf-8"
    UTF16_LE = "utf-16-le"
    UTF16_BE = "utf-16-be"


_BOMS: List[Tuple[bytes, DocumentEncoding]] = [
    (codecs.BOM_UTF8, DocumentEncoding.UTF8),
    (codecs.BOM_UTF16_LE, DocumentEncoding.UTF16_LE),
    (codecs.BOM_UTF16_BE, DocumentEncoding.UTF16_BE),
]


def detect_encoding(data: bytes) -> Tuple[DocumentEncoding, bytes]:
    """
    Encoding and byte-order mark of raw document bytes.

    Localized Windows editions ship UTF-16 files; everything without a BOM
    is read as Latin-1, which round-trips any OEM/ANSI code page byte.
    """
    for bom, enc in _BOMS:
        if data.startswith(bom):
            return enc, bom
    return DocumentEncoding.LATIN1, b""


def split_lines(text: str) -> List[_Line]:
    out: List[_Line] = []
    pos = 0
    n = len(text)
    while pos < n:
        m = _LINE_RE.match(text, pos)
        assert m is not None
        out.append((m.group(1), m.group(2)))
        pos = m.end()
    return out


# ---------------------------
# Line grammar
# ---------------------------

def is_section_header(line: str) -> bool:
    return line.lstrip(" ").startswith("[")


def is_comment(line: str) -> bool:
    s = line.lstrip(" ")
    return s.startswith(";") or s.startswith("#")


def section_name_of_header(line: str) -> Optional[str]:
    start = line.find("[")
    if start < 0:
        return None
    end = line.find("]", start + 1)
    if end <= start + 1:
        return None
    return line[start + 1:end]


def _header_matches(line: str, header_lower: str) -> bool:
    # a header may be followed by a comment, so this is a prefix match
    return line.lstrip(" ").lower().startswith(header_lower)


@dataclass
class KeyValuesLine:
    key: str
    values: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LineMatch:
    index: int
    text: str


def get_comma_separated_values(value: str) -> List[str]:
    """
    Split a value on unquoted commas after dropping an unquoted `;` comment
    tail. Fields are trimmed but keep their quotes.
    """
    cut = index_of_unquoted(value, ";")
    if cut is not None:
        value = value[:cut]
    if has_unterminated_quote(value):
        raise MalformedDocumentError(msg=f"Unterminated quote in value: {value.strip()}")
    return [v.strip() for v in split_ignoring_quoted(value, ",")]


def get_key(line: str) -> str:
    idx = index_of_unquoted(line, "=")
    if idx is None:
        return line.strip()
    return line[:idx].strip()


def get_key_and_values(line: str) -> KeyValuesLine:
    """
    `key = v1, "v,2" ; comment` -> KeyValuesLine("key", ["v1", '"v,2"']).
    Lines without `=` (AddReg directives, file lists) come back as the
    whole trimmed line with no values.
    """
    idx = index_of_unquoted(line, "=")
    if idx is None:
        return KeyValuesLine(line.strip(), [])
    return KeyValuesLine(line[:idx].strip(), get_comma_separated_values(line[idx + 1:]))


def join_broken_lines(lines: List[str]) -> List[str]:
    out: List[str] = []
    pending: Optional[str] = None
    for line in lines:
        if pending is not None:
            line = pending + line.lstrip(" ")
            pending = None
        if line.endswith("\\"):
            pending = line[:-1]
        else:
            out.append(line)
    if pending is not None:
        raise MalformedDocumentError(msg=f"Line continuation without a following line: {pending.strip()}")
    return out


def try_get_value(values: List[str], index: int) -> str:
    return values[index] if len(values) > index else ""


# ---------------------------
# Document
# ---------------------------

class TextDocument:
    """
    In-memory INF/SIF document.

    All mutations rebuild the whole text in one pass and commit it at the
    end, so a failure leaves the previous text untouched. Section views
    are recomputed from the current text; both caches are dropped on any
    mutation. Not thread-safe.
    """

    def __init__(
        self,
        file_name: str = "",
        text: str = "",
        encoding: DocumentEncoding = DocumentEncoding.ASCII,
        bom: bytes = b"",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.file_name = file_name
        self.encoding = encoding
        self.is_modified = False
        self.logger = logger or get_logger("document")
        self._bom = bom
        self._text = text
        self._section_names_cache: Optional[List[str]] = None
        self._section_cache: Dict[str, List[str]] = {}

    # ---- loading / saving ----

    @classmethod
    def from_bytes(cls, data: bytes, file_name: Optional[str] = None, **kwargs):
        doc = cls(**kwargs) if file_name is None else cls(file_name, **kwargs)
        doc.load_bytes(data)
        return doc

    @classmethod
    def from_path(cls, path: PathLike, **kwargs):
        p = Path(path)
        doc = cls(p.name, **kwargs)
        doc.read(p)
        return doc

    @classmethod
    def from_packed_path(cls, path: PathLike, file_name: str, **kwargs):
        """`path` is the cabinet (name.ex_), `file_name` the member (name.ext)."""
        doc = cls(file_name, **kwargs)
        doc.read_packed(path)
        return doc

    def load_bytes(self, data: bytes) -> None:
        enc, bom = detect_encoding(data)
        try:
            text = data[len(bom):].decode(enc.value)
        except UnicodeDecodeError as e:
            raise MalformedDocumentError(
                msg=f"Cannot decode {self.file_name or 'document'} as {enc.value}",
                cause=e,
            )
        # Windows 2000 hivesys.inf has "\r\r\n" line breaks, which would
        # otherwise split continued values across a phantom blank line.
        text = _CR_RUN_RE.sub("\r", text)
        self.encoding = enc
        self._bom = bom
        self._text = text
        self.is_modified = False
        self._clear_cache()
        self.logger.debug("Loaded %s: %d bytes, encoding=%s", self.file_name or "<memory>", len(data), enc.value)

    def to_bytes(self) -> bytes:
        try:
            return self._bom + self._text.encode(self.encoding.value)
        except UnicodeEncodeError as e:
            raise MalformedDocumentError(
                msg=f"Text of {self.file_name or 'document'} is not representable in {self.encoding.value}",
                cause=e,
            )

    def read(self, path: PathLike) -> None:
        self.load_bytes(U.read_file(path))

    def read_from_directory(self, directory: PathLike) -> None:
        self.read(Path(directory) / self._require_file_name())

    def save(self, path: PathLike) -> None:
        U.write_file(path, self.to_bytes())
        self.is_modified = False
        self.logger.debug("Saved %s", path)

    def save_to_directory(self, directory: PathLike) -> None:
        self.save(Path(directory) / self._require_file_name())

    @property
    def packed_file_name(self) -> str:
        return _packed.packed_file_name(self._require_file_name())

    def read_packed(self, path: PathLike) -> None:
        self.load_bytes(_packed.unpack(U.read_file(path), self._require_file_name()))

    def read_packed_from_directory(self, directory: PathLike) -> None:
        self.read_packed(Path(directory) / self.packed_file_name)

    def save_packed(self, path: PathLike) -> None:
        U.write_file(path, _packed.pack(self.to_bytes(), self._require_file_name()))
        self.is_modified = False
        self.logger.debug("Saved packed %s", path)

    def save_packed_to_directory(self, directory: PathLike) -> None:
        self.save_packed(Path(directory) / self.packed_file_name)

    def _require_file_name(self) -> str:
        if not self.file_name:
            raise ValueError(f"{type(self).__name__} has not been initialized with a file name")
        return self.file_name

    # ---- raw access ----

    @property
    def text(self) -> str:
        return self._text

    @property
    def newline(self) -> str:
        m = re.search(r"\r\n|\r|\n", self._text)
        return m.group(0) if m else DEFAULT_NEWLINE

    @property
    def lines(self) -> List[str]:
        return [content for content, _ in split_lines(self._text)]

    def _clear_cache(self) -> None:
        self._section_names_cache = None
        self._section_cache = {}

    # ---- sections ----

    @property
    def section_names(self) -> List[str]:
        if self._section_names_cache is None:
            self._section_names_cache = self.list_sections()
        return self._section_names_cache

    def list_sections(self) -> List[str]:
        """Every header name once (case-insensitive), in first-seen order."""
        out: List[str] = []
        seen = set()
        for content, _ in split_lines(self._text):
            if not is_section_header(content):
                continue
            name = section_name_of_header(content)
            if name is None or name.lower() in seen:
                continue
            seen.add(name.lower())
            out.append(name)
        return out

    def has_section(self, section_name: str) -> bool:
        wanted = section_name.lower()
        return any(n.lower() == wanted for n in self.section_names)

    def get_section(self, section_name: str) -> List[str]:
        """
        Non-blank, non-comment lines of every occurrence of the section,
        in file order.
        """
        key = section_name.lower()
        cached = self._section_cache.get(key)
        if cached is not None:
            return cached
        header = f"[{key}]"
        result: List[str] = []
        inside = False
        for content, _ in split_lines(self._text):
            if is_section_header(content):
                # the same section can appear several times in one file
                inside = _header_matches(content, header)
                continue
            if inside and not is_comment(content) and content.strip():
                result.append(content)
        self._section_cache[key] = result
        self.logger.debug("Section [%s]: %d line(s)", section_name, len(result))
        return result

    def get_values_of_key_in_section(self, section_name: str, key: str) -> List[str]:
        wanted = key.lower()
        for line in self.get_section(section_name):
            if get_key(line).lower() == wanted:
                return get_key_and_values(line).values
        return []

    def get_logical_section(self, section_name: str) -> List[str]:
        """get_section() with backslash-continued lines joined."""
        return join_broken_lines(self.get_section(section_name))

    # ---- line lookup ----

    def find_line(
        self,
        section_name: str,
        predicate: LinePredicate,
        append_broken_lines: bool = False,
    ) -> Optional[LineMatch]:
        """
        First line of the section (any occurrence) accepted by `predicate`.

        With `append_broken_lines`, a line ending in a backslash is joined
        with its continuation lines; the match text is the logical line while
        the index still addresses the first physical line.
        """
        header = f"[{section_name.lower()}]"
        lines = split_lines(self._text)
        inside = False
        for index, (content, _) in enumerate(lines):
            if is_section_header(content):
                inside = _header_matches(content, header)
                continue
            if not inside or not predicate(content):
                continue
            found = content
            if append_broken_lines:
                cur = index
                line = content
                while line.endswith("\\"):
                    cur += 1
                    if cur >= len(lines):
                        raise MalformedDocumentError(
                            msg=f"Line continuation at end of file in [{section_name}]",
                            context={"line": index},
                        )
                    found = found[:-1]
                    line = lines[cur][0]
                    found += line.lstrip(" ")
            return LineMatch(index, found)
        return None

    def get_line_index(
        self,
        section_name: str,
        predicate: LinePredicate,
        append_broken_lines: bool = False,
    ) -> int:
        m = self.find_line(section_name, predicate, append_broken_lines)
        return m.index if m is not None else -1

    def require_line(
        self,
        section_name: str,
        predicate: LinePredicate,
        append_broken_lines: bool = False,
        what: str = "line",
    ) -> LineMatch:
        m = self.find_line(section_name, predicate, append_broken_lines)
        if m is None:
            raise NotFoundError(
                msg=f"{what} was not found in [{section_name}] of {self.file_name or 'document'}",
                context={"section": section_name},
            )
        return m

    def get_line_index_of(self, section_name: str, line_to_find: str) -> int:
        wanted = line_to_find.lower()
        return self.get_line_index(section_name, lambda line: line.lower() == wanted)

    def find_line_by_key(self, section_name: str, key: str) -> Optional[LineMatch]:
        wanted = key.lower()
        return self.find_line(
            section_name,
            lambda line: not is_comment(line) and get_key(line).lower() == wanted,
        )

    def get_line_index_by_key(self, section_name: str, key: str) -> int:
        m = self.find_line_by_key(section_name, key)
        return m.index if m is not None else -1

    # ---- mutation ----

    def _commit(self, lines: List[_Line], what: str, index: int) -> None:
        self._text = "".join(content + ending for content, ending in lines)
        self.is_modified = True
        self._clear_cache()
        self.logger.debug("%s: %s at line %d", self.file_name or "<memory>", what, index)

    def _check_index(self, index: int, count: int, *, allow_end: bool = False) -> None:
        upper = count if allow_end else count - 1
        if index < 0 or index > upper:
            raise NotFoundError(
                msg=f"Line index {index} is out of range in {self.file_name or 'document'}",
                context={"lines": count},
            )

    def _insert(self, lines: List[_Line], index: int, new_line: str, nl: str) -> List[_Line]:
        out = list(lines)
        if index == len(out) and out and out[-1][1] == "":
            out[-1] = (out[-1][0], nl)
        out.insert(index, (new_line, nl))
        return out

    def insert_line(self, index: int, line_to_insert: str) -> None:
        lines = split_lines(self._text)
        self._check_index(index, len(lines), allow_end=True)
        self._commit(self._insert(lines, index, line_to_insert, self.newline), "insert", index)

    def update_line(self, index: int, updated_line: Optional[str], remove_trailing_broken_lines: bool = False) -> None:
        """
        Replace physical line `index` (None deletes it). With
        `remove_trailing_broken_lines`, continuation lines of a broken line
        are dropped as well.
        """
        lines = split_lines(self._text)
        self._check_index(index, len(lines))
        last = index
        if remove_trailing_broken_lines:
            while lines[last][0].endswith("\\") and last + 1 < len(lines):
                last += 1
        replacement: List[_Line] = []
        if updated_line is not None:
            replacement.append((updated_line, lines[last][1]))
        out = lines[:index] + replacement + lines[last + 1:]
        self._commit(out, "update" if updated_line is not None else "delete", index)

    def delete_line(self, index: int, remove_trailing_broken_lines: bool = True) -> None:
        self.update_line(index, None, remove_trailing_broken_lines)

    def append_line(self, line_to_append: str) -> None:
        """
        Append at end of file. A trailing EOF marker (0x1A, optionally
        followed by CRLF) is removed first; setup ignores anything after it.
        """
        nl = self.newline
        text = self._text
        if text.endswith(EOF_MARKER):
            text = text[:-1]
        elif text.endswith(EOF_MARKER + "\r\n"):
            text = text[:-3]
        if text and not text.endswith(("\r", "\n")):
            text += nl
        text += line_to_append + nl
        lines = split_lines(text)
        self._commit(lines, "append", len(lines) - 1)

    def add_section(self, section_name: str) -> None:
        # empty sections are valid (e.g. [files.none])
        self.append_line("")
        self.append_line(f"[{section_name}]")

    def _last_header_index(self, section_name: str, lines: List[_Line]) -> int:
        header = f"[{section_name.lower()}]"
        last = -1
        for index, (content, _) in enumerate(lines):
            if _header_matches(content, header):
                last = index
        return last

    @staticmethod
    def _last_non_empty_index(lines: List[_Line], start: int) -> int:
        last = start - 1
        for index in range(start, len(lines)):
            content = lines[index][0]
            # nothing after the EOF marker is read by setup
            if is_section_header(content) or content.startswith(EOF_MARKER):
                return last
            if content.strip():
                last = index
        return last

    def append_line_to_section(self, section_name: str, line_to_append: str) -> None:
        """Insert after the last non-blank line of the section's last occurrence."""
        lines = split_lines(self._text)
        header_index = self._last_header_index(section_name, lines)
        if header_index < 0:
            raise NotFoundError(
                msg=f"Section [{section_name}] was not found in {self.file_name or 'document'}",
                context={"section": section_name},
            )
        insert_at = self._last_non_empty_index(lines, header_index + 1) + 1
        self._commit(self._insert(lines, insert_at, line_to_append, self.newline), "append-to-section", insert_at)

    # ---- quoting passthrough ----

    @staticmethod
    def quote(s: str) -> str:
        return quote(s)

    @staticmethod
    def unquote(s: str) -> str:
        return unquote(s)
