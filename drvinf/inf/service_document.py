# drvinf/inf/service_document.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from ..core.exceptions import MalformedDocumentError, NotFoundError
from .document import TextDocument, get_comma_separated_values
from .quoting import index_of_unquoted

SERVICE_BOOT_START = 0


def _value_start(line: str) -> int:
    idx = index_of_unquoted(line, "=")
    if idx is None:
        raise MalformedDocumentError(msg=f"Expected 'key = value' line, got: {line.strip()}")
    return idx + 1


def _first_value(line: str, value_start: int) -> str:
    return get_comma_separated_values(line[value_start:])[0]


class ServiceDocument(TextDocument):
    """Documents holding AddService install sections (StartType, LoadOrderGroup ...)."""

    def set_service_to_boot_start(self, service_install_section: str) -> bool:
        """
        Rewrite StartType to SERVICE_BOOT_START. A line that already says 0
        is left alone so a signed file is not touched without need.
        Returns True when the document changed.
        """
        m = self.find_line_by_key(service_install_section, "StartType")
        if m is None:
            raise NotFoundError(
                msg=f"StartType was not found in [{service_install_section}] of {self.file_name or 'document'}",
                context={"section": service_install_section},
            )
        start = _value_start(m.text)
        raw = _first_value(m.text, start)
        if raw.lower().startswith("0x"):
            raw = raw[2:]
        try:
            start_type = int(raw)
        except ValueError:
            start_type = -1
        if start_type == SERVICE_BOOT_START:
            self.logger.debug("[%s] is already boot start", service_install_section)
            return False
        self.update_line(m.index, m.text[:start] + " 0 ;SERVICE_BOOT_START")
        self.logger.info("[%s] StartType set to boot start", service_install_section)
        return True

    def set_service_load_order_group(self, service_install_section: str, load_order_group: str) -> bool:
        m = self.find_line_by_key(service_install_section, "LoadOrderGroup")
        if m is None:
            self.append_line_to_section(service_install_section, f"LoadOrderGroup = {load_order_group}")
            return True
        start = _value_start(m.text)
        existing = _first_value(m.text, start)
        if existing.lower() == load_order_group.lower():
            return False
        self.update_line(m.index, m.text[:start] + " " + load_order_group)
        return True
