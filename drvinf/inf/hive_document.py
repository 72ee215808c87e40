# drvinf/inf/hive_document.py
# -*- coding: utf-8 -*-
"""
Registry hives emulated as INF files (hivesys.inf, hivesft.inf, ...).

Text-mode setup builds the initial registry from the [AddReg] section of
these files, one directive per value:

    HKLM,"SYSTEM\\CurrentControlSet\\Control\\Windows","CSDVersion",0x00010001,0x200
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

from ..core.exceptions import MalformedDocumentError, NotFoundError
from .document import LineMatch, TextDocument, get_comma_separated_values
from .quoting import unquote
from .registry_codec import (
    RegistryValue,
    RegistryValueKind,
    decode,
    encode,
    format_multi_string,
    kind_from_flags,
    parse_type_flags,
    type_flags_hex,
)

ADD_REG_SECTION = "AddReg"
CURRENT_CONTROL_SET = r"SYSTEM\CurrentControlSet"


def registry_line_start(hive: str, key_name: str, value_name: Optional[str] = None) -> str:
    if value_name is None:
        return f'{hive},"{key_name}"'
    return f'{hive},"{key_name}","{value_name}"'


@dataclass(frozen=True)
class _RegistryLine:
    match: LineMatch
    prefix: str      # everything before the data field, up to and including its comma
    flags: int
    data: str


class HiveDocument(TextDocument):
    add_reg_section = ADD_REG_SECTION

    def _find_starting_with(self, line_start: str) -> Optional[LineMatch]:
        wanted = line_start.lower()
        return self.find_line(
            self.add_reg_section,
            lambda line: line.strip().lower().startswith(wanted),
            append_broken_lines=True,
        )

    def _find_registry_line(self, hive: str, key_name: str, value_name: str) -> Optional[_RegistryLine]:
        line_start = registry_line_start(hive, key_name, value_name)
        m = self._find_starting_with(line_start)
        if m is None:
            return None
        body = m.text.lstrip()
        lead = m.text[: len(m.text) - len(body)]
        rest = body[len(line_start):]
        if not rest.startswith(","):
            raise MalformedDocumentError(
                msg=f"Registry line without type flags in {self.file_name or 'document'}: {m.text.strip()}",
                context={"line": m.index},
            )
        comma = rest.find(",", 1)
        if comma < 0:
            flags_text, data = rest[1:], ""
            prefix = lead + body + ","
        else:
            flags_text, data = rest[1:comma], rest[comma + 1:]
            prefix = lead + body[: len(line_start) + comma + 1]
        return _RegistryLine(m, prefix, parse_type_flags(flags_text), data)

    def get_registry_value_data(self, hive: str, key_name: str, value_name: str) -> Optional[str]:
        """
        Data field of the directive; unquoted except for REG_MULTI_SZ, whose
        quoting is part of the list format. None when absent.
        """
        rl = self._find_registry_line(hive, key_name, value_name)
        if rl is None:
            return None
        data = rl.data.strip()
        if kind_from_flags(rl.flags) is RegistryValueKind.MULTI_STRING:
            return data
        return unquote(data)

    def get_registry_value(self, hive: str, key_name: str, value_name: str) -> RegistryValue:
        rl = self._find_registry_line(hive, key_name, value_name)
        if rl is None:
            raise NotFoundError(
                msg=f"'{value_name}' was not found under {hive}\\{key_name} in {self.file_name or 'document'}",
                context={"hive": hive, "key": key_name},
            )
        return decode(rl.data, kind_from_flags(rl.flags))

    def update_registry_value_data(self, hive: str, key_name: str, value_name: str, value_data: str) -> None:
        """Replace the (already formatted) data field, dropping any continuation lines."""
        rl = self._find_registry_line(hive, key_name, value_name)
        if rl is None:
            raise NotFoundError(
                msg=f"'{value_name}' key was not found in {self.file_name or 'document'}",
                context={"hive": hive, "key": key_name},
            )
        self.update_line(rl.match.index, rl.prefix + value_data, remove_trailing_broken_lines=True)

    def set_registry_value(
        self,
        key_name: str,
        value_name: str,
        kind: RegistryValueKind,
        value: Any,
        hive: str = "HKLM",
    ) -> None:
        """Update the directive in place, or append one to [AddReg]."""
        line = f"{registry_line_start(hive, key_name, value_name)},{type_flags_hex(kind)},{encode(value, kind)}"
        m = self._find_starting_with(registry_line_start(hive, key_name, value_name))
        if m is not None:
            self.update_line(m.index, line, remove_trailing_broken_lines=True)
            return
        if not self.has_section(self.add_reg_section):
            self.add_section(self.add_reg_section)
        self.append_line_to_section(self.add_reg_section, line)

    def contains_key(self, hive: str, key_name: str) -> bool:
        if self._find_starting_with(registry_line_start(hive, key_name)) is not None:
            return True
        return self._find_starting_with(f'{hive},"{key_name}\\') is not None


class SystemHiveDocument(HiveDocument):
    """hivesys.inf"""

    def __init__(self, file_name: str = "hivesys.inf", **kwargs: Any) -> None:
        super().__init__(file_name, **kwargs)

    def get_windows_product_type(self) -> Optional[str]:
        """'WinNT' or 'ServerNT' ('LanmanNT' only while promoting a domain controller)."""
        return self.get_registry_value_data(
            "HKLM", rf"{CURRENT_CONTROL_SET}\Control\ProductOptions", "ProductType"
        )

    def get_service_pack_version(self) -> int:
        # CSDVersion is 0x100 for SP1, 0x200 for SP2, ...
        data = self.get_registry_value_data("HKLM", rf"{CURRENT_CONTROL_SET}\Control\Windows", "CSDVersion")
        if data is None:
            raise NotFoundError(msg=f"CSDVersion was not found in {self.file_name}")
        return decode(data, RegistryValueKind.DWORD).data >> 8

    def set_current_control_set_value(
        self,
        key_name: str,
        value_name: str,
        kind: RegistryValueKind,
        value: Any,
        sub_key_name: str = "",
    ) -> None:
        if sub_key_name:
            key_name = f"{key_name}\\{sub_key_name}"
        self.set_registry_value(f"{CURRENT_CONTROL_SET}\\{key_name}", value_name, kind, value)

    def set_service_value(
        self,
        service_name: str,
        value_name: str,
        kind: RegistryValueKind,
        value: Any,
        sub_key_name: str = "",
    ) -> None:
        self.set_current_control_set_value(f"Services\\{service_name}", value_name, kind, value, sub_key_name)

    def get_service_group_order(self) -> List[str]:
        data = self.get_registry_value_data("HKLM", rf"{CURRENT_CONTROL_SET}\Control\ServiceGroupOrder", "List")
        if data is None:
            raise NotFoundError(msg=f"ServiceGroupOrder was not found in {self.file_name}")
        return [unquote(v) for v in get_comma_separated_values(data)]

    def set_service_group_order(self, groups: List[str]) -> None:
        self.update_registry_value_data(
            "HKLM", rf"{CURRENT_CONTROL_SET}\Control\ServiceGroupOrder", "List", format_multi_string(groups)
        )

    def add_service_groups_after_system_bus_extender(self, group_names: List[str]) -> None:
        order = self.get_service_group_order()
        wanted = {g.lower() for g in group_names}
        # drop existing entries, they may be in the wrong place
        order = [g for g in order if g.lower() not in wanted]
        if len(order) > 3:
            order[3:3] = list(group_names)
        else:
            self.logger.warning("%s: ServiceGroupOrder looks tampered with, groups not inserted", self.file_name)
        self.set_service_group_order(order)

    def add_device_to_critical_device_database(self, hardware_id: str, service_name: str, class_guid: str = "") -> None:
        key = "Control\\CriticalDeviceDatabase\\" + hardware_id.replace("\\", "#").lower()
        self.set_current_control_set_value(key, "Service", RegistryValueKind.STRING, service_name)
        if class_guid:
            self.set_current_control_set_value(key, "ClassGUID", RegistryValueKind.STRING, class_guid)

    def allocate_virtual_device_instance_id(self, device_class_name: str) -> str:
        key = rf"{CURRENT_CONTROL_SET}\Enum\Root\{device_class_name}"
        n = 0
        while self.contains_key("HKLM", f"{key}\\{n:04d}"):
            n += 1
        return f"{n:04d}"
