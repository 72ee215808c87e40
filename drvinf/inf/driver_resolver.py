# drvinf/inf/driver_resolver.py
# -*- coding: utf-8 -*-
"""
Hardware ID -> [Manufacturer] -> Models section -> Install section.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from ..core.logger import get_logger
from .document import KeyValuesLine, TextDocument, get_key_and_values
from .section_priority import SectionPriorityResolver

MANUFACTURER_SECTION = "Manufacturer"


def generic_hardware_id(hardware_id: str) -> str:
    """
    Strip the &SUBSYS... and &REV... qualifiers:
    PCI\\VEN_8086&DEV_100F&SUBSYS_075015AD&REV_01 -> PCI\\VEN_8086&DEV_100F
    """
    upper = hardware_id.upper()
    cut = len(hardware_id)
    # &REV can appear without &SUBSYS
    for marker in ("&SUBSYS", "&REV"):
        idx = upper.find(marker)
        if idx >= 0:
            cut = min(cut, idx)
    return hardware_id[:cut]


def is_root_device(hardware_id: str) -> bool:
    return hardware_id.lower().startswith("root\\")


@dataclass(frozen=True)
class ModelLine:
    manufacturer_key: str
    manufacturer_id: str
    models_section: str
    line: str
    entry: KeyValuesLine

    @property
    def install_section(self) -> str:
        return self.entry.values[0]

    @property
    def hardware_id(self) -> str:
        return self.entry.values[1]


class DriverSectionResolver:
    def __init__(
        self,
        document: TextDocument,
        priority: Optional[SectionPriorityResolver] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.document = document
        self.logger = logger or get_logger("resolver")
        self.priority = priority or SectionPriorityResolver(self.logger)

    def list_manufacturers(self) -> List[KeyValuesLine]:
        out: List[KeyValuesLine] = []
        for line in self.document.get_section(MANUFACTURER_SECTION):
            kv = get_key_and_values(line)
            if kv.values and kv.values[0]:
                out.append(kv)
        return out

    def list_manufacturer_ids(self) -> List[str]:
        return [kv.values[0] for kv in self.list_manufacturers()]

    def get_models_section_name(
        self, manufacturer_id: str, arch: str, minor_os_version: int, product_type: int
    ) -> Optional[str]:
        return self.priority.match_models_section(
            self.document.section_names, manufacturer_id, arch, minor_os_version, product_type
        )

    def iter_models(self, arch: str, minor_os_version: int, product_type: int) -> Iterator[ModelLine]:
        """Model lines with at least an install section and a hardware ID."""
        for mfr in self.list_manufacturers():
            manufacturer_id = mfr.values[0]
            section = self.get_models_section_name(manufacturer_id, arch, minor_os_version, product_type)
            if section is None:
                continue
            for line in self.document.get_section(section):
                entry = get_key_and_values(line)
                if len(entry.values) >= 2:
                    yield ModelLine(mfr.key, manufacturer_id, section, line, entry)

    def find_model(
        self, hardware_id: str, arch: str, minor_os_version: int, product_type: int
    ) -> Optional[ModelLine]:
        wanted = hardware_id.lower()
        for model in self.iter_models(arch, minor_os_version, product_type):
            if model.hardware_id.lower() == wanted:
                return model
        return None

    def get_device_install_section_name(
        self, hardware_id: str, arch: str, minor_os_version: int, product_type: int
    ) -> str:
        """Install-section stem for an exact hardware ID match, "" when none."""
        model = self.find_model(hardware_id, arch, minor_os_version, product_type)
        if model is None:
            self.logger.debug("%s: no model matches %s", self.document.file_name or "document", hardware_id)
            return ""
        self.logger.debug("%s: %s -> [%s] via [%s]", self.document.file_name or "document",
                          hardware_id, model.install_section, model.models_section)
        return model.install_section

    def get_install_section_name(self, stem: str, arch: str, minor_os_version: int) -> Optional[str]:
        return self.priority.match_install_section(self.document.section_names, stem, arch, minor_os_version)

    def get_install_services_section_name(self, stem: str, arch: str, minor_os_version: int) -> Optional[str]:
        return self.priority.match_install_services_section(
            self.document.section_names, stem, arch, minor_os_version
        )
