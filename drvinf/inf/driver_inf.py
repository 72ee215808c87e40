# drvinf/inf/driver_inf.py
# -*- coding: utf-8 -*-
"""
Plug and Play driver INF files.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..core.exceptions import MalformedDocumentError, NotFoundError
from .document import get_key_and_values, join_broken_lines
from .driver_resolver import (
    DriverSectionResolver,
    generic_hardware_id,
    is_root_device,
)
from .quoting import unquote
from .registry_codec import AddRegEntry, parse_add_reg_line
from .section_priority import SectionPriorityResolver, TargetPlatform
from .service_document import ServiceDocument

NETWORK_ADAPTER_CLASS_NAME = "Net"
NETWORK_ADAPTER_CLASS_GUID = "{4D36E972-E325-11CE-BFC1-08002BE10318}"

_DIR_IDS = {
    "11": "system32",
    "12": "system32\\drivers",
}


class Directive(Enum):
    """Install-section directives the engine understands."""
    ADD_REG = "AddReg"
    DEL_REG = "DelReg"
    BIT_REG = "BitReg"
    COPY_FILES = "CopyFiles"
    DEL_FILES = "DelFiles"
    REN_FILES = "RenFiles"
    ADD_SERVICE = "AddService"
    DEL_SERVICE = "DelService"
    INCLUDE = "Include"
    NEEDS = "Needs"
    REGISTER_DLLS = "RegisterDlls"
    UNREGISTER_DLLS = "UnregisterDlls"
    PROFILE_ITEMS = "ProfileItems"
    COPY_INF = "CopyINF"

    @classmethod
    def from_key(cls, key: str) -> Optional["Directive"]:
        k = key.strip().lower()
        for d in cls:
            if d.value.lower() == k:
                return d
        return None


def expand_dir_id(s: str) -> str:
    """%11%\\foo.sys -> system32\\foo.sys; only the ids drivers use here are known."""
    left = s.find("%")
    if left < 0:
        return s
    right = s.find("%", left + 1)
    if right < 0:
        return s
    token = s[left + 1:right]
    if token not in _DIR_IDS:
        raise MalformedDocumentError(msg=f"INF dir-id %{token}% is not supported")
    return s[:left] + _DIR_IDS[token] + s[right + 1:]


class DriverInfDocument(ServiceDocument):
    def __init__(self, file_name: str = "", **kwargs: Any) -> None:
        super().__init__(file_name, **kwargs)
        self.priority = SectionPriorityResolver(self.logger)
        self.resolver = DriverSectionResolver(self, self.priority, self.logger)
        self._devices_cache: Dict[TargetPlatform, List[Tuple[str, str]]] = {}

    def _clear_cache(self) -> None:
        super()._clear_cache()
        self._devices_cache = {}

    # ---- [Version] ----

    def _version_value(self, key: str, index: int = 0) -> str:
        values = self.get_values_of_key_in_section("Version", key)
        return values[index] if len(values) > index else ""

    @property
    def class_name(self) -> str:
        return self._version_value("Class")

    @property
    def class_guid(self) -> str:
        return self._version_value("ClassGUID").upper()

    @property
    def provider(self) -> str:
        v = self._version_value("Provider")
        return unquote(self.expand_token(v)) if v else ""

    @property
    def catalog_file(self) -> str:
        return self._version_value("CatalogFile")

    @property
    def driver_version(self) -> str:
        # DriverVer=mm/dd/yyyy[,w.x.y.z]
        return self._version_value("DriverVer", 1)

    @property
    def is_network_adapter(self) -> bool:
        return (self.class_name.lower() == NETWORK_ADAPTER_CLASS_NAME.lower()
                or self.class_guid == NETWORK_ADAPTER_CLASS_GUID)

    # ---- [Strings] ----

    def expand_token(self, s: str) -> str:
        """`%Token%` -> its [Strings] value (still quoted); anything else unchanged."""
        if len(s) >= 2 and s.startswith("%") and s.find("%", 1) == len(s) - 1:
            token = s[1:-1]
            values = self.get_values_of_key_in_section("Strings", token)
            if not values:
                raise NotFoundError(
                    msg=f"INF file '{self.file_name}' is not valid, token '{token}' was not found",
                    context={"token": token},
                )
            return values[0]
        return s

    # ---- models ----

    def list_manufacturer_ids(self) -> List[str]:
        return self.resolver.list_manufacturer_ids()

    def get_models_section_names(self, manufacturer_id: str, arch: str, minor_os_version: int, product_type: int) -> List[str]:
        return self.priority.models_section_names(manufacturer_id, arch, minor_os_version, product_type)

    def get_device_install_section_name(self, hardware_id: str, arch: str, minor_os_version: int, product_type: int) -> str:
        return self.resolver.get_device_install_section_name(hardware_id, arch, minor_os_version, product_type)

    def list_devices(self, arch: str, minor_os_version: int, product_type: int) -> List[Tuple[str, str]]:
        """(hardware ID, device description) pairs."""
        platform = TargetPlatform(arch, minor_os_version, product_type)
        cached = self._devices_cache.get(platform)
        if cached is not None:
            return cached
        devices: List[Tuple[str, str]] = []
        for model in self.resolver.iter_models(arch, minor_os_version, product_type):
            try:
                name = unquote(self.expand_token(model.entry.key))
            except NotFoundError as e:
                # XP x86 SP3 scsi.inf references a missing token
                self.logger.warning("%s", e)
                continue
            devices.append((model.hardware_id, name))
        self._devices_cache[platform] = devices
        return devices

    def contains_root_devices(self, arch: str, minor_os_version: int, product_type: int) -> bool:
        return any(is_root_device(hwid) for hwid, _ in self.list_devices(arch, minor_os_version, product_type))

    def get_device_manufacturer_name(self, hardware_id: str, arch: str, minor_os_version: int, product_type: int) -> str:
        for model in self.resolver.iter_models(arch, minor_os_version, product_type):
            # both IDs come from the same INF, so case matches
            if model.hardware_id == hardware_id:
                return unquote(self.expand_token(model.manufacturer_key))
        return ""

    def get_device_description(self, hardware_id: str, arch: str, minor_os_version: int, product_type: int) -> str:
        for hwid, name in self.list_devices(arch, minor_os_version, product_type):
            if hwid == hardware_id:
                return name
        return ""

    def disable_matching_hardware_id(self, hardware_id: str, arch: str, minor_os_version: int, product_type: int) -> bool:
        """
        Comment out every model line whose hardware ID starts with the
        generic form of `hardware_id`, so the in-box driver stops claiming
        the device.
        """
        generic = generic_hardware_id(hardware_id).lower()
        found = False
        for manufacturer_id in self.list_manufacturer_ids():
            section = self.resolver.get_models_section_name(manufacturer_id, arch, minor_os_version, product_type)
            if section is None:
                continue
            for model in list(self.get_section(section)):
                entry = get_key_and_values(model)
                if len(entry.values) >= 2 and entry.values[1].lower().startswith(generic):
                    index = self.get_line_index_of(section, model)
                    self.update_line(index, ";" + model)
                    self.logger.info("%s: disabled %s in [%s]", self.file_name or "document", entry.values[1], section)
                    found = True
        return found

    # ---- install sections ----
    def get_matching_install_section_name(self, stem: str, arch: str, minor_os_version: int) -> str:
        return self.resolver.get_install_section_name(stem, arch, minor_os_version) or ""

    def get_install_section(self, stem: str, arch: str, minor_os_version: int) -> List[str]:
        name = self.resolver.get_install_section_name(stem, arch, minor_os_version)
        return self.get_section(name) if name is not None else []

    def get_install_services_section(self, stem: str, arch: str, minor_os_version: int) -> List[str]:
        name = self.resolver.get_install_services_section_name(stem, arch, minor_os_version)
        return self.get_section(name) if name is not None else []

    def get_install_directives(self, stem: str, arch: str, minor_os_version: int) -> List[Tuple[Directive, List[str]]]:
        out: List[Tuple[Directive, List[str]]] = []
        for line in join_broken_lines(self.get_install_section(stem, arch, minor_os_version)):
            kv = get_key_and_values(line)
            directive = Directive.from_key(kv.key)
            if directive is None:
                self.logger.debug("Skipping install entry %r", kv.key)
                continue
            out.append((directive, kv.values))
        return out

    def list_added_services(self, stem: str, arch: str, minor_os_version: int) -> List[Tuple[str, str]]:
        """(service name, service install section) for every AddService line."""
        out: List[Tuple[str, str]] = []
        for line in self.get_install_services_section(stem, arch, minor_os_version):
            kv = get_key_and_values(line)
            if Directive.from_key(kv.key) is Directive.ADD_SERVICE and len(kv.values) >= 3:
                out.append((kv.values[0], kv.values[2]))
        return out

    def set_service_to_boot_start_for_install(self, stem: str, arch: str, minor_os_version: int) -> List[str]:
        """Boot-start every service the install section adds; returns the service names."""
        names: List[str] = []
        for service_name, service_section in self.list_added_services(stem, arch, minor_os_version):
            self.set_service_to_boot_start(service_section)
            self.logger.info("Service '%s' has been set to boot start", service_name)
            names.append(service_name)
        return names

    def get_add_reg_entries(self, section_name: str) -> List[AddRegEntry]:
        return [parse_add_reg_line(line, self.expand_token) for line in self.get_logical_section(section_name)]
