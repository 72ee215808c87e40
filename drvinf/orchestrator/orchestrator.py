from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Type, TypeVar

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.exceptions import (
    DecodeError,
    DrvInfError,
    Fatal,
    MalformedDocumentError,
    NotFoundError,
    format_exception_for_cli,
    wrap_fatal,
)
from ..core.utils import U
from ..inf import packed as packed_codec
from ..inf.document import TextDocument
from ..inf.driver_inf import DriverInfDocument
from ..inf.hive_document import HiveDocument
from ..inf.registry_codec import RegistryValueKind, decode, kind_from_type_name

D = TypeVar("D", bound=TextDocument)

_EXIT_CODES: Dict[Type[DrvInfError], int] = {
    NotFoundError: 3,
    MalformedDocumentError: 4,
    DecodeError: 5,
}


class Orchestrator:
    """
    Command runner for the inspection CLI.
    Responsibilities:
    - Open the document (plain or packed) with the right document class
    - Run one engine operation for the target platform
    - Save modified documents back in place unless --dry-run
    - Map engine errors to Fatal exit codes
    """

    def __init__(self, logger: logging.Logger, args: argparse.Namespace, console: Optional[Console] = None):
        self.logger = logger
        self.args = args
        self.console = console or Console()

    @property
    def platform(self) -> Tuple[str, int, int]:
        return (self.args.arch, int(self.args.minor_os_version), int(self.args.product_type))

    def run(self) -> int:
        if getattr(self.args, "dump_config", False):
            self.console.print(U.json_dump(vars(self.args)), markup=False)
            return 0
        handlers: Dict[str, Callable[[], int]] = {
            "sections": self.cmd_sections,
            "section": self.cmd_section,
            "devices": self.cmd_devices,
            "resolve": self.cmd_resolve,
            "reg-get": self.cmd_reg_get,
            "reg-set": self.cmd_reg_set,
            "boot-start": self.cmd_boot_start,
            "disable": self.cmd_disable,
            "unpack": self.cmd_unpack,
        }
        handler = handlers.get(self.args.cmd)
        if handler is None:
            raise wrap_fatal(2, f"Unknown command: {self.args.cmd}")
        try:
            return handler()
        except Fatal:
            raise
        except DrvInfError as e:
            code = e.code
            for kind, mapped in _EXIT_CODES.items():
                if isinstance(e, kind):
                    code = mapped
                    break
            raise wrap_fatal(code, format_exception_for_cli(e, verbose=int(self.args.verbose or 0)), e)

    # ---- document I/O ----

    def _inner_name(self, data: bytes) -> str:
        if self.args.inner_name:
            return self.args.inner_name
        members = packed_codec.member_names(data)
        if len(members) != 1:
            raise wrap_fatal(2, f"{self.args.file}: cabinet holds {len(members)} files, pass --inner-name",
                             members=members)
        return members[0]

    def open(self, cls: Type[D]) -> D:
        path = Path(self.args.file).expanduser()
        if self.args.packed:
            data = U.read_file(path)
            doc = cls(self._inner_name(data), logger=self.logger)
            doc.load_bytes(packed_codec.unpack(data, doc.file_name))
        else:
            doc = cls(path.name, logger=self.logger)
            doc.read(path)
        self.logger.info(f"Opened {path} ({doc.encoding.value}, {len(doc.section_names)} sections)")
        return doc

    def save(self, doc: TextDocument) -> None:
        path = Path(self.args.file).expanduser()
        if not doc.is_modified:
            self.logger.info(f"{path}: no changes")
            return
        if self.args.dry_run:
            self.logger.warning(f"DRY-RUN: not writing {path}")
            return
        if self.args.packed:
            doc.save_packed(path)
        else:
            doc.save(path)
        self.logger.info(f"Wrote {path}")

    # ---- commands ----

    def cmd_sections(self) -> int:
        doc = self.open(TextDocument)
        for name in doc.section_names:
            self.console.print(name, markup=False, highlight=False)
        return 0

    def cmd_section(self) -> int:
        doc = self.open(TextDocument)
        if not doc.has_section(self.args.name):
            raise NotFoundError(msg=f"Section [{self.args.name}] was not found in {doc.file_name}")
        lines = doc.get_logical_section(self.args.name) if self.args.logical else doc.get_section(self.args.name)
        for line in lines:
            self.console.print(line, markup=False, highlight=False)
        return 0

    def cmd_devices(self) -> int:
        doc = self.open(DriverInfDocument)
        devices = doc.list_devices(*self.platform)
        table = Table(title=escape(f"{doc.file_name} ({self.args.arch}, 5.{self.args.minor_os_version})"))
        table.add_column("Hardware ID")
        table.add_column("Description")
        table.add_column("Install section")
        for hwid, name in devices:
            table.add_row(escape(hwid), escape(name), escape(doc.get_device_install_section_name(hwid, *self.platform)))
        self.console.print(table)
        return 0 if devices else 1

    def cmd_resolve(self) -> int:
        doc = self.open(DriverInfDocument)
        arch, minor, product_type = self.platform
        model = doc.resolver.find_model(self.args.hardware_id, arch, minor, product_type)
        if model is None:
            raise NotFoundError(msg=f"{self.args.hardware_id} is not supported by {doc.file_name} "
                                    f"({arch}, 5.{minor}, product type {product_type})")
        table = Table(show_header=False)
        table.add_column("What", style="cyan")
        table.add_column("Value")
        table.add_row("Manufacturer", escape(doc.get_device_manufacturer_name(model.hardware_id, arch, minor, product_type)))
        table.add_row("Models section", escape(model.models_section))
        table.add_row("Install stem", escape(model.install_section))
        table.add_row("Install section", escape(doc.get_matching_install_section_name(model.install_section, arch, minor) or "-"))
        table.add_row("Services section", escape(
            doc.resolver.get_install_services_section_name(model.install_section, arch, minor) or "-"))
        for service, section in doc.list_added_services(model.install_section, arch, minor):
            table.add_row("Service", escape(f"{service} [{section}]"))
        self.console.print(table)
        return 0

    def cmd_reg_get(self) -> int:
        doc = self.open(HiveDocument)
        value = doc.get_registry_value(self.args.hive, self.args.key, self.args.value_name)
        data = value.data
        if value.kind is RegistryValueKind.DWORD:
            data = f"0x{data & 0xFFFFFFFF:08X} ({data})"
        elif value.kind is RegistryValueKind.BINARY:
            data = data.hex(" ").upper()
        self.console.print(f"{value.kind.name}: {data}", markup=False, highlight=False)
        return 0

    def cmd_reg_set(self) -> int:
        kind = kind_from_type_name(self.args.kind)
        if kind is RegistryValueKind.UNKNOWN:
            raise wrap_fatal(2, f"Unknown registry value type: {self.args.kind}")
        doc = self.open(HiveDocument)
        value = decode(self.args.data, kind)
        doc.set_registry_value(self.args.key, self.args.value_name, kind, value)
        self.save(doc)
        return 0

    def cmd_boot_start(self) -> int:
        doc = self.open(DriverInfDocument)
        arch, minor, product_type = self.platform
        stem = doc.get_device_install_section_name(self.args.hardware_id, arch, minor, product_type)
        if not stem:
            raise NotFoundError(msg=f"{self.args.hardware_id} is not supported by {doc.file_name}")
        services = doc.set_service_to_boot_start_for_install(stem, arch, minor)
        if not services:
            self.logger.warning(f"[{stem}] installs no services")
        self.save(doc)
        return 0

    def cmd_disable(self) -> int:
        doc = self.open(DriverInfDocument)
        if not doc.disable_matching_hardware_id(self.args.hardware_id, *self.platform):
            self.logger.warning(f"{doc.file_name}: nothing matches {self.args.hardware_id}")
            return 1
        self.save(doc)
        return 0

    def cmd_unpack(self) -> int:
        data = U.read_file(Path(self.args.file).expanduser())
        out = Path(self.args.output).expanduser()
        payload = packed_codec.unpack(data, self._inner_name(data))
        if self.args.dry_run:
            self.logger.warning(f"DRY-RUN: not writing {out} ({len(payload)} bytes)")
            return 0
        U.ensure_dir(out.parent)
        U.write_file(out, payload)
        self.logger.info(f"Unpacked {self.args.file} -> {out}")
        return 0
