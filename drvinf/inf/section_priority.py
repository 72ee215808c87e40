# drvinf/inf/section_priority.py
# -*- coding: utf-8 -*-
"""
Platform-extension resolution for Models and Install sections.

Only NT 5.x targets are handled: minor 0 is Windows 2000, 1 is XP x86,
2 is XP x64 / Server 2003. Candidates are ordered most specific first:

  TargetOSVersion decoration: nt[Architecture][.[Major][.[Minor][.[ProductType]]]]

  https://learn.microsoft.com/windows-hardware/drivers/install/inf-manufacturer-section
  https://learn.microsoft.com/windows-hardware/drivers/install/inf-ddinstall-section
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..core.logger import get_logger

SERVICES_SUFFIX = ".Services"


@dataclass(frozen=True)
class TargetPlatform:
    arch: str = "x86"
    minor_os_version: int = 1
    product_type: int = 1

    def __post_init__(self) -> None:
        if self.minor_os_version < 0:
            raise ValueError(f"minor OS version must be >= 0, got {self.minor_os_version}")


def _first_case_insensitive(names: Iterable[str], wanted: str) -> Optional[str]:
    w = wanted.lower()
    for n in names:
        if n.lower() == w:
            return n
    return None


def _first_regex(names: Iterable[str], pattern: str) -> Optional[str]:
    rx = re.compile(f"^{pattern}$", re.IGNORECASE)
    for n in names:
        if rx.match(n):
            return n
    return None


class SectionPriorityResolver:
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or get_logger("sections")

    @staticmethod
    def _models_minor_loop(prefix: str, minor_os_version: int, product_type: int) -> List[str]:
        out: List[str] = []
        for minor in range(minor_os_version, -1, -1):
            name = f"{prefix}.5"
            # XP / 2003 still honour [xxx.NTx86.5] even though 2000 ignores it
            if minor != 0:
                name = f"{name}.{minor}"
                out.append(f"{name}.{product_type}")
            out.append(name)
        return out

    def models_section_names(self, stem: str, arch: str, minor_os_version: int, product_type: int) -> List[str]:
        """
        Ordered candidate names for a manufacturer's Models section.

        Windows 2000 does not support platform extensions on Models sections,
        so minor 0 yields only the bare name. The architecture-less `.nt`
        forms are only considered for x86; Server 2003 SP1+ rejects them on
        other architectures.
        """
        result: List[str] = []
        if minor_os_version != 0:
            result += self._models_minor_loop(f"{stem}.nt{arch}", minor_os_version, product_type)
            result.append(f"{stem}.nt{arch}")
            if arch == "x86":
                result += self._models_minor_loop(f"{stem}.nt", minor_os_version, product_type)
                result.append(f"{stem}.nt")
        result.append(stem)
        return result

    def install_section_patterns(self, stem: str, arch: str, minor_os_version: int) -> List[str]:
        """
        Ordered regular expressions (unanchored) for an Install section.
        `(\\..+)?` admits an arbitrary dot-suffix between the stem and the
        platform extension.
        """
        s = re.escape(stem)
        a = re.escape(arch)
        result: List[str] = []
        for minor in range(minor_os_version, -1, -1):
            ver = rf"\.{minor}" if minor != 0 else ""
            result.append(rf"{s}(\..+)?\.nt{a}\.5{ver}")
        result.append(rf"{s}(\..+)?\.nt{a}")
        result.append(rf"{s}(\..+)?\.nt")
        result.append(s)
        return result

    def match_models_section(
        self,
        section_names: List[str],
        stem: str,
        arch: str,
        minor_os_version: int,
        product_type: int,
    ) -> Optional[str]:
        """Actual (original-case) name of the first candidate present, or None."""
        for candidate in self.models_section_names(stem, arch, minor_os_version, product_type):
            hit = _first_case_insensitive(section_names, candidate)
            if hit is not None:
                self.logger.debug("Models section for %s: [%s]", stem, hit)
                return hit
        self.logger.debug("No Models section for %s (arch=%s minor=%d)", stem, arch, minor_os_version)
        return None

    def match_install_services_section(
        self,
        section_names: List[str],
        stem: str,
        arch: str,
        minor_os_version: int,
    ) -> Optional[str]:
        """
        First `<install>.Services` section matching the candidate patterns.
        The Services sub-section decides which install variant applies.
        """
        suffix = re.escape(SERVICES_SUFFIX)
        for pattern in self.install_section_patterns(stem, arch, minor_os_version):
            hit = _first_regex(section_names, pattern + suffix)
            if hit is not None:
                self.logger.debug("Install services section for %s: [%s]", stem, hit)
                return hit
        self.logger.debug("No install services section for %s (arch=%s minor=%d)", stem, arch, minor_os_version)
        return None

    def match_install_section(
        self,
        section_names: List[str],
        stem: str,
        arch: str,
        minor_os_version: int,
    ) -> Optional[str]:
        services = self.match_install_services_section(section_names, stem, arch, minor_os_version)
        if services is None:
            return None
        return services[: -len(SERVICES_SUFFIX)]
