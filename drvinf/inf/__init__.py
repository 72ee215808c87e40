from .document import DocumentEncoding, TextDocument
from .driver_inf import Directive, DriverInfDocument
from .driver_resolver import DriverSectionResolver
from .hive_document import HiveDocument, SystemHiveDocument
from .registry_codec import RegistryValue, RegistryValueKind
from .section_priority import SectionPriorityResolver, TargetPlatform
from .service_document import ServiceDocument

__all__ = [
    "Directive",
    "DocumentEncoding",
    "DriverInfDocument",
    "DriverSectionResolver",
    "HiveDocument",
    "RegistryValue",
    "RegistryValueKind",
    "SectionPriorityResolver",
    "ServiceDocument",
    "SystemHiveDocument",
    "TargetPlatform",
    "TextDocument",
]
