from __future__ import annotations
import argparse

from ..core.logger import c
from ..config.config_loader import Config
from .. import __version__

YAML_EXAMPLE = r"""# drvinf config
# Run:
# ./drvinf.py --config config.yaml devices netfoo.inf
# or merge configs:
# ./drvinf.py --config base.yaml --config xp64.yaml resolve netfoo.inf 'PCI\VEN_8086&DEV_100F'
arch: x86 # x86 | amd64 | ia64
minor_os_version: 1 # 0 = Windows 2000, 1 = XP, 2 = XP x64 / Server 2003
product_type: 1 # 1 = workstation, 2 = domain controller, 3 = server
packed: false # FILE is a single-file cabinet (name.in_)
dry_run: false # never write modified documents
verbose: 1
log_file: ./drvinf.log
"""

ARCHITECTURES = ["x86", "amd64", "ia64"]


def _add_file(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("file", help="INF/SIF document (or its packed .xx_ form with --packed)")


class CLI:
    @staticmethod
    def build_parser() -> argparse.ArgumentParser:
        epilog = (
            c("YAML example:\n", "cyan", ["bold"]) +
            c(YAML_EXAMPLE, "cyan") +
            "\n" +
            c("Feature summary:\n", "cyan", ["bold"]) +
            c(" • Inspect: sections, merged section contents, devices per platform\n", "cyan") +
            c(" • Resolve: hardware ID -> Models section -> install / services section\n", "cyan") +
            c(" • Registry: read and write AddReg values of emulated hives (hivesys.inf)\n", "cyan") +
            c(" • Edit: boot-start a driver's services, disable in-box model lines\n", "cyan") +
            c(" • Packed: transparent single-file cabinet read/write, unpack to disk\n", "cyan") +
            c(" • Safety: dry-run, untouched lines kept byte-for-byte\n", "cyan")
        )
        p = argparse.ArgumentParser(
            prog="drvinf",
            description=c("drvinf: INF/SIF document engine for offline Windows driver injection", "green", ["bold"]),
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=epilog,
        )
        p.add_argument("--config", action="append", default=[], help="YAML/JSON config file (repeatable; later overrides earlier).")
        p.add_argument("--dump-config", action="store_true", help="Print merged normalized config and exit.")
        p.add_argument("--version", action="version", version=__version__)
        p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -v, -vv")
        p.add_argument("--log-file", default=None, help="Write logs to file.")
        p.add_argument("--arch", default="x86", choices=ARCHITECTURES, help="Target architecture.")
        p.add_argument("--minor-os-version", type=int, default=1,
                       help="NT 5.x minor version: 0 = 2000, 1 = XP, 2 = XP x64 / 2003.")
        p.add_argument("--product-type", type=int, default=1, help="1 = workstation, 2 = domain controller, 3 = server.")
        p.add_argument("--packed", action="store_true", help="FILE is a single-file cabinet (name.ex_).")
        p.add_argument("--inner-name", default=None,
                       help="Member name inside a packed FILE (default: the cabinet's only member).")
        p.add_argument("--dry-run", action="store_true", help="Do not write modified documents; show what would happen.")
        sub = p.add_subparsers(dest="cmd", required=True)

        ps = sub.add_parser("sections", help="List section names")
        _add_file(ps)

        psec = sub.add_parser("section", help="Print a section (repeated occurrences merged)")
        _add_file(psec)
        psec.add_argument("name")
        psec.add_argument("--logical", action="store_true", help="Join backslash-continued lines.")

        pdev = sub.add_parser("devices", help="List hardware IDs for the target platform")
        _add_file(pdev)

        pres = sub.add_parser("resolve", help="Hardware ID -> Models / install / services sections")
        _add_file(pres)
        pres.add_argument("hardware_id")

        pget = sub.add_parser("reg-get", help="Read an AddReg value of an emulated hive")
        _add_file(pget)
        pget.add_argument("hive", help="HKLM, HKCR, HKCU or HKR")
        pget.add_argument("key")
        pget.add_argument("value_name")

        pset = sub.add_parser("reg-set", help="Write an AddReg value (HKLM) of an emulated hive")
        _add_file(pset)
        pset.add_argument("key")
        pset.add_argument("value_name")
        pset.add_argument("kind", help="REG_SZ, REG_EXPAND_SZ, REG_MULTI_SZ, REG_DWORD or REG_BINARY")
        pset.add_argument("data", help='Data in AddReg notation, e.g. 0x1, "text", "a","b", 01,FF')

        pboot = sub.add_parser("boot-start", help="Set every service installed for a device to boot start")
        _add_file(pboot)
        pboot.add_argument("hardware_id")

        pdis = sub.add_parser("disable", help="Comment out model lines matching a hardware ID")
        _add_file(pdis)
        pdis.add_argument("hardware_id")

        pun = sub.add_parser("unpack", help="Extract a packed document")
        pun.add_argument("file", help="Packed document (name.ex_)")
        pun.add_argument("output", help="Where to write the extracted document")

        return p


def parse_args_with_config(argv=None, logger=None):
    """Two-phase parse.

    Phase 0: parse ONLY global flags needed to find config/logging (no subcommand/required args)
    Phase 1: load+merge config files and apply as argparse defaults
    Phase 2: full parse_args with defaults applied

    Returns: (args, merged_config_dict, logger)
    """
    parser = CLI.build_parser()

    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", action="append", default=[])
    pre.add_argument("-v", "--verbose", action="count", default=0)
    pre.add_argument("--log-file", dest="log_file", default=None)
    args0, _rest = pre.parse_known_args(argv)

    from ..core.logger import Log  # local import to avoid cycles
    own_logger = logger is None
    if own_logger:
        logger = Log.setup(getattr(args0, "verbose", 0), getattr(args0, "log_file", None))

    conf = {}
    cfgs = getattr(args0, "config", None) or []
    if cfgs:
        cfgs = Config.expand_configs(logger, list(cfgs))
        conf = Config.load_many(logger, cfgs)
        Config.apply_as_defaults(logger, parser, conf)

    args = parser.parse_args(argv)
    # verbose/log_file may have come from config
    if own_logger and (args.verbose != args0.verbose or args.log_file != args0.log_file):
        logger = Log.setup(int(args.verbose or 0), args.log_file)
    return args, conf, logger
