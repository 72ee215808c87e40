import io
import logging
import tempfile
import unittest
from pathlib import Path

from rich.console import Console

from drvinf.cli.argument_parser import parse_args_with_config
from drvinf.core.exceptions import Fatal
from drvinf.inf.packed import pack, unpack
from drvinf.orchestrator.orchestrator import Orchestrator

_logger = logging.getLogger("drvinf.tests")

NET_INF = r"""[Version]
Signature="$Windows NT$"
Class=Net

[Manufacturer]
%Acme% = Acme, NTx86.5.1

[Acme.NTx86.5.1]
%Nic.Desc% = Nic, PCI\VEN_1AF4&DEV_1000

[Nic.ntx86]
AddReg = nic.reg

[Nic.ntx86.Services]
AddService = acmenic, 2, nic.Service

[nic.Service]
ServiceType = 1
StartType = 3
ErrorControl = 1

[Strings]
Acme = "Acme"
Nic.Desc = "Acme virtual NIC"
""".replace("\n", "\r\n").encode("latin-1")


class OrchestratorTestCase(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.td = Path(self._td.name)
        self.inf = self.td / "acmenic.inf"
        self.inf.write_bytes(NET_INF)
        self.out = io.StringIO()

    def tearDown(self):
        self._td.cleanup()

    def run_cli(self, *argv):
        args, _conf, logger = parse_args_with_config(argv=list(argv), logger=_logger)
        console = Console(file=self.out, width=200, color_system=None)
        return Orchestrator(logger, args, console=console).run()


class TestInspect(OrchestratorTestCase):
    def test_sections(self):
        self.assertEqual(self.run_cli("sections", str(self.inf)), 0)
        self.assertIn("Nic.ntx86.Services", self.out.getvalue())

    def test_resolve(self):
        self.assertEqual(self.run_cli("resolve", str(self.inf), r"pci\ven_1af4&dev_1000"), 0)
        text = self.out.getvalue()
        self.assertIn("Acme.NTx86.5.1", text)
        self.assertIn("Nic.ntx86.Services", text)
        self.assertIn("acmenic [nic.Service]", text)

    def test_resolve_unknown_device_is_fatal(self):
        with self.assertRaises(Fatal) as cm:
            self.run_cli("resolve", str(self.inf), r"PCI\VEN_0000&DEV_0000")
        self.assertEqual(cm.exception.code, 3)

    def test_missing_file_is_fatal(self):
        with self.assertRaises(Fatal) as cm:
            self.run_cli("sections", str(self.td / "nope.inf"))
        self.assertEqual(cm.exception.code, 2)


class TestEdit(OrchestratorTestCase):
    def test_boot_start_writes_file(self):
        self.assertEqual(self.run_cli("boot-start", str(self.inf), r"PCI\VEN_1AF4&DEV_1000"), 0)
        self.assertIn(b"StartType = 0 ;SERVICE_BOOT_START\r\n", self.inf.read_bytes())

    def test_dry_run_does_not_write(self):
        self.assertEqual(self.run_cli("--dry-run", "boot-start", str(self.inf), r"PCI\VEN_1AF4&DEV_1000"), 0)
        self.assertEqual(self.inf.read_bytes(), NET_INF)

    def test_reg_set_and_get(self):
        hive = self.td / "hivesys.inf"
        hive.write_bytes(b"[AddReg]\r\n")
        self.assertEqual(self.run_cli("reg-set", str(hive), r"SYSTEM\Setup", "SetupType", "REG_DWORD", "0x1"), 0)
        self.assertIn(b'HKLM,"SYSTEM\\Setup","SetupType",0x00010001,0x00000001\r\n', hive.read_bytes())
        self.assertEqual(self.run_cli("reg-get", str(hive), "HKLM", r"SYSTEM\Setup", "SetupType"), 0)
        self.assertIn("DWORD: 0x00000001 (1)", self.out.getvalue())

    def test_packed_round_trip(self):
        packed = self.td / "acmenic.in_"
        packed.write_bytes(pack(NET_INF, "acmenic.inf"))
        self.assertEqual(self.run_cli("--packed", "disable", str(packed), r"PCI\VEN_1AF4&DEV_1000&REV_01"), 0)
        text = unpack(packed.read_bytes(), "acmenic.inf")
        self.assertIn(b";%Nic.Desc% = Nic, PCI\\VEN_1AF4&DEV_1000\r\n", text)

        out = self.td / "x" / "acmenic.inf"
        self.assertEqual(self.run_cli("unpack", str(packed), str(out)), 0)
        self.assertEqual(out.read_bytes(), text)


if __name__ == "__main__":
    unittest.main()
