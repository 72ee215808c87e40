import unittest

from drvinf.core.exceptions import MalformedDocumentError, NotFoundError
from drvinf.inf.driver_inf import Directive, DriverInfDocument, expand_dir_id
from drvinf.inf.driver_resolver import generic_hardware_id, is_root_device
from drvinf.inf.registry_codec import RegistryValue, RegistryValueKind

E1000_INF = r"""; e1000 test driver
[Version]
Signature="$Windows NT$"
Class=Net
ClassGUID={4d36e972-e325-11ce-bfc1-08002be10318}
Provider=%Intel%
CatalogFile=e1000.cat
DriverVer=07/01/2001,8.10.3.0

[Manufacturer]
%Intel% = Intel, NTx86.5.1

[Intel]
%E1000.DeviceDesc% = E1000, PCI\VEN_8086&DEV_100F

[Intel.NTx86.5.1]
%E1000.DeviceDesc% = E1000.XP, PCI\VEN_8086&DEV_100F
%E1000.DeviceDesc% = E1000.XP, PCI\VEN_8086&DEV_100F&SUBSYS_075015AD
%Missing.DeviceDesc% = E1000.XP, PCI\VEN_8086&DEV_1010
%Root.DeviceDesc% = E1000.XP, ROOT\E1000VIRT

[E1000.XP.ntx86]
AddReg = e1000.reg, \
         e1000.params
CopyFiles = e1000.copy
Characteristics = 0x84
BusType = 5

[E1000.XP.ntx86.Services]
AddService = E1000, 2, e1000.Service, e1000.EventLog

[e1000.Service]
DisplayName = %E1000.Service.DispName%
ServiceType = 1
StartType = 3 ; SERVICE_DEMAND_START
ErrorControl = 1
ServiceBinary = %12%\e1000325.sys
LoadOrderGroup = NDIS

[e1000.reg]
HKR, Ndi, Service, 0, "E1000"
HKR, Ndi\Interfaces, UpperRange, 0, "ndis5"
HKR,,BusNumber,0x00010001,0x0
HKR,,DriverDesc,,%E1000.DeviceDesc%

[Strings]
Intel = "Intel"
E1000.DeviceDesc = "Intel(R) PRO/1000 MT Network Connection"
Root.DeviceDesc = "Virtual adapter"
E1000.Service.DispName = "Intel(R) PRO/1000 Adapter Driver"
""".replace("\n", "\r\n")

XP = ("x86", 1, 1)
HWID = r"PCI\VEN_8086&DEV_100F"
DESC = "Intel(R) PRO/1000 MT Network Connection"


class DriverInfTestCase(unittest.TestCase):
    def setUp(self):
        self.doc = DriverInfDocument.from_bytes(E1000_INF.encode("latin-1"), "e1000.inf")


class TestVersion(DriverInfTestCase):
    def test_properties(self):
        self.assertEqual(self.doc.class_name, "Net")
        self.assertEqual(self.doc.class_guid, "{4D36E972-E325-11CE-BFC1-08002BE10318}")
        self.assertEqual(self.doc.provider, "Intel")
        self.assertEqual(self.doc.catalog_file, "e1000.cat")
        self.assertEqual(self.doc.driver_version, "8.10.3.0")
        self.assertTrue(self.doc.is_network_adapter)

    def test_expand_token(self):
        self.assertEqual(self.doc.expand_token("%intel%"), '"Intel"')
        self.assertEqual(self.doc.expand_token("plain"), "plain")
        with self.assertRaises(NotFoundError):
            self.doc.expand_token("%Nope%")

    def test_expand_dir_id(self):
        self.assertEqual(expand_dir_id(r"%12%\e1000325.sys"), r"system32\drivers\e1000325.sys")
        self.assertEqual(expand_dir_id(r"%11%\foo.dll"), r"system32\foo.dll")
        self.assertEqual(expand_dir_id("foo.sys"), "foo.sys")
        with self.assertRaises(MalformedDocumentError):
            expand_dir_id(r"%10%\foo.sys")


class TestDevices(DriverInfTestCase):
    def test_list_devices_skips_missing_tokens(self):
        with self.assertLogs("drvinf", level="WARNING"):
            devices = self.doc.list_devices(*XP)
        self.assertEqual(
            devices,
            [
                (HWID, DESC),
                (HWID + "&SUBSYS_075015AD", DESC),
                (r"ROOT\E1000VIRT", "Virtual adapter"),
            ],
        )

    def test_windows_2000_uses_undecorated_models(self):
        self.assertEqual(self.doc.list_devices("x86", 0, 1), [(HWID, DESC)])
        self.assertEqual(self.doc.get_device_install_section_name(HWID, "x86", 0, 1), "E1000")

    def test_other_architecture_falls_back_to_undecorated_models(self):
        self.assertEqual(self.doc.list_devices("amd64", 2, 1), [(HWID, DESC)])
        self.assertEqual(self.doc.get_models_section_names("Intel", "amd64", 2, 1)[-1], "Intel")

    def test_device_lookups(self):
        self.assertEqual(self.doc.list_manufacturer_ids(), ["Intel"])
        self.assertEqual(self.doc.get_device_install_section_name(HWID.lower(), *XP), "E1000.XP")
        self.assertEqual(self.doc.get_device_install_section_name(r"PCI\VEN_1234&DEV_0001", *XP), "")
        self.assertEqual(self.doc.get_device_manufacturer_name(HWID, *XP), "Intel")
        self.assertEqual(self.doc.get_device_description(HWID, *XP), DESC)
        self.assertTrue(self.doc.contains_root_devices(*XP))
        self.assertFalse(self.doc.contains_root_devices("x86", 0, 1))

    def test_disable_matching_hardware_id(self):
        changed = self.doc.disable_matching_hardware_id(HWID + "&SUBSYS_12345678&REV_02", *XP)
        self.assertTrue(changed)
        self.assertTrue(self.doc.is_modified)
        with self.assertLogs("drvinf", level="WARNING"):
            self.assertEqual(self.doc.list_devices(*XP), [(r"ROOT\E1000VIRT", "Virtual adapter")])
        self.assertIn(";%E1000.DeviceDesc% = E1000.XP, " + HWID + "\r\n", self.doc.text)
        # the Windows 2000 section is not the one in effect for XP
        self.assertEqual(self.doc.list_devices("x86", 0, 1), [(HWID, DESC)])

    def test_disable_nothing(self):
        self.assertFalse(self.doc.disable_matching_hardware_id(r"PCI\VEN_1234&DEV_0001", *XP))
        self.assertFalse(self.doc.is_modified)


class TestInstall(DriverInfTestCase):
    def test_install_section(self):
        self.assertEqual(self.doc.get_matching_install_section_name("E1000.XP", "x86", 1), "E1000.XP.ntx86")
        self.assertEqual(self.doc.get_install_section("E1000.XP", "x86", 1)[2], "CopyFiles = e1000.copy")
        self.assertEqual(
            self.doc.get_install_services_section("E1000.XP", "x86", 1),
            ["AddService = E1000, 2, e1000.Service, e1000.EventLog"],
        )
        self.assertEqual(self.doc.get_install_section("E1000.XP", "amd64", 2), [])

    def test_directives(self):
        self.assertEqual(
            self.doc.get_install_directives("E1000.XP", "x86", 1),
            [
                (Directive.ADD_REG, ["e1000.reg", "e1000.params"]),
                (Directive.COPY_FILES, ["e1000.copy"]),
            ],
        )
        self.assertIs(Directive.from_key(" addservice "), Directive.ADD_SERVICE)
        self.assertIsNone(Directive.from_key("Characteristics"))

    def test_boot_start_for_install(self):
        self.assertEqual(self.doc.list_added_services("E1000.XP", "x86", 1), [("E1000", "e1000.Service")])
        self.assertEqual(self.doc.set_service_to_boot_start_for_install("E1000.XP", "x86", 1), ["E1000"])
        self.assertIn("StartType = 0 ;SERVICE_BOOT_START", self.doc.get_section("e1000.service"))
        self.assertFalse(self.doc.set_service_to_boot_start("e1000.Service"))

    def test_add_reg_entries(self):
        entries = self.doc.get_add_reg_entries("e1000.reg")
        self.assertEqual([e.value_name for e in entries], ["Service", "UpperRange", "BusNumber", "DriverDesc"])
        self.assertEqual(entries[0].value, RegistryValue.string("E1000"))
        self.assertEqual(entries[1].sub_key, r"Ndi\Interfaces")
        self.assertIs(entries[2].kind, RegistryValueKind.DWORD)
        self.assertEqual(entries[2].value.data, 0)
        self.assertEqual(entries[3].value, RegistryValue.string(DESC))


class TestHardwareIds(unittest.TestCase):
    def test_generic_hardware_id(self):
        self.assertEqual(generic_hardware_id(HWID + "&SUBSYS_075015AD&REV_01"), HWID)
        self.assertEqual(generic_hardware_id(HWID + "&REV_01"), HWID)
        self.assertEqual(generic_hardware_id(HWID), HWID)

    def test_root_device(self):
        self.assertTrue(is_root_device(r"root\foo"))
        self.assertFalse(is_root_device(HWID))


if __name__ == "__main__":
    unittest.main()
