import unittest

from drvinf.core.exceptions import NotFoundError
from drvinf.inf.service_document import ServiceDocument

TXTSETUP_SIF = """[SourceDisksFiles]
e1000325.sys = 1,,,,,,4_,4,1,,,1,4

[e1000.Service]
ServiceType = 1
StartType = 0x3
ErrorControl = 1

[other.Service]
StartType = 0 ; already boot
LoadOrderGroup = NDIS
""".replace("\n", "\r\n")


class TestServiceDocument(unittest.TestCase):
    def setUp(self):
        self.doc = ServiceDocument.from_bytes(TXTSETUP_SIF.encode("latin-1"), "txtsetup.sif")

    def test_boot_start_rewrites_hex_start_type(self):
        self.assertTrue(self.doc.set_service_to_boot_start("e1000.service"))
        self.assertEqual(
            self.doc.get_section("e1000.Service"),
            ["ServiceType = 1", "StartType = 0 ;SERVICE_BOOT_START", "ErrorControl = 1"],
        )

    def test_boot_start_leaves_boot_start_alone(self):
        before = self.doc.text
        self.assertFalse(self.doc.set_service_to_boot_start("other.Service"))
        self.assertEqual(self.doc.text, before)
        self.assertFalse(self.doc.is_modified)

    def test_boot_start_without_start_type(self):
        with self.assertRaises(NotFoundError):
            self.doc.set_service_to_boot_start("SourceDisksFiles")

    def test_load_order_group(self):
        self.assertFalse(self.doc.set_service_load_order_group("other.Service", "ndis"))
        self.assertTrue(self.doc.set_service_load_order_group("other.Service", "PNP_TDI"))
        self.assertIn("LoadOrderGroup = PNP_TDI", self.doc.get_section("other.Service"))

    def test_load_order_group_appended(self):
        self.assertTrue(self.doc.set_service_load_order_group("e1000.Service", "NDIS"))
        self.assertEqual(self.doc.get_section("e1000.Service")[-1], "LoadOrderGroup = NDIS")


if __name__ == "__main__":
    unittest.main()
