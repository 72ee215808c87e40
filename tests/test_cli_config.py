import json
import logging
import unittest, tempfile
from pathlib import Path

from drvinf.cli.argument_parser import parse_args_with_config
from drvinf.config.config_loader import Config
from drvinf.core.exceptions import Fatal

_logger = logging.getLogger("drvinf.tests")


class TestCLIConfigTwoPhaseParse(unittest.TestCase):
    def test_config_supplies_platform_defaults(self):
        with tempfile.TemporaryDirectory() as td:
            td = Path(td)
            inf = td / "net.inf"
            inf.write_text("[Version]\r\n", encoding="latin-1")
            cfg = td / "cfg.yaml"
            cfg.write_text("arch: amd64\nminor-os-version: 2\npacked: false\n", encoding="utf-8")

            args, conf, _ = parse_args_with_config(
                argv=["--config", str(cfg), "sections", str(inf)], logger=_logger
            )

            self.assertEqual(args.arch, "amd64")
            self.assertEqual(args.minor_os_version, 2)
            self.assertEqual(args.cmd, "sections")
            self.assertIn("minor_os_version", conf)

    def test_cli_overrides_config(self):
        with tempfile.TemporaryDirectory() as td:
            td = Path(td)
            cfg = td / "cfg.json"
            cfg.write_text(json.dumps({"minor_os_version": 2}), encoding="utf-8")

            args, _, _ = parse_args_with_config(
                argv=["--config", str(cfg), "--minor-os-version", "0", "sections", "x.inf"], logger=_logger
            )

            self.assertEqual(args.minor_os_version, 0)

    def test_later_config_wins(self):
        with tempfile.TemporaryDirectory() as td:
            td = Path(td)
            base = td / "base.yaml"
            base.write_text("arch: x86\nproduct_type: 3\n", encoding="utf-8")
            over = td / "over.yaml"
            over.write_text("arch: ia64\n", encoding="utf-8")

            args, conf, _ = parse_args_with_config(
                argv=["--config", str(base), "--config", str(over), "devices", "x.inf"], logger=_logger
            )

            self.assertEqual(args.arch, "ia64")
            self.assertEqual(args.product_type, 3)
            self.assertEqual(conf, {"arch": "ia64", "product_type": 3})


class TestConfigLoader(unittest.TestCase):
    def test_missing_config_is_fatal(self):
        with self.assertRaises(Fatal):
            Config.load_one(_logger, "/nonexistent/drvinf.yaml")

    def test_non_mapping_is_fatal(self):
        with tempfile.TemporaryDirectory() as td:
            cfg = Path(td) / "list.yaml"
            cfg.write_text("- a\n- b\n", encoding="utf-8")
            with self.assertRaises(Fatal):
                Config.load_one(_logger, str(cfg))

    def test_merge_dicts_recurses(self):
        merged = Config.merge_dicts({"a": {"x": 1, "y": 2}, "b": [1]}, {"a": {"y": 3}, "b": [2]})
        self.assertEqual(merged, {"a": {"x": 1, "y": 3}, "b": [2]})

    def test_expand_directory(self):
        with tempfile.TemporaryDirectory() as td:
            td = Path(td)
            (td / "a.yaml").write_text("arch: x86\n", encoding="utf-8")
            (td / "b.json").write_text("{}", encoding="utf-8")
            (td / "notes.txt").write_text("x", encoding="utf-8")
            found = [Path(p).name for p in Config.expand_configs(_logger, [str(td)])]
            self.assertEqual(found, ["a.yaml", "b.json"])

    def test_signature_mismatch_is_fatal(self):
        import os
        from unittest import mock
        with tempfile.TemporaryDirectory() as td:
            cfg = Path(td) / "cfg.yaml"
            cfg.write_text("arch: x86\n", encoding="utf-8")
            (Path(td) / "cfg.yaml.sig").write_text("deadbeef\n", encoding="utf-8")
            with mock.patch.dict(os.environ, {"DRVINF_CONFIG_SECRET": "s3cret"}):
                with self.assertRaises(Fatal):
                    Config.load_one(_logger, str(cfg))


if __name__ == "__main__":
    unittest.main()
