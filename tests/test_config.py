import contextlib
import io
import os
import tempfile
import unittest

import macroguard


class ConfigFromMappingTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = macroguard.config_from_mapping(None)
        self.assertTrue(config.parameter_notes)
        self.assertFalse(config.legacy_bounds)
        self.assertEqual(config.clang_args, [])

    def test_nested_section_and_values(self) -> None:
        config = macroguard.config_from_mapping(
            {
                "macroguard": {
                    "parameter_notes": False,
                    "legacy_bounds": True,
                    "clang_args": "-DDEBUG",
                    "ignore_macros": ["TRACE_.*"],
                }
            }
        )
        self.assertFalse(config.parameter_notes)
        self.assertTrue(config.legacy_bounds)
        self.assertEqual(config.clang_args, ["-DDEBUG"])
        self.assertTrue(config.is_ignored("TRACE_ENTER"))
        self.assertFalse(config.is_ignored("MY_TRACE_ENTER"))

    def test_bad_entries_are_reported_and_skipped(self) -> None:
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            config = macroguard.config_from_mapping(
                {
                    "parameter_notes": "yes",
                    "clang_args": [1, 2],
                    "ignore_macros": ["(", "OK_.*"],
                    "colour": True,
                },
                origin="test.yaml",
            )
        self.assertTrue(config.parameter_notes)
        self.assertEqual(config.clang_args, [])
        self.assertEqual(config.ignore_macros, ["OK_.*"])
        messages = stderr.getvalue()
        self.assertIn("[macroguard] Ignoring 'parameter_notes' in test.yaml", messages)
        self.assertIn("Unknown option 'colour'", messages)

    def test_empty_section_means_defaults(self) -> None:
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            config = macroguard.config_from_mapping({"macroguard": None}, origin="empty.yaml")
        self.assertEqual(config, macroguard.CheckConfig())
        self.assertEqual(stderr.getvalue(), "")

    def test_non_mapping_document(self) -> None:
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            config = macroguard.config_from_mapping(["legacy_bounds"], origin="list.yaml")
        self.assertEqual(config, macroguard.CheckConfig())
        self.assertIn("expected a mapping", stderr.getvalue())


@unittest.skipIf(macroguard.yaml is None, "PyYAML is not installed")
class LoadConfigTests(unittest.TestCase):
    def test_load_from_yaml_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "macroguard.yaml")
            with open(path, "w", encoding="utf-8") as handle:
                handle.write("macroguard:\n  legacy_bounds: true\n  clang_args: [\"-Iinclude\"]\n")
            config = macroguard.load_config(path)
        self.assertTrue(config.legacy_bounds)
        self.assertEqual(config.clang_args, ["-Iinclude"])

    def test_empty_section_in_yaml_file(self) -> None:
        stderr = io.StringIO()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "macroguard.yaml")
            with open(path, "w", encoding="utf-8") as handle:
                handle.write("macroguard:\n")
            with contextlib.redirect_stderr(stderr):
                config = macroguard.load_config(path)
        self.assertEqual(config, macroguard.CheckConfig())
        self.assertNotIn("Unknown option", stderr.getvalue())

    def test_missing_file_falls_back_to_defaults(self) -> None:
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            config = macroguard.load_config("/nonexistent/macroguard.yaml")
        self.assertEqual(config, macroguard.CheckConfig())
        self.assertIn("Config file not found", stderr.getvalue())

    def test_no_path_means_defaults(self) -> None:
        self.assertEqual(macroguard.load_config(None), macroguard.CheckConfig())


if __name__ == "__main__":
    unittest.main()
