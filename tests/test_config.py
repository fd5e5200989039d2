import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from pagesmith.compiler.exceptions import ConfigurationError
from pagesmith.config import (
    DEVELOPMENT,
    ENVIRONMENT_VARIABLE,
    PRODUCTION,
    SANDBOX,
    SiteLayout,
    load_config,
    parse_environment,
    resolve_environment,
)


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.tmp_path = Path(self.test_dir)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_missing_file_is_empty(self):
        self.assertEqual(load_config(self.tmp_path / "nope.py"), {})

    def test_uppercase_names_are_mapped(self):
        config_file = self.tmp_path / "pagesmith.config.py"
        config_file.write_text(
            "SRC_DIR = 'site'\nDEST_DIR = 'dist'\nENVIRONMENT = 'production'\n"
            "PORT = 8080\nVERBOSE = False\nhelper = 'ignored'\nOTHER = 1\n"
        )
        self.assertEqual(
            load_config(config_file),
            {
                "src_dir": "site",
                "dest_dir": "dist",
                "environment": "production",
                "port": 8080,
                "verbose": False,
            },
        )

    def test_default_location_is_cwd(self):
        (self.tmp_path / "pagesmith.config.py").write_text("HOST = '0.0.0.0'\n")
        with patch("pathlib.Path.cwd", return_value=self.tmp_path):
            self.assertEqual(load_config(), {"host": "0.0.0.0"})

    def test_broken_config_warns(self):
        config_file = self.tmp_path / "pagesmith.config.py"
        config_file.write_text("SRC_DIR = (\n")
        with self.assertLogs("pagesmith", level="WARNING") as logs:
            self.assertEqual(load_config(config_file), {})
        self.assertIn("Failed to load config", logs.output[0])


class TestEnvironment(unittest.TestCase):
    def test_parse_environment(self):
        self.assertEqual(parse_environment(" Production "), PRODUCTION)
        with self.assertRaises(ConfigurationError):
            parse_environment("staging")

    def test_default_is_development(self):
        with patch.dict("os.environ", {}, clear=True):
            self.assertEqual(resolve_environment(), DEVELOPMENT)

    def test_precedence(self):
        with patch.dict("os.environ", {ENVIRONMENT_VARIABLE: "sandbox"}):
            self.assertEqual(resolve_environment(PRODUCTION, DEVELOPMENT), PRODUCTION)
            self.assertEqual(resolve_environment(None, PRODUCTION), SANDBOX)
        with patch.dict("os.environ", {}, clear=True):
            self.assertEqual(resolve_environment(None, PRODUCTION), PRODUCTION)

    def test_unknown_mode_falls_back(self):
        with patch.dict("os.environ", {ENVIRONMENT_VARIABLE: "staging"}):
            with self.assertLogs("pagesmith", level="WARNING") as logs:
                self.assertEqual(resolve_environment(None, PRODUCTION), DEVELOPMENT)
        self.assertIn("staging", logs.output[0])


class TestSiteLayout(unittest.TestCase):
    def test_paths(self):
        layout = SiteLayout(Path("/site/src"), Path("/site/public"))
        self.assertEqual(layout.views_src, Path("/site/src/views"))
        self.assertEqual(layout.scripts_dest, Path("/site/public/assets/js"))
        self.assertEqual(layout.styles_src, Path("/site/src/assets/css"))
        self.assertEqual(layout.images_dest, Path("/site/public/assets/img"))
        self.assertEqual(layout.vendor_src, Path("/site/src/vendor"))

    def test_logical_paths(self):
        layout = SiteLayout(Path("/site/src"), Path("/site/public"))
        output = Path("/site/public/assets/img/logo.svg")
        self.assertEqual(layout.logical_path(output), "/assets/img/logo.svg")
        self.assertEqual(layout.output_file("/assets/img/logo.svg"), output)


if __name__ == "__main__":
    unittest.main()
