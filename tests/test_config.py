"""Tests for configuration system."""

import os
import tempfile
import unittest
from io import BytesIO

from anyfs.config import (
    DEFAULT_SCHEMES,
    ConfigError,
    FtpSettings,
    Settings,
    SftpSettings,
    SmbSettings,
    ValidationError,
    get_settings,
    set_settings,
)
from tests.fixtures.test_data import TestDataFixtures


class TestSettings(unittest.TestCase):
    """Test cases for the configuration system."""

    def test_defaults(self):
        settings = Settings()
        self.assertTrue(settings.ftp.usepassive)
        self.assertIsNone(settings.ftp.timeout)
        self.assertEqual(settings.sftp.known_hosts, "~/.ssh/known_hosts")
        self.assertEqual(settings.sftp.private_key, "~/.ssh/id_rsa")
        self.assertEqual(settings.smb.port, 445)
        self.assertEqual(settings.schemes, DEFAULT_SCHEMES)
        self.assertEqual(settings.get_warnings(), [])

    def test_default_schemes_are_copied(self):
        settings = Settings()
        settings.schemes["x"] = "local"
        self.assertNotIn("x", DEFAULT_SCHEMES)

    def test_from_file(self):
        config_file = BytesIO(TestDataFixtures.create_settings_toml())
        settings = Settings.from_file(config_file)

        self.assertFalse(settings.ftp.usepassive)
        self.assertEqual(settings.ftp.timeout, 30)
        self.assertEqual(settings.sftp.passphrase, "secret")
        self.assertEqual(settings.sftp.password, "sftppass")
        self.assertEqual(settings.sftp.timeout, 10)
        self.assertEqual(settings.smb.username, "smbuser")
        self.assertEqual(settings.smb.password, "smbpass")
        self.assertEqual(settings.schemes, {"file": "local", "ftp": "ftp", "sftp": "sftp"})
        self.assertEqual(settings.get_warnings(), [])

    def test_from_file_missing(self):
        with self.assertRaises(ConfigError):
            Settings.from_file(None)

    def test_invalid_toml(self):
        with self.assertRaises(ConfigError):
            Settings.from_file(BytesIO(b"[ftp\nusepassive = "))

    def test_empty_strings_become_none(self):
        settings = Settings.from_dict({"sftp": {"password": "", "passphrase": ""}})
        self.assertIsNone(settings.sftp.password)
        self.assertIsNone(settings.sftp.passphrase)

    def test_section_must_be_table(self):
        with self.assertRaises(ValidationError):
            Settings.from_dict({"ftp": "passive"})

    def test_invalid_usepassive(self):
        with self.assertRaises(ValidationError) as cm:
            Settings.from_dict({"ftp": {"usepassive": "yes"}})
        self.assertIn("ftp", str(cm.exception))

    def test_invalid_timeout(self):
        for timeout in (0, -1, "10", True):
            with self.subTest(timeout=timeout):
                with self.assertRaises(ValidationError):
                    Settings.from_dict({"sftp": {"timeout": timeout}})

    def test_invalid_smb_port(self):
        with self.assertRaises(ValidationError):
            Settings.from_dict({"smb": {"port": 70000}})

    def test_malformed_schemes_table(self):
        settings = Settings.from_dict({"schemes": "ftp=ftp"})
        self.assertEqual(settings.schemes, {})
        self.assertEqual(len(settings.get_warnings()), 1)

    def test_schemes_entry_not_a_string(self):
        settings = Settings.from_dict({"schemes": {"ftp": "FTP", "bad": 3}})
        self.assertEqual(settings.schemes, {"ftp": "ftp"})
        self.assertEqual(len(settings.get_warnings()), 1)

    def test_unknown_section_warns(self):
        settings = Settings.from_dict({"s3": {"bucket": "x"}})
        warnings = settings.get_warnings()
        self.assertEqual(len(warnings), 1)
        self.assertIn("s3", warnings[0])

    def test_get_warnings_returns_copy(self):
        settings = Settings.from_dict({"s3": {}})
        settings.get_warnings().clear()
        self.assertEqual(len(settings.get_warnings()), 1)


class TestSftpSettingsFiles(unittest.TestCase):
    """Test cases for key file lookup."""

    def setUp(self):
        fd, self.key_path = tempfile.mkstemp()
        os.close(fd)

    def tearDown(self):
        os.remove(self.key_path)

    def test_readable_files_are_returned(self):
        settings = SftpSettings(known_hosts=self.key_path, private_key=self.key_path)
        self.assertEqual(settings.known_hosts_file(), self.key_path)
        self.assertEqual(settings.private_key_file(), self.key_path)

    def test_missing_files_are_none(self):
        settings = SftpSettings(
            known_hosts="/nonexistent/known_hosts", private_key="/nonexistent/id_rsa"
        )
        self.assertIsNone(settings.known_hosts_file())
        self.assertIsNone(settings.private_key_file())


class TestProcessSettings(unittest.TestCase):
    """Test cases for the process-wide settings."""

    def tearDown(self):
        set_settings(None)

    def test_default_settings(self):
        set_settings(None)
        self.assertIsInstance(get_settings(), Settings)
        self.assertIs(get_settings(), get_settings())

    def test_set_settings(self):
        settings = Settings(ftp=FtpSettings(usepassive=False), smb=SmbSettings(port=1445))
        set_settings(settings)
        self.assertIs(get_settings(), settings)


if __name__ == "__main__":
    unittest.main()
