import tomllib
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, IO, List

from anyfs.exceptions import ConfigError, ValidationError
from .backends import FtpSettings, SftpSettings, SmbSettings

__all__ = [
    "DEFAULT_SCHEMES",
    "Settings",
    "get_settings",
    "set_settings",
]

# scheme -> backend name
DEFAULT_SCHEMES: Dict[str, str] = {
    "file": "local",
    "local": "local",
    "ftp": "ftp",
    "ftps": "ftp",
    "sftp": "sftp",
    "smb": "smb",
    "cifs": "smb",
}


@dataclass
class Settings:
    ftp: FtpSettings = field(default_factory=FtpSettings)
    sftp: SftpSettings = field(default_factory=SftpSettings)
    smb: SmbSettings = field(default_factory=SmbSettings)
    schemes: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SCHEMES))
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_file(cls, config_file: Optional[IO[bytes]]) -> "Settings":
        """Load settings from a TOML file.

        Args:
            config_file: Open file handle to TOML configuration file

        Returns:
            Settings instance

        Raises:
            ConfigError: If configuration file cannot be loaded or parsed
            ValidationError: If configuration data is invalid
        """
        if config_file is None:
            raise ConfigError("Configuration file not provided")

        try:
            config_data = tomllib.load(config_file)
        except Exception as e:
            raise ConfigError(f"Failed to parse TOML configuration: {e}")

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Build settings from already parsed configuration data.

        Unknown sections and a malformed ``schemes`` table are reported as
        warnings rather than errors.
        """
        warnings = []
        sections = {}

        for section in ("ftp", "sftp", "smb"):
            section_data = data.get(section, {})
            if not isinstance(section_data, dict):
                raise ValidationError(f"Section '{section}' must be a table")
            sections[section] = section_data

        schemes: Dict[str, str] = dict(DEFAULT_SCHEMES)
        if "schemes" in data:
            table = data["schemes"]
            if isinstance(table, dict):
                schemes = {}
                for scheme, backend in table.items():
                    if not isinstance(backend, str):
                        warnings.append(
                            f"Scheme '{scheme}' must map to a backend name - skipping"
                        )
                        continue
                    schemes[scheme.lower()] = backend.strip().lower()
            else:
                warnings.append(
                    "Section 'schemes' must be a table - no schemes registered"
                )
                schemes = {}

        for key in data:
            if key not in ("ftp", "sftp", "smb", "schemes"):
                warnings.append(f"Unknown configuration section '{key}' - ignoring")

        settings = cls(
            ftp=FtpSettings.from_dict(sections["ftp"]),
            sftp=SftpSettings.from_dict(sections["sftp"]),
            smb=SmbSettings.from_dict(sections["smb"]),
            schemes=schemes,
            warnings=warnings,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Validate every section.

        Raises:
            ValidationError: If configuration is invalid
        """
        for name, section in (("ftp", self.ftp), ("sftp", self.sftp), ("smb", self.smb)):
            try:
                section.validate()
            except ValidationError as e:
                raise ValidationError(f"Section '{name}': {e}")

    def get_warnings(self) -> List[str]:
        """Get list of configuration warnings."""
        return self.warnings.copy()


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, defaults until ``set_settings`` is called."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the process-wide settings. None restores the defaults."""
    global _settings
    _settings = settings
