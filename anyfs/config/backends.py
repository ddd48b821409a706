import os
from dataclasses import dataclass
from typing import Dict, Any, Optional

from anyfs.exceptions import ValidationError


def _validate_timeout(section: str, timeout: Optional[float]) -> None:
    if timeout is None:
        return
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValidationError(f"{section} timeout must be a positive number")


@dataclass
class FtpSettings:
    usepassive: bool = True
    timeout: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FtpSettings":
        return cls(
            usepassive=data.get("usepassive", True),
            timeout=data.get("timeout"),
        )

    def validate(self) -> None:
        if not isinstance(self.usepassive, bool):
            raise ValidationError("FTP usepassive setting must be a boolean")

        _validate_timeout("FTP", self.timeout)


@dataclass
class SftpSettings:
    known_hosts: str = "~/.ssh/known_hosts"
    private_key: str = "~/.ssh/id_rsa"
    passphrase: Optional[str] = None
    password: Optional[str] = None
    timeout: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SftpSettings":
        return cls(
            known_hosts=data.get("known_hosts", "~/.ssh/known_hosts"),
            private_key=data.get("private_key", "~/.ssh/id_rsa"),
            passphrase=data.get("passphrase") or None,
            password=data.get("password") or None,
            timeout=data.get("timeout"),
        )

    def validate(self) -> None:
        if not isinstance(self.known_hosts, str):
            raise ValidationError("SFTP known_hosts must be a path string")

        if not isinstance(self.private_key, str):
            raise ValidationError("SFTP private_key must be a path string")

        _validate_timeout("SFTP", self.timeout)

    def known_hosts_file(self) -> Optional[str]:
        """Expanded known_hosts path if it is a readable file."""
        return _readable_file(self.known_hosts)

    def private_key_file(self) -> Optional[str]:
        """Expanded private key path if it is a readable file."""
        return _readable_file(self.private_key)


@dataclass
class SmbSettings:
    username: Optional[str] = None
    password: Optional[str] = None
    port: int = 445

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SmbSettings":
        return cls(
            username=data.get("username") or None,
            password=data.get("password") or None,
            port=data.get("port", 445),
        )

    def validate(self) -> None:
        if not isinstance(self.port, int) or self.port < 1 or self.port > 65535:
            raise ValidationError("SMB port must be an integer between 1 and 65535")


def _readable_file(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    path = os.path.expanduser(path)
    if os.path.isfile(path) and os.access(path, os.R_OK):
        return path
    return None
