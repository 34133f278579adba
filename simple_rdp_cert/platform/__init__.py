# Copyright 2026 simple_rdp_cert contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Narrow interfaces to the operating system and external tools used by the rotation stages. The stages only talk to these
interfaces, so the pipeline can run against in-memory fakes in tests or against another platform's equivalents.
"""
import abc
import ctypes
import dataclasses
import os
import pathlib
import sys

from ..models import CredentialBundle, InstalledCredential

# Rights that include read access to a file
READ_RIGHTS = ("Read", "ReadAndExecute", "Modify", "FullControl")


@dataclasses.dataclass(frozen=True)
class AccessRule:
    """A single allow or deny entry of an access control list."""
    principal: str
    rights: str
    allow: bool = True

    def grants_read(self) -> bool:
        """Checks whether this rule allows at least read access."""
        rights = [right.strip() for right in self.rights.split(",")]
        return self.allow and any(right in READ_RIGHTS for right in rights)


@dataclasses.dataclass
class AccessControlList:
    """
    An access control list read from a file.

    Attributes:
        descriptor (str): The platform's opaque security descriptor (SDDL on Windows).
        rules (list): The AccessRule entries present when the list was read.
        added (list): AccessRule entries appended since the list was read, written by `AccessControl.set_acl()`.
    """
    descriptor: str
    rules: list = dataclasses.field(default_factory=list)
    added: list = dataclasses.field(default_factory=list)

    def grants_read(self, principal: str) -> bool:
        """Checks whether the list already allows `principal` to read the file."""
        return any(
            rule.principal.lower() == principal.lower() and rule.grants_read() for rule in self.rules + self.added
        )


class NetworkClient(abc.ABC):
    """The mesh network client that knows this host's identity."""

    @abc.abstractmethod
    def status(self) -> dict:
        """
        Returns the client's structured status.

        Raises:
            simple_rdp_cert.errors.IdentityUnavailable: When the client is not running or its status is unreadable.
        """


class CertificateTool(abc.ABC):
    """An external tool that obtains a certificate and key for an identity."""

    @abc.abstractmethod
    def issue(self, name: str, certificate_path: pathlib.Path, key_path: pathlib.Path) -> None:
        """
        Requests a certificate for `name` and writes the PEM certificate and key to the given paths.

        Raises:
            simple_rdp_cert.errors.IssuanceFailed: When the issuer reports an error.
            simple_rdp_cert.errors.ToolMissing: When the tool is not installed.
        """


class TrustStore(abc.ABC):
    """The host's credential store."""

    @abc.abstractmethod
    def import_bundle(self, bundle: CredentialBundle) -> str:
        """
        Imports a bundle with an exportable key and returns the fingerprint of the installed certificate.

        Raises:
            simple_rdp_cert.errors.ImportFailed: When the store rejects the bundle.
        """

    @abc.abstractmethod
    def lookup(self, fingerprint: str) -> InstalledCredential:
        """Returns the installed credential with this fingerprint, or None if the store has no such certificate."""

    @abc.abstractmethod
    def key_container_path(self, fingerprint: str) -> str:
        """
        Returns the on-disk file holding the private key of the installed credential.

        Raises:
            simple_rdp_cert.errors.PermissionGrantFailed: When the key container cannot be located.
        """


class AccessControl(abc.ABC):
    """Reads and writes access control lists of files."""

    @abc.abstractmethod
    def get_acl(self, path: str) -> AccessControlList:
        """Reads the access control list of `path`."""

    def add_rule(self, acl: AccessControlList, principal: str, rights: str, allow: bool = True) -> AccessControlList:
        """Appends a rule to `acl`. Nothing is written until `set_acl()` is called."""
        acl.added.append(AccessRule(principal=principal, rights=rights, allow=allow))
        return acl

    @abc.abstractmethod
    def set_acl(self, path: str, acl: AccessControlList) -> None:
        """Writes `acl` back to `path`."""


class ServiceConfig(abc.ABC):
    """The consuming service's configuration store."""

    @abc.abstractmethod
    def find(self, namespace: str, class_name: str, query: str) -> str:
        """Returns the path of the first configuration object matching `query`, or None."""

    @abc.abstractmethod
    def set_property(self, object_path: str, name: str, value: str) -> None:
        """Sets a property of the configuration object."""

    @abc.abstractmethod
    def get_property(self, object_path: str, name: str) -> str:
        """Reads a property of the configuration object."""


def has_admin_privileges() -> bool:
    """
    Checks if the current process is running with administrative privileges.

    Returns:
        bool: True when elevated (Windows) or running as root (elsewhere).
    """
    if sys.platform == "win32":
        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    return os.geteuid() == 0
