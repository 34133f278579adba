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
simple_rdp_cert renews the TLS certificate of Windows Remote Desktop Services from Tailscale. One rotation pass resolves
this host's tailnet name, requests a certificate for it, packages it as PKCS#12, installs it into the local machine
store, lets the Remote Desktop service read its private key and binds it to the RDP listener, verifying the binding by
reading it back. Any failure aborts the pass; only the private key permission grant is allowed to fail with a warning.
"""
import logging

from . import errors
from . import platform
from .binder import ServiceBinder
from .config import Settings
from .converter import FormatConverter
from .identity import IdentityResolver
from .installer import CredentialInstaller
from .issuer import CertificateIssuer
from .models import CredentialBundle, RotationReport, StageResult, StageStatus
from .platform.tailscale import TailscaleClient
from .platform.windows import PowerShell, PowerShellAccessControl, PowerShellTrustStore, WmiServiceConfig

# Constants and Variables
__pdoc__ = {"tests": False}    # Excludes 'tests' submodule from documentation
logger = logging.getLogger(__name__)


class CertRotator:
    """
    Runs the rotation stages in order: IdentityResolved, CertificateIssued, BundleCreated, CredentialInstalled,
    PermissionsGranted, BindingWritten and BindingVerified.
    """

    def __init__(
            self,
            resolver: IdentityResolver,
            issuer: CertificateIssuer,
            converter: FormatConverter,
            installer: CredentialInstaller,
            binder: ServiceBinder,
            keep_bundle: bool = False
    ):
        """
        Args:
            resolver (IdentityResolver): Discovers the identity to issue for.
            issuer (CertificateIssuer): Obtains the certificate and key.
            converter (FormatConverter): Packages them into a bundle.
            installer (CredentialInstaller): Imports the bundle and grants key access.
            binder (ServiceBinder): Binds and verifies the listener's certificate.
            keep_bundle (bool): Keep the bundle file after a successful import instead of deleting it.

        Examples:
            >>> import simple_rdp_cert
            >>> rotator = simple_rdp_cert.CertRotator.from_settings(simple_rdp_cert.Settings())
            >>> rotator.run().exit_code
            0
        """
        self.resolver = resolver
        self.issuer = issuer
        self.converter = converter
        self.installer = installer
        self.binder = binder
        self.keep_bundle = keep_bundle

    @classmethod
    def from_settings(cls, settings: Settings) -> 'CertRotator':
        """
        Builds a rotator wired to the Tailscale CLI, openssl and the Windows PowerShell backends.

        Args:
            settings (simple_rdp_cert.Settings): The runtime settings.

        Returns:
            simple_rdp_cert.CertRotator: The configured rotator.
        """
        tailscale = TailscaleClient(settings.tailscale_path)
        powershell = PowerShell(settings.powershell_path)

        return cls(
            resolver=IdentityResolver(tailscale, check_dns=settings.check_dns, nameservers=settings.nameservers),
            issuer=CertificateIssuer(tailscale, work_dir=settings.work_dir),
            converter=FormatConverter(openssl_path=settings.openssl_path),
            installer=CredentialInstaller(
                PowerShellTrustStore(powershell, location=settings.store_location),
                PowerShellAccessControl(powershell),
                service_account=settings.service_account
            ),
            binder=ServiceBinder(
                WmiServiceConfig(powershell),
                terminal_name=settings.terminal_name,
                readback_delay=settings.readback_delay
            ),
            keep_bundle=settings.keep_bundle
        )

    def run(self) -> RotationReport:
        """
        Performs one rotation pass. Rotation errors are captured in the returned report instead of being raised.

        Returns:
            simple_rdp_cert.models.RotationReport: The stage results. `exit_code` is 0 only for a verified binding.
        """
        report = RotationReport()
        stage = "IdentityResolved"

        try:
            identity = self.resolver.resolve()
            report.add(StageResult(stage, StageStatus.OK, f"Identity is '{identity}'", identity))

            stage = "CertificateIssued"
            material = self.issuer.issue(identity)
            report.add(StageResult(stage, StageStatus.OK, f"Issued '{material.certificate_path}'", material))

            stage = "BundleCreated"
            bundle = self.converter.convert(material)
            expiry = material.not_valid_after.isoformat()
            report.add(StageResult(stage, StageStatus.OK, f"Created '{bundle.path}' (valid until {expiry})", bundle))

            stage = "CredentialInstalled"
            try:
                credential = self.installer.install(bundle)
            finally:
                self.discard(bundle)
            report.add(StageResult(stage, StageStatus.OK, f"Installed {credential.fingerprint}", credential))

            stage = "PermissionsGranted"
            report.add(self.installer.grant_key_access(credential))

            stage = "BindingWritten"
            binding = self.binder.write(credential)
            report.add(StageResult(stage, StageStatus.OK, f"Wrote {binding.fingerprint}", binding))

            stage = "BindingVerified"
            self.binder.verify(binding)
            report.add(StageResult(stage, StageStatus.OK, f"Verified {binding.fingerprint}", binding))
        except errors.RotationError as exc:
            logger.error("%s failed: %s", stage, exc.message)
            report.add(StageResult("Failed", StageStatus.FAILED, f"{stage} failed: {exc.message}", stage, exc))

        return report

    def discard(self, bundle: CredentialBundle) -> None:
        """Deletes the bundle file after the install step, whether or not it succeeded, unless `keep_bundle` is set."""
        if self.keep_bundle:
            return

        try:
            bundle.path.unlink()
            logger.debug("Deleted '%s'", bundle.path)
        except FileNotFoundError:
            pass


def check_privileges() -> None:
    """
    Ensures the process may write the local machine store and the Remote Desktop configuration.

    Raises:
        simple_rdp_cert.errors.InsufficientPrivileges: When the process is not elevated.
    """
    if not platform.has_admin_privileges():
        raise errors.InsufficientPrivileges("This pipeline must run with administrative privileges.")
