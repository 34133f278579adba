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
"""Imports a CredentialBundle into the host trust store and lets the service account read its private key."""
import logging

from . import errors
from .models import CredentialBundle, InstalledCredential, StageResult, StageStatus
from .platform import AccessControl, TrustStore

logger = logging.getLogger(__name__)


class CredentialInstaller:
    """Installs credentials and grants key access."""

    def __init__(
            self,
            store: TrustStore,
            access_control: AccessControl,
            service_account: str = "NT AUTHORITY\\NETWORK SERVICE"
    ) -> None:
        """
        Args:
            store (TrustStore): The host trust store.
            access_control (AccessControl): Access to the key container file's ACL.
            service_account (str): The account that must be able to read the private key.
        """
        self.store = store
        self.access_control = access_control
        self.service_account = service_account

    def install(self, bundle: CredentialBundle) -> InstalledCredential:
        """
        Imports `bundle` (unless the same certificate is already installed with its key) and checks the result.

        Returns:
            simple_rdp_cert.models.InstalledCredential: The store's record of the installed certificate.

        Raises:
            simple_rdp_cert.errors.ImportFailed: When the import fails or the certificate cannot be found afterwards.
            simple_rdp_cert.errors.MissingPrivateKey: When the installed certificate has no private key.
        """
        existing = self.store.lookup(bundle.fingerprint) if bundle.fingerprint else None

        # Skip the import when a previous run already installed this exact certificate with its key
        if existing and existing.has_private_key:
            logger.info("Certificate %s is already installed, skipping import", existing.fingerprint)
            fingerprint = existing.fingerprint
        else:
            logger.info("Importing '%s' into the trust store", bundle.path)
            fingerprint = self.store.import_bundle(bundle)

        credential = self.store.lookup(fingerprint)
        if credential is None:
            raise errors.ImportFailed(f"Certificate {fingerprint} was imported but cannot be found in the store.")

        # Import can report success for a certificate whose key did not come along
        if not credential.has_private_key:
            raise errors.MissingPrivateKey(f"Certificate {fingerprint} was installed without its private key.")

        logger.info(
            "Installed %s (subject '%s', issuer '%s', valid %s to %s)",
            credential.fingerprint, credential.subject, credential.issuer,
            credential.not_before.isoformat(), credential.not_after.isoformat()
        )
        return credential

    def grant_key_access(self, credential: InstalledCredential) -> StageResult:
        """
        Grants the service account read access to the private key file of `credential`. This step is best-effort:
        any failure is returned as a `warning` result instead of being raised.

        Returns:
            simple_rdp_cert.models.StageResult: A `PermissionsGranted` result with `ok` or `warning` status.
        """
        try:
            path = self.store.key_container_path(credential.fingerprint)
            acl = self.access_control.get_acl(path)

            if acl.grants_read(self.service_account):
                return StageResult(
                    "PermissionsGranted", StageStatus.OK, f"'{self.service_account}' can already read '{path}'"
                )

            acl = self.access_control.add_rule(acl, self.service_account, "Read", allow=True)
            self.access_control.set_acl(path, acl)
        except Exception as exc:  # pylint: disable=broad-except
            reason = exc.message if isinstance(exc, errors.RotationError) else f"{type(exc).__name__}: {exc}"
            error = errors.PermissionGrantFailed(
                f"Could not grant '{self.service_account}' read access to the private key of "
                f"{credential.fingerprint}: {reason}"
            )
            logger.warning("%s %s", error.message, error.remediation)
            return StageResult("PermissionsGranted", StageStatus.WARNING, error.message, error=error)

        logger.info("Granted '%s' read access to '%s'", self.service_account, path)
        return StageResult("PermissionsGranted", StageStatus.OK, f"'{self.service_account}' can read '{path}'")
