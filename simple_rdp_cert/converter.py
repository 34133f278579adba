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
Repackages PEM certificate material into a PKCS#12 bundle for the Windows certificate store. The bundle is written with
an empty passphrase so it can be imported unattended; anyone who can read the file can read the private key, which is
why the pipeline deletes it after import unless told otherwise.
"""
import logging
import pathlib

from cryptography import x509
from cryptography.hazmat.primitives.serialization import NoEncryption, load_pem_private_key, pkcs12

from . import errors
from . import tools
from .models import CertificateMaterial, CredentialBundle

logger = logging.getLogger(__name__)


class FormatConverter:
    """Converts CertificateMaterial into a CredentialBundle."""

    def __init__(self, openssl_path: str = "openssl") -> None:
        """
        Args:
            openssl_path (str): The openssl executable used for packaging. An empty value selects the built-in
                packager instead of an external tool.
        """
        self.openssl_path = openssl_path

    @staticmethod
    def bundle_path(material: CertificateMaterial) -> pathlib.Path:
        """Returns `<identity>.pfx` next to the certificate file."""
        return material.certificate_path.with_name(f"{material.identity}.pfx")

    def convert(self, material: CertificateMaterial) -> CredentialBundle:
        """
        Packages the certificate and key of `material` into a PKCS#12 bundle with an empty passphrase.

        Returns:
            simple_rdp_cert.models.CredentialBundle: The bundle, carrying the fingerprint of its leaf certificate.

        Raises:
            simple_rdp_cert.errors.MaterialNotFound: When the certificate or key file is missing.
            simple_rdp_cert.errors.ToolMissing: When the packaging tool is not installed.
            simple_rdp_cert.errors.ConversionFailed: When packaging fails or writes no bundle.
        """
        # Ensure both inputs exist before anything is packaged
        if not material.certificate_path.is_file():
            raise errors.MaterialNotFound(f"Certificate file '{material.certificate_path}' does not exist.")
        if not material.key_path.is_file():
            raise errors.MaterialNotFound(f"Private key file '{material.key_path}' does not exist.")

        try:
            fingerprint = material.fingerprint
        except ValueError as exc:
            raise errors.ConversionFailed(f"'{material.certificate_path}' is not a PEM certificate: {exc}") from exc

        path = self.bundle_path(material)
        if self.openssl_path:
            self.package_with_openssl(material, path)
        else:
            self.package_builtin(material, path)

        if not path.is_file():
            raise errors.ConversionFailed(f"Packaging finished without errors, but no bundle was found at '{path}'.")

        logger.info("Packaged '%s' into '%s'", material.identity, path)
        return CredentialBundle(identity=material.identity, path=path, fingerprint=fingerprint, passphrase="")

    def package_with_openssl(self, material: CertificateMaterial, path: pathlib.Path) -> None:
        """Runs `openssl pkcs12 -export` with an empty export passphrase."""
        process = tools.run_command(
            [
                self.openssl_path, "pkcs12", "-export",
                "-out", path,
                "-inkey", material.key_path,
                "-in", material.certificate_path,
                "-passout", "pass:"
            ],
            tool="openssl"
        )
        if process.returncode != 0:
            msg = f"openssl pkcs12 failed with return code {process.returncode}: {tools.command_output(process)}"
            raise errors.ConversionFailed(msg)

    @staticmethod
    def package_builtin(material: CertificateMaterial, path: pathlib.Path) -> None:
        """Packages the leaf, chain and key in-process with `cryptography`."""
        try:
            chain = x509.load_pem_x509_certificates(material.certificate_path.read_bytes())
            key = load_pem_private_key(material.key_path.read_bytes(), password=None)
            data = pkcs12.serialize_key_and_certificates(
                name=material.identity.name.encode(),
                key=key,
                cert=chain[0],
                cas=chain[1:] or None,
                encryption_algorithm=NoEncryption()
            )
        except (ValueError, TypeError) as exc:
            raise errors.ConversionFailed(f"Could not package '{material.identity}': {exc}") from exc

        path.write_bytes(data)
