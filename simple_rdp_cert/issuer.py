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
"""Requests a certificate and key for an identity."""
import logging
import pathlib

from . import errors
from .models import CertificateMaterial, Identity
from .platform import CertificateTool

logger = logging.getLogger(__name__)


class CertificateIssuer:
    """Obtains CertificateMaterial from an external issuing tool."""

    def __init__(self, tool: CertificateTool, work_dir: pathlib.Path = pathlib.Path(".")) -> None:
        self.tool = tool
        self.work_dir = pathlib.Path(work_dir)

    def paths(self, identity: Identity) -> tuple:
        """Returns the certificate and key file paths used for `identity`."""
        return self.work_dir / f"{identity}.crt", self.work_dir / f"{identity}.key"

    def issue(self, identity: Identity) -> CertificateMaterial:
        """
        Requests a certificate for `identity`. This blocks on the issuing authority and may take several seconds.

        Returns:
            simple_rdp_cert.models.CertificateMaterial: Handles to the issued certificate and key files.

        Raises:
            simple_rdp_cert.errors.IssuanceFailed: When the issuer fails or writes no files.
            simple_rdp_cert.errors.ToolMissing: When the issuing tool is not installed.
        """
        certificate_path, key_path = self.paths(identity)
        self.work_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Requesting a certificate for '%s'", identity)
        self.tool.issue(identity.name, certificate_path, key_path)

        # A zero exit without output files still leaves nothing to convert
        for path in (certificate_path, key_path):
            if not path.is_file():
                raise errors.IssuanceFailed(f"The issuer reported success but '{path}' was not written.")

        return CertificateMaterial(identity=identity, certificate_path=certificate_path, key_path=key_path)
