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
"""Values handed from one rotation stage to the next."""
import dataclasses
import datetime
import enum
import pathlib

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from . import errors


@dataclasses.dataclass(frozen=True)
class Identity:
    """The canonical network name a certificate is issued for."""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclasses.dataclass
class CertificateMaterial:
    """
    A PEM certificate and its private key, both issued for one Identity.

    Attributes:
        identity (Identity): The identity the material was issued for.
        certificate_path (pathlib.Path): The PEM certificate (full chain) file.
        key_path (pathlib.Path): The PEM private key file.
    """
    identity: Identity
    certificate_path: pathlib.Path
    key_path: pathlib.Path
    _certificate: x509.Certificate = dataclasses.field(default=None, init=False, repr=False)

    @property
    def certificate(self) -> x509.Certificate:
        """
        Getter for the `certificate` property. Loads the leaf certificate on first use.

        Raises:
            simple_rdp_cert.errors.MaterialNotFound: When the certificate file does not exist.
        """
        if self._certificate is None:
            if not self.certificate_path.is_file():
                raise errors.MaterialNotFound(f"Certificate file '{self.certificate_path}' does not exist.")
            self._certificate = x509.load_pem_x509_certificate(self.certificate_path.read_bytes())
        return self._certificate

    @property
    def fingerprint(self) -> str:
        """The SHA-1 thumbprint of the leaf certificate in uppercase hex, as the Windows store reports it."""
        return self.certificate.fingerprint(hashes.SHA1()).hex().upper()

    @property
    def not_valid_after(self) -> datetime.datetime:
        """The expiry of the leaf certificate, timezone-aware in UTC."""
        return self.certificate.not_valid_after_utc


@dataclasses.dataclass(frozen=True)
class CredentialBundle:
    """A single PKCS#12 file ready for import into the trust store."""
    identity: Identity
    path: pathlib.Path
    fingerprint: str
    passphrase: str = ""


@dataclasses.dataclass(frozen=True)
class InstalledCredential:
    """The record the host trust store keeps for an imported certificate."""
    fingerprint: str
    subject: str
    issuer: str
    not_before: datetime.datetime
    not_after: datetime.datetime
    has_private_key: bool


@dataclasses.dataclass(frozen=True)
class ServiceBinding:
    """The consuming service's reference to the credential it presents for TLS."""
    object_path: str
    property_name: str
    fingerprint: str


class StageStatus(enum.Enum):
    """Outcome tier of a single stage."""
    OK = "ok"
    WARNING = "warning"
    FAILED = "failed"


@dataclasses.dataclass
class StageResult:
    """
    The tagged outcome of one stage. A `warning` result never stops the pipeline, a `failed` one always does.

    Attributes:
        stage (str): The name of the state reached (or attempted).
        status (StageStatus): The outcome tier.
        message (str): A human-readable summary.
        value (object): The value handed to the next stage, if any.
        error (simple_rdp_cert.errors.RotationError): The error behind a `warning` or `failed` result.
    """
    stage: str
    status: StageStatus
    message: str = ""
    value: object = None
    error: errors.RotationError = None

    @property
    def ok(self) -> bool:
        return self.status is not StageStatus.FAILED


@dataclasses.dataclass
class RotationReport:
    """The ordered stage results of one rotation pass."""
    results: list = dataclasses.field(default_factory=list)

    def add(self, result: StageResult) -> StageResult:
        self.results.append(result)
        return result

    @property
    def failure(self) -> StageResult:
        """The failed stage result, or None when no stage failed."""
        for result in self.results:
            if result.status is StageStatus.FAILED:
                return result
        return None

    @property
    def warnings(self) -> list:
        return [result for result in self.results if result.status is StageStatus.WARNING]

    @property
    def stages(self) -> list:
        return [result.stage for result in self.results]

    @property
    def succeeded(self) -> bool:
        """True only when the binding was verified and nothing failed."""
        return self.failure is None and bool(self.results) and self.results[-1].stage == "BindingVerified"

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    @property
    def binding(self) -> ServiceBinding:
        for result in reversed(self.results):
            if isinstance(result.value, ServiceBinding):
                return result.value
        return None
