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
"""Tests certificate issuance and bundle packaging."""
import pathlib
import subprocess
import tempfile
import unittest
from unittest import mock

from cryptography.hazmat.primitives.serialization import pkcs12

from simple_rdp_cert import errors
from simple_rdp_cert.converter import FormatConverter
from simple_rdp_cert.issuer import CertificateIssuer
from simple_rdp_cert.models import CertificateMaterial, Identity
from simple_rdp_cert.tests import TEST_IDENTITY
from simple_rdp_cert.tests.tools import FakeCertificateTool, write_material

IDENTITY = Identity(TEST_IDENTITY)


class TestCertificateIssuer(unittest.TestCase):
    """Tests the CertificateIssuer stage."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.work_dir = pathlib.Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_issue(self):
        """Checks issued material is handed over by explicit paths named after the identity."""
        tool = FakeCertificateTool()
        material = CertificateIssuer(tool, work_dir=self.work_dir).issue(IDENTITY)

        self.assertEqual(tool.calls, [TEST_IDENTITY])
        self.assertEqual(material.identity, IDENTITY)
        self.assertEqual(material.certificate_path, self.work_dir / f"{TEST_IDENTITY}.crt")
        self.assertEqual(material.key_path, self.work_dir / f"{TEST_IDENTITY}.key")
        self.assertRegex(material.fingerprint, r"^[0-9A-F]{40}$")

    def test_issue_creates_work_dir(self):
        """Checks a missing work directory is created."""
        work_dir = self.work_dir / "certs"
        CertificateIssuer(FakeCertificateTool(), work_dir=work_dir).issue(IDENTITY)
        self.assertTrue((work_dir / f"{TEST_IDENTITY}.crt").is_file())

    def test_issuance_failed(self):
        """Checks issuer failures carry a remediation hint."""
        tool = FakeCertificateTool(error=errors.IssuanceFailed("your tailnet does not support getting TLS certs"))
        with self.assertRaises(errors.IssuanceFailed) as ctx:
            CertificateIssuer(tool, work_dir=self.work_dir).issue(IDENTITY)
        self.assertIn("HTTPS Certificates", ctx.exception.remediation)

    def test_issuer_wrote_nothing(self):
        """Checks a successful exit without output files is an issuance failure."""
        tool = FakeCertificateTool(write_files=False)
        with self.assertRaises(errors.IssuanceFailed):
            CertificateIssuer(tool, work_dir=self.work_dir).issue(IDENTITY)


class TestFormatConverter(unittest.TestCase):
    """Tests the FormatConverter stage."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        certificate_path, key_path = write_material(self.tmp.name, TEST_IDENTITY)
        self.material = CertificateMaterial(IDENTITY, certificate_path, key_path)

    def tearDown(self):
        self.tmp.cleanup()

    def test_builtin_packaging(self):
        """Checks the built-in packager writes an empty-passphrase bundle carrying the certificate and key."""
        bundle = FormatConverter(openssl_path="").convert(self.material)

        self.assertEqual(bundle.path, pathlib.Path(self.tmp.name) / f"{TEST_IDENTITY}.pfx")
        self.assertEqual(bundle.passphrase, "")
        self.assertEqual(bundle.fingerprint, self.material.fingerprint)

        loaded = pkcs12.load_pkcs12(bundle.path.read_bytes(), None)
        self.assertIsNotNone(loaded.key)
        self.assertEqual(loaded.cert.certificate, self.material.certificate)

    def test_missing_certificate(self):
        """Checks a missing certificate file is reported by name."""
        self.material.certificate_path.unlink()
        with self.assertRaises(errors.MaterialNotFound) as ctx:
            FormatConverter(openssl_path="").convert(self.material)
        self.assertIn(str(self.material.certificate_path), ctx.exception.message)

    def test_missing_key(self):
        """Checks a missing key file is reported by name."""
        self.material.key_path.unlink()
        with self.assertRaises(errors.MaterialNotFound) as ctx:
            FormatConverter(openssl_path="").convert(self.material)
        self.assertIn(str(self.material.key_path), ctx.exception.message)

    def test_not_a_certificate(self):
        """Checks unreadable certificate material fails conversion."""
        self.material.certificate_path.write_bytes(b"not a certificate")
        with self.assertRaises(errors.ConversionFailed):
            FormatConverter(openssl_path="").convert(self.material)

    def test_openssl_command(self):
        """Checks openssl is invoked with the key, certificate, output path and an empty passphrase."""
        def fake_openssl(args, tool=None):
            pathlib.Path(args[args.index("-out") + 1]).write_bytes(b"PFX")
            return subprocess.CompletedProcess(args, 0, "", "")

        with mock.patch("simple_rdp_cert.tools.run_command", side_effect=fake_openssl) as run_command:
            bundle = FormatConverter(openssl_path="openssl").convert(self.material)

        args = run_command.call_args[0][0]
        self.assertEqual(args[:3], ["openssl", "pkcs12", "-export"])
        self.assertEqual(args[args.index("-inkey") + 1], self.material.key_path)
        self.assertEqual(args[args.index("-in") + 1], self.material.certificate_path)
        self.assertEqual(args[args.index("-out") + 1], bundle.path)
        self.assertEqual(args[args.index("-passout") + 1], "pass:")

    def test_openssl_missing(self):
        """Checks a missing packaging tool is reported as ToolMissing, not a conversion failure."""
        with mock.patch("simple_rdp_cert.tools.shutil.which", return_value=None):
            with self.assertRaises(errors.ToolMissing):
                FormatConverter(openssl_path="openssl").convert(self.material)

    def test_openssl_failure(self):
        """Checks a non-zero exit from openssl fails conversion."""
        process = subprocess.CompletedProcess([], 1, "", "unable to load private key")
        with mock.patch("simple_rdp_cert.tools.run_command", return_value=process):
            with self.assertRaises(errors.ConversionFailed) as ctx:
                FormatConverter(openssl_path="openssl").convert(self.material)
        self.assertIn("unable to load private key", ctx.exception.message)

    def test_openssl_wrote_nothing(self):
        """Checks a zero exit without a bundle file fails conversion."""
        process = subprocess.CompletedProcess([], 0, "", "")
        with mock.patch("simple_rdp_cert.tools.run_command", return_value=process):
            with self.assertRaises(errors.ConversionFailed):
                FormatConverter(openssl_path="openssl").convert(self.material)


if __name__ == "__main__":
    unittest.main()
