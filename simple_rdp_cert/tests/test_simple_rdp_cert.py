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
"""Tests full rotation passes of the simple_rdp_cert package against in-memory platform fakes."""
import pathlib
import tempfile
import unittest
from unittest import mock

import simple_rdp_cert
from simple_rdp_cert import errors
from simple_rdp_cert.binder import TS_PROPERTY, ServiceBinder
from simple_rdp_cert.converter import FormatConverter
from simple_rdp_cert.identity import IdentityResolver
from simple_rdp_cert.installer import CredentialInstaller
from simple_rdp_cert.issuer import CertificateIssuer
from simple_rdp_cert.models import StageStatus
from simple_rdp_cert.platform.tailscale import TailscaleClient
from simple_rdp_cert.tests import TEST_IDENTITY
from simple_rdp_cert.tests.tools import (
    FakeAccessControl,
    FakeCertificateTool,
    FakeNetworkClient,
    FakeServiceConfig,
    FakeTrustStore,
)

HAPPY_PATH = [
    "IdentityResolved",
    "CertificateIssued",
    "BundleCreated",
    "CredentialInstalled",
    "PermissionsGranted",
    "BindingWritten",
    "BindingVerified",
]


class TestSimpleRdpCert(unittest.TestCase):
    """Tests the CertRotator pipeline."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.work_dir = pathlib.Path(self.tmp.name)
        self.client = FakeNetworkClient()
        self.tool = FakeCertificateTool()
        self.store = FakeTrustStore()
        self.access_control = FakeAccessControl()
        self.config = FakeServiceConfig()

    def tearDown(self):
        self.tmp.cleanup()

    def rotator(self, keep_bundle: bool = False) -> simple_rdp_cert.CertRotator:
        """Builds a rotator wired to this test's fakes."""
        return simple_rdp_cert.CertRotator(
            resolver=IdentityResolver(self.client),
            issuer=CertificateIssuer(self.tool, work_dir=self.work_dir),
            converter=FormatConverter(openssl_path=""),
            installer=CredentialInstaller(self.store, self.access_control),
            binder=ServiceBinder(self.config),
            keep_bundle=keep_bundle
        )

    def test_happy_path(self):
        """Checks a full pass binds the issued certificate and exits 0."""
        report = self.rotator().run()

        self.assertEqual(report.stages, HAPPY_PATH)
        self.assertTrue(report.succeeded)
        self.assertEqual(report.exit_code, 0)
        self.assertEqual(report.warnings, [])
        self.assertEqual(self.tool.calls, [TEST_IDENTITY])

        # The bound fingerprint is the issued certificate's thumbprint
        material = report.results[1].value
        self.assertEqual(material.certificate_path.name, f"{TEST_IDENTITY}.crt")
        self.assertEqual(material.key_path.name, f"{TEST_IDENTITY}.key")
        self.assertEqual(report.results[2].value.path.name, f"{TEST_IDENTITY}.pfx")
        self.assertEqual(self.config.properties[TS_PROPERTY], material.fingerprint)
        self.assertEqual(report.binding.fingerprint, material.fingerprint)
        self.assertIn(material.not_valid_after.isoformat(), report.results[2].message)

    def test_bundle_removed_after_import(self):
        """Checks the empty-passphrase bundle does not outlive the pass unless requested."""
        self.rotator().run()
        self.assertFalse((self.work_dir / f"{TEST_IDENTITY}.pfx").exists())

        self.rotator(keep_bundle=True).run()
        self.assertTrue((self.work_dir / f"{TEST_IDENTITY}.pfx").exists())

    def test_identity_unavailable(self):
        """Checks an empty identity stops the pass before issuance."""
        self.client = FakeNetworkClient(status={"Self": {"DNSName": ""}})
        report = self.rotator().run()

        self.assertEqual(report.stages, ["Failed"])
        self.assertIsInstance(report.failure.error, errors.IdentityUnavailable)
        self.assertEqual(report.exit_code, 1)
        self.assertEqual(self.tool.calls, [])

    def test_issuance_failed(self):
        """Checks an issuer failure is reported with a hint and nothing downstream runs."""
        self.tool.error = errors.IssuanceFailed("your Tailscale account does not support getting TLS certs")
        with self.assertLogs("simple_rdp_cert", level="ERROR"):
            report = self.rotator().run()

        self.assertEqual(report.stages, ["IdentityResolved", "Failed"])
        self.assertIsInstance(report.failure.error, errors.IssuanceFailed)
        self.assertTrue(report.failure.error.remediation)
        self.assertEqual(report.failure.value, "CertificateIssued")
        self.assertNotEqual(report.exit_code, 0)
        self.assertEqual(self.store.imports, [])
        self.assertEqual(self.config.writes, [])
        self.assertEqual(list(self.work_dir.iterdir()), [])

    def test_missing_private_key(self):
        """Checks a key-less import fails the pass before binding."""
        self.store.has_private_key = False
        report = self.rotator().run()

        self.assertIsInstance(report.failure.error, errors.MissingPrivateKey)
        self.assertEqual(report.exit_code, 1)
        self.assertEqual(self.config.writes, [])
        self.assertFalse((self.work_dir / f"{TEST_IDENTITY}.pfx").exists())

    def test_bundle_removed_after_failed_import(self):
        """Checks the bundle is deleted when the import fails, and kept only when requested."""
        self.store.import_error = errors.ImportFailed("Access is denied.")
        report = self.rotator().run()
        self.assertIsInstance(report.failure.error, errors.ImportFailed)
        self.assertFalse((self.work_dir / f"{TEST_IDENTITY}.pfx").exists())

        self.rotator(keep_bundle=True).run()
        self.assertTrue((self.work_dir / f"{TEST_IDENTITY}.pfx").exists())

    def test_permission_warning_does_not_abort(self):
        """Checks an ACL failure is reported as a warning and the binding still completes."""
        self.access_control.error = errors.PermissionGrantFailed("Access is denied.")
        report = self.rotator().run()

        self.assertEqual(report.stages, HAPPY_PATH)
        self.assertEqual(report.exit_code, 0)
        self.assertEqual(len(report.warnings), 1)
        self.assertIs(report.warnings[0].status, StageStatus.WARNING)
        self.assertIsInstance(report.warnings[0].error, errors.PermissionGrantFailed)

    def test_unexpected_acl_error_does_not_abort(self):
        """Checks an OS error while granting key access is only a warning and the binding completes."""
        self.access_control.error = OSError(13, "Permission denied")
        report = self.rotator().run()

        self.assertEqual(report.stages, HAPPY_PATH)
        self.assertEqual(report.exit_code, 0)
        self.assertEqual(len(report.warnings), 1)
        self.assertIsInstance(report.warnings[0].error, errors.PermissionGrantFailed)

    def test_binding_race(self):
        """Checks a stale read-back fails the pass and a later run converges."""
        self.config.readback = "F1" * 20
        report = self.rotator().run()

        self.assertEqual(report.stages, HAPPY_PATH[:-1] + ["Failed"])
        self.assertIsInstance(report.failure.error, errors.BindingNotConverged)
        self.assertNotEqual(report.exit_code, 0)

        # The configuration catches up; running again from scratch converges
        self.config.readback = None
        report = self.rotator().run()
        self.assertEqual(report.exit_code, 0)

    def test_rerun_is_idempotent(self):
        """Checks two consecutive passes bind the same fingerprint without failing on existing artifacts."""
        first = self.rotator().run()
        second = self.rotator().run()

        self.assertEqual(first.exit_code, 0)
        self.assertEqual(second.exit_code, 0)
        self.assertEqual(first.binding, second.binding)
        self.assertEqual(len(self.store.imports), 1)
        self.assertEqual(len(self.store.credentials), 1)

    def test_tool_missing(self):
        """Checks a missing external tool fails the pass with its own error."""
        self.tool.error = errors.ToolMissing("Required tool 'tailscale' was not found.")
        report = self.rotator().run()
        self.assertIsInstance(report.failure.error, errors.ToolMissing)
        self.assertEqual(report.exit_code, 1)

    def test_unexpected_errors_propagate(self):
        """Checks errors outside the rotation taxonomy are not swallowed."""
        with mock.patch.object(self.client, "status", side_effect=KeyError("Self")):
            with self.assertRaises(KeyError):
                self.rotator().run()

    def test_from_settings(self):
        """Checks settings are wired into the production backends."""
        settings = simple_rdp_cert.Settings(
            work_dir=self.work_dir, terminal_name="RDP-Custom", openssl_path="", readback_delay=2, keep_bundle=True
        )
        rotator = simple_rdp_cert.CertRotator.from_settings(settings)

        self.assertIsInstance(rotator.resolver.client, TailscaleClient)
        self.assertEqual(rotator.issuer.work_dir, self.work_dir)
        self.assertEqual(rotator.converter.openssl_path, "")
        self.assertEqual(rotator.binder.terminal_name, "RDP-Custom")
        self.assertEqual(rotator.binder.readback_delay, 2)
        self.assertTrue(rotator.keep_bundle)

    def test_check_privileges(self):
        """Checks a non-elevated process is refused."""
        with mock.patch("simple_rdp_cert.platform.has_admin_privileges", return_value=False):
            with self.assertRaises(errors.InsufficientPrivileges):
                simple_rdp_cert.check_privileges()
        with mock.patch("simple_rdp_cert.platform.has_admin_privileges", return_value=True):
            self.assertIsNone(simple_rdp_cert.check_privileges())


if __name__ == "__main__":
    unittest.main()
