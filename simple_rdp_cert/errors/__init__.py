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
"""Custom exception classes for simple_rdp_cert."""


class RotationError(Exception):
    """Base class for every error raised by a rotation stage."""
    remediation = ""

    def __init__(self, message: str, remediation: str = None) -> None:
        super().__init__(message)
        self.message = message
        self.remediation = remediation if remediation else self.remediation


class IdentityUnavailable(RotationError):
    """Error occurs when the network client cannot report this host's DNS name"""
    remediation = "Ensure Tailscale is installed, running and logged in (`tailscale status`)."


class IssuanceFailed(RotationError):
    """Error occurs when the issuing tool reports a failure for the identity"""
    remediation = (
        "Enable MagicDNS and HTTPS Certificates for your tailnet in the Tailscale admin console "
        "(DNS page), then run again."
    )


class MaterialNotFound(RotationError):
    """Error occurs when an expected certificate or key file does not exist"""
    remediation = "Run the pipeline again so the certificate is re-issued."


class ToolMissing(RotationError):
    """Error occurs when an external executable cannot be found"""
    remediation = "Install the missing tool or set its path in the SIMPLE_RDP_CERT_* environment."


class ConversionFailed(RotationError):
    """Error occurs when the certificate and key cannot be packaged into a bundle"""
    remediation = "Check the packaging tool output above; the certificate and key may not match."


class ImportFailed(RotationError):
    """Error occurs when the bundle cannot be imported into the host trust store"""
    remediation = "Run the pipeline from an elevated (Administrator) shell."


class MissingPrivateKey(RotationError):
    """Error occurs when an installed credential has no usable private key"""
    remediation = "Delete the certificate from Cert:\\LocalMachine\\My and run the pipeline again."


class PermissionGrantFailed(RotationError):
    """Error occurs when the service account could not be granted read access to the private key.

    This is the only non-fatal error; the installer reports it as a warning.
    """
    remediation = (
        "Grant the service account Read access manually (certlm.msc > certificate > All Tasks > "
        "Manage Private Keys). Without it RDP connections fail silently."
    )


class BindingNotConverged(RotationError):
    """Error occurs when the service configuration does not report the fingerprint that was written"""
    remediation = "Run the pipeline again; if it keeps failing, check the Remote Desktop configuration in WMI."


class InsufficientPrivileges(RotationError):
    """Error occurs when the pipeline is started without administrative privileges"""
    remediation = "Run the pipeline from an elevated (Administrator) shell."


class InvalidConfiguration(RotationError):
    """Error occurs when the environment configuration cannot be parsed"""
    remediation = "Review the SIMPLE_RDP_CERT_* environment variables and .env file."
