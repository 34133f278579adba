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
Windows backends for the trust store, access control and service configuration interfaces. Every operation runs a short
Windows PowerShell script; structured results are returned as JSON.
"""
import datetime
import json
import logging

from . import AccessControl, AccessControlList, AccessRule, ServiceConfig, TrustStore
from .. import errors
from .. import tools
from ..models import CredentialBundle, InstalledCredential

logger = logging.getLogger(__name__)
DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

LOOKUP_SCRIPT = """
$cert = Get-Item -LiteralPath {path} -ErrorAction SilentlyContinue
if ($cert) {{
    [ordered]@{{
        Thumbprint = $cert.Thumbprint
        Subject = $cert.Subject
        Issuer = $cert.Issuer
        NotBefore = $cert.NotBefore.ToUniversalTime().ToString('yyyy-MM-ddTHH:mm:ssZ')
        NotAfter = $cert.NotAfter.ToUniversalTime().ToString('yyyy-MM-ddTHH:mm:ssZ')
        HasPrivateKey = $cert.HasPrivateKey
    }} | ConvertTo-Json
}}
"""

KEY_CONTAINER_SCRIPT = """
$cert = Get-Item -LiteralPath {path} -ErrorAction Stop
$key = [System.Security.Cryptography.X509Certificates.ECDsaCertificateExtensions]::GetECDsaPrivateKey($cert)
if (-not $key) {{ $key = [System.Security.Cryptography.X509Certificates.RSACertificateExtensions]::GetRSAPrivateKey($cert) }}
if (-not $key) {{ throw 'The certificate has no accessible private key.' }}
$name = $null
if ($key.Key) {{ $name = $key.Key.UniqueName }}
elseif ($key.CspKeyContainerInfo) {{ $name = $key.CspKeyContainerInfo.UniqueKeyContainerName }}
if (-not $name) {{ throw 'The private key container name could not be determined.' }}
$file = $null
foreach ($folder in @('Microsoft\\Crypto\\Keys', 'Microsoft\\Crypto\\RSA\\MachineKeys')) {{
    $candidate = Join-Path (Join-Path $env:ProgramData $folder) $name
    if (Test-Path -LiteralPath $candidate -PathType Leaf) {{ $file = $candidate; break }}
}}
if (-not $file) {{ throw "Key container file for '$name' was not found." }}
$file
"""

GET_ACL_SCRIPT = """
$acl = Get-Acl -LiteralPath {path} -ErrorAction Stop
[ordered]@{{
    Sddl = $acl.Sddl
    Rules = @($acl.Access | ForEach-Object {{
        [ordered]@{{
            Principal = $_.IdentityReference.Value
            Rights = $_.FileSystemRights.ToString()
            Allow = ($_.AccessControlType -eq 'Allow')
        }}
    }})
}} | ConvertTo-Json -Depth 3
"""


def quote(value) -> str:
    """Quotes a value as a PowerShell single-quoted string literal."""
    return "'" + str(value).replace("'", "''") + "'"


class PowerShell:
    """Runs Windows PowerShell scripts."""

    def __init__(self, executable: str = "powershell.exe") -> None:
        self.executable = executable

    def run(self, script: str, error: type = errors.RotationError) -> str:
        """
        Runs a script and returns its trimmed standard output.

        Args:
            script (str): The PowerShell script text.
            error (type): The RotationError subclass raised when the script fails.

        Raises:
            simple_rdp_cert.errors.ToolMissing: When PowerShell cannot be found.
            simple_rdp_cert.errors.RotationError: The `error` type, when the script exits non-zero.
        """
        script = "$ErrorActionPreference = 'Stop'\n" + script.strip()
        process = tools.run_command(
            [self.executable, "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command", script],
            tool="powershell"
        )
        if process.returncode != 0:
            raise error(f"PowerShell failed with return code {process.returncode}: {tools.command_output(process)}")
        return (process.stdout or "").strip()

    def run_json(self, script: str, error: type = errors.RotationError):
        """Runs a script that prints JSON and returns the parsed value, or None when nothing was printed."""
        output = self.run(script, error=error)
        if not output:
            return None
        try:
            return json.loads(output)
        except ValueError as exc:
            raise error(f"PowerShell did not return JSON: {exc}") from exc


class PowerShellTrustStore(TrustStore):
    """The Windows certificate store, `Cert:\\LocalMachine\\My` by default."""

    def __init__(self, powershell: PowerShell, location: str = "Cert:\\LocalMachine\\My") -> None:
        self.powershell = powershell
        self.location = location

    def certificate_path(self, fingerprint: str) -> str:
        return f"{self.location}\\{fingerprint}"

    def import_bundle(self, bundle: CredentialBundle) -> str:
        script = (
            f"$password = ConvertTo-SecureString -String {quote(bundle.passphrase)} -AsPlainText -Force\n"
            if bundle.passphrase else "$password = New-Object System.Security.SecureString\n"
        )
        script += (
            f"$cert = Import-PfxCertificate -FilePath {quote(bundle.path)} -CertStoreLocation {quote(self.location)} "
            "-Password $password -Exportable\n"
            f"$match = $cert | Where-Object {{ $_.Thumbprint -eq {quote(bundle.fingerprint)} }} | Select-Object -First 1\n"
            "if (-not $match) { $match = $cert | Select-Object -First 1 }\n"
            "$match.Thumbprint"
        )
        fingerprint = tools.canonical_fingerprint(self.powershell.run(script, error=errors.ImportFailed))
        if not fingerprint:
            raise errors.ImportFailed(f"Importing '{bundle.path}' did not report a certificate thumbprint.")
        return fingerprint

    def lookup(self, fingerprint: str) -> InstalledCredential:
        data = self.powershell.run_json(
            LOOKUP_SCRIPT.format(path=quote(self.certificate_path(fingerprint))), error=errors.ImportFailed
        )
        if not data:
            return None

        return InstalledCredential(
            fingerprint=tools.canonical_fingerprint(data["Thumbprint"]),
            subject=data["Subject"],
            issuer=data["Issuer"],
            not_before=datetime.datetime.strptime(data["NotBefore"], DATE_FORMAT).replace(tzinfo=datetime.timezone.utc),
            not_after=datetime.datetime.strptime(data["NotAfter"], DATE_FORMAT).replace(tzinfo=datetime.timezone.utc),
            has_private_key=bool(data["HasPrivateKey"])
        )

    def key_container_path(self, fingerprint: str) -> str:
        return self.powershell.run(
            KEY_CONTAINER_SCRIPT.format(path=quote(self.certificate_path(fingerprint))),
            error=errors.PermissionGrantFailed
        )


class PowerShellAccessControl(AccessControl):
    """File ACLs through Get-Acl and Set-Acl."""

    def __init__(self, powershell: PowerShell) -> None:
        self.powershell = powershell

    def get_acl(self, path: str) -> AccessControlList:
        data = self.powershell.run_json(GET_ACL_SCRIPT.format(path=quote(path)), error=errors.PermissionGrantFailed)
        if not data:
            raise errors.PermissionGrantFailed(f"No access control list was returned for '{path}'.")

        try:
            rules = [
                AccessRule(principal=rule["Principal"], rights=rule["Rights"], allow=bool(rule["Allow"]))
                for rule in data.get("Rules") or []
            ]
            return AccessControlList(descriptor=data["Sddl"], rules=rules)
        except (AttributeError, KeyError, TypeError) as exc:
            raise errors.PermissionGrantFailed(f"Unexpected access control list for '{path}': {exc!r}") from exc

    def set_acl(self, path: str, acl: AccessControlList) -> None:
        lines = [
            "$acl = New-Object System.Security.AccessControl.FileSecurity",
            f"$acl.SetSecurityDescriptorSddlForm({quote(acl.descriptor)})"
        ]
        for rule in acl.added:
            kind = "Allow" if rule.allow else "Deny"
            lines.append(
                "$acl.AddAccessRule((New-Object System.Security.AccessControl.FileSystemAccessRule("
                f"{quote(rule.principal)}, {quote(rule.rights)}, {quote(kind)})))"
            )
        lines.append(f"Set-Acl -LiteralPath {quote(path)} -AclObject $acl")
        self.powershell.run("\n".join(lines), error=errors.PermissionGrantFailed)


class WmiServiceConfig(ServiceConfig):
    """WMI configuration objects, addressed by their `__PATH`."""

    def __init__(self, powershell: PowerShell) -> None:
        self.powershell = powershell

    def find(self, namespace: str, class_name: str, query: str) -> str:
        script = (
            f"$item = Get-WmiObject -Namespace {quote(namespace)} -Class {quote(class_name)} -Filter {quote(query)} "
            "| Select-Object -First 1\n"
            "if ($item) { $item.__PATH }"
        )
        return self.powershell.run(script, error=errors.BindingNotConverged) or None

    def set_property(self, object_path: str, name: str, value: str) -> None:
        script = f"Set-WmiInstance -Path {quote(object_path)} -Arguments @{{{name} = {quote(value)}}} | Out-Null"
        self.powershell.run(script, error=errors.BindingNotConverged)

    def get_property(self, object_path: str, name: str) -> str:
        return self.powershell.run(f"([wmi]{quote(object_path)}).{name}", error=errors.BindingNotConverged)
