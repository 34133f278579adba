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
Runtime settings. The command takes no flags, so every knob is an environment variable prefixed with
`SIMPLE_RDP_CERT_` (or a line in a `.env` file in the working directory).
"""
import pathlib

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for one rotation pass."""

    model_config = SettingsConfigDict(
        env_prefix="SIMPLE_RDP_CERT_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    tailscale_path: str = Field(default="tailscale", min_length=1, description="The tailscale CLI executable.")
    openssl_path: str = Field(
        default="openssl",
        description="The openssl executable. Empty selects the built-in PKCS#12 packager.",
    )
    powershell_path: str = Field(default="powershell.exe", min_length=1, description="The Windows PowerShell executable.")
    work_dir: pathlib.Path = Field(
        default=pathlib.Path("."),
        description="Directory the certificate, key and bundle files are written to.",
    )
    store_location: str = Field(default="Cert:\\LocalMachine\\My", min_length=1, description="Target certificate store.")
    service_account: str = Field(
        default="NT AUTHORITY\\NETWORK SERVICE",
        min_length=1,
        description="Account the Remote Desktop service reads the private key as.",
    )
    terminal_name: str = Field(default="RDP-tcp", min_length=1, description="The Remote Desktop listener to bind.")
    readback_delay: float = Field(
        default=0.0,
        ge=0,
        description="Seconds to wait between writing the binding and reading it back.",
    )
    check_dns: bool = Field(default=False, description="Check the identity resolves before requesting a certificate.")
    nameservers: list[str] = Field(
        default_factory=lambda: ["100.100.100.100"],
        description="Nameservers used by the DNS check (MagicDNS by default).",
    )
    keep_bundle: bool = Field(default=False, description="Keep the .pfx bundle after a successful import.")
    require_admin: bool = Field(default=True, description="Refuse to run without administrative privileges.")
    log_level: str = Field(
        default="INFO",
        pattern=r"(?i)^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Python logging level name.",
    )
