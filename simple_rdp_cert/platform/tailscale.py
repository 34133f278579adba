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
"""Tailscale CLI backend for the network identity and certificate issuing interfaces."""
import json
import pathlib

from . import CertificateTool, NetworkClient
from .. import errors
from .. import tools


class TailscaleClient(NetworkClient, CertificateTool):
    """Talks to the local `tailscale` CLI."""

    def __init__(self, executable: str = "tailscale") -> None:
        self.executable = executable

    def status(self) -> dict:
        """
        Runs `tailscale status --json` and parses the result.

        Raises:
            simple_rdp_cert.errors.IdentityUnavailable: When the command fails or prints something that is not JSON.
        """
        process = tools.run_command([self.executable, "status", "--json"], tool="tailscale")
        if process.returncode != 0:
            msg = f"'tailscale status' failed with return code {process.returncode}: {tools.command_output(process)}"
            raise errors.IdentityUnavailable(msg)

        try:
            return json.loads(process.stdout)
        except ValueError as exc:
            raise errors.IdentityUnavailable(f"'tailscale status' did not return JSON: {exc}") from exc

    def issue(self, name: str, certificate_path: pathlib.Path, key_path: pathlib.Path) -> None:
        """Runs `tailscale cert` with explicit output files for `name`."""
        process = tools.run_command(
            [self.executable, "cert", "--cert-file", certificate_path, "--key-file", key_path, name],
            tool="tailscale"
        )
        if process.returncode != 0:
            msg = f"'tailscale cert {name}' failed with return code {process.returncode}: {tools.command_output(process)}"
            raise errors.IssuanceFailed(msg)
