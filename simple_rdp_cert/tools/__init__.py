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
"""Command, DNS and fingerprint tools shared by the rotation stages."""
import logging
import re
import shutil
import subprocess

import dns.exception
import dns.resolver

from .. import errors

logger = logging.getLogger(__name__)
HEX_SEPARATORS = re.compile(r"[\s:\-]")


def run_command(args: list, tool: str = None) -> subprocess.CompletedProcess:
    """
    Runs an external command and captures its output. A non-zero exit is not raised; callers decide what a failure
    means for their stage.

    Args:
        args (list): The executable followed by its arguments.
        tool (str): A friendly tool name used in error messages. Defaults to the executable.

    Returns:
        subprocess.CompletedProcess: The finished process with text `stdout` and `stderr`.

    Raises:
        simple_rdp_cert.errors.ToolMissing: When the executable cannot be found.
    """
    tool = tool if tool else str(args[0])
    executable = shutil.which(str(args[0]))

    # Fail early with a clear remediation path instead of a bare FileNotFoundError
    if not executable:
        raise errors.ToolMissing(f"Required tool '{tool}' was not found at '{args[0]}' or on the PATH.")

    logger.debug("Running %s", " ".join(str(arg) for arg in args))
    try:
        process = subprocess.run(
            [executable] + [str(arg) for arg in args[1:]],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False
        )
    except FileNotFoundError as exc:
        raise errors.ToolMissing(f"Required tool '{tool}' could not be started: {exc}") from exc

    logger.debug("%s exited with return code %s", tool, process.returncode)
    return process


def command_output(process: subprocess.CompletedProcess) -> str:
    """Joins the stdout and stderr of a finished process for error messages."""
    return "\n".join(filter(None, [(process.stdout or "").strip(), (process.stderr or "").strip()]))


def canonical_fingerprint(value: str) -> str:
    """
    Formats a certificate fingerprint the way the Windows certificate store reports thumbprints: uppercase hex with
    no separators.

    Args:
        value (str): A hex fingerprint, optionally colon or space separated.

    Returns:
        str: The canonical fingerprint string.
    """
    return HEX_SEPARATORS.sub("", value or "").upper()


class DNSQuery:
    """A basic class to make DNS queries"""

    def __init__(self, domain: str, rtype: str = "A", nameservers: list = None) -> None:
        """
        Initializes our DNS query.

        Args:
            domain (str): The fully qualified domain name to query.
            rtype (str): The DNS request type (e.g. `A`, `AAAA`, `TXT`, etc.).
            nameservers (list): Nameservers to query. Defaults to the system resolvers.
        """
        self.type = rtype.upper()
        self.domain = domain
        self.nameservers = nameservers if nameservers else dns.resolver.Resolver().nameservers
        self.values = []

    def resolve(self) -> list:
        """
        Queries the nameservers with our configured object values.

        Returns:
            list: A list of answer values. Empty when the name does not exist or has no records of this type.
        """
        resolver = dns.resolver.Resolver(configure=False)
        resolver.nameservers = self.nameservers

        try:
            answer = resolver.resolve(self.domain, self.type)
            self.values = [record.to_text() for record in answer]
        except (dns.resolver.NoAnswer, dns.resolver.NXDOMAIN, dns.resolver.NoNameservers, dns.exception.Timeout):
            self.values = []

        return self.values
