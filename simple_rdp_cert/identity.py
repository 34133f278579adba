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
"""Discovers the network name this host should be issued a certificate for."""
import logging

import validators

from . import errors
from . import tools
from .models import Identity
from .platform import NetworkClient

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Reads this host's DNS name from the network client's status."""

    def __init__(self, client: NetworkClient, check_dns: bool = False, nameservers: list = None) -> None:
        """
        Args:
            client (NetworkClient): The network client to query.
            check_dns (bool): Resolve the identity after reading it and warn when it does not resolve.
            nameservers (list): Nameservers used by the DNS check.
        """
        self.client = client
        self.check_dns = check_dns
        self.nameservers = nameservers

    @staticmethod
    def normalize(name: str) -> str:
        """
        Strips a single trailing domain separator from a DNS name.

        Args:
            name (str): The DNS name as reported by the network client.

        Returns:
            str: The name without its trailing `.`.
        """
        return name[:-1] if name.endswith(".") else name

    def resolve(self) -> Identity:
        """
        Queries the network client and returns this host's identity.

        Returns:
            simple_rdp_cert.models.Identity: The normalized identity.

        Raises:
            simple_rdp_cert.errors.IdentityUnavailable: When the client is unreachable or reports no usable name.
        """
        status = self.client.status()
        self_node = status.get("Self") if isinstance(status, dict) else None

        # A stopped or logged out client reports no self node at all
        if not isinstance(self_node, dict):
            raise errors.IdentityUnavailable("The network client status has no self node.")

        name = self.normalize((self_node.get("DNSName") or "").strip())
        if not name:
            raise errors.IdentityUnavailable("The network client reported an empty DNS name for this host.")

        if not validators.domain(name):
            raise errors.IdentityUnavailable(f"The network client reported an invalid DNS name '{name}'.")

        identity = Identity(name=name)
        if self.check_dns:
            self.verify_resolution(identity)
        return identity

    def verify_resolution(self, identity: Identity) -> bool:
        """Checks that the identity resolves. A miss is only logged; issuance reports the real failure."""
        values = tools.DNSQuery(identity.name, rtype="A", nameservers=self.nameservers).resolve()
        if not values:
            logger.warning("'%s' does not resolve via %s; is MagicDNS enabled?", identity, self.nameservers)
            return False

        logger.debug("'%s' resolves to %s", identity, values)
        return True
