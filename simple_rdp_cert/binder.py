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
"""Points the Remote Desktop listener at an installed credential and confirms the change took effect."""
import logging
import time

from . import errors
from . import tools
from .models import InstalledCredential, ServiceBinding
from .platform import ServiceConfig

# Constants and Variables
TS_NAMESPACE = "root\\cimv2\\TerminalServices"
TS_CLASS = "Win32_TSGeneralSetting"
TS_PROPERTY = "SSLCertificateSHA1Hash"

logger = logging.getLogger(__name__)


class ServiceBinder:
    """Writes and verifies the listener's certificate reference."""

    def __init__(self, config: ServiceConfig, terminal_name: str = "RDP-tcp", readback_delay: float = 0.0) -> None:
        """
        Args:
            config (ServiceConfig): The service configuration store.
            terminal_name (str): The listener whose TLS configuration is bound.
            readback_delay (float): Seconds to wait between the write and the read-back.
        """
        self.config = config
        self.terminal_name = terminal_name
        self.readback_delay = readback_delay

    def locate(self) -> str:
        """
        Finds the listener's TLS configuration object.

        Raises:
            simple_rdp_cert.errors.BindingNotConverged: When no configuration object matches the listener.
        """
        query = f"TerminalName='{self.terminal_name}'"
        object_path = self.config.find(TS_NAMESPACE, TS_CLASS, query)
        if not object_path:
            raise errors.BindingNotConverged(f"No {TS_CLASS} object matches {query}; nothing to bind.")
        return object_path

    def write(self, credential: InstalledCredential) -> ServiceBinding:
        """
        Writes the fingerprint of `credential` into the listener's configuration. The fingerprint is written in its
        canonical uppercase form.

        Returns:
            simple_rdp_cert.models.ServiceBinding: The binding that was written.
        """
        object_path = self.locate()
        fingerprint = tools.canonical_fingerprint(credential.fingerprint)

        logger.info("Binding %s to '%s'", fingerprint, self.terminal_name)
        self.config.set_property(object_path, TS_PROPERTY, fingerprint)
        return ServiceBinding(object_path=object_path, property_name=TS_PROPERTY, fingerprint=fingerprint)

    def verify(self, binding: ServiceBinding) -> ServiceBinding:
        """
        Reads the binding back and compares it with exact string equality. No case folding or whitespace trimming is
        applied: the write path already produced the canonical form, so any other value means the write did not
        converge.

        Raises:
            simple_rdp_cert.errors.BindingNotConverged: When the read-back differs from the written fingerprint.
        """
        if self.readback_delay:
            time.sleep(self.readback_delay)

        current = self.config.get_property(binding.object_path, binding.property_name) or ""
        if current != binding.fingerprint:
            msg = f"{binding.property_name} reads '{current}' after writing '{binding.fingerprint}'."
            raise errors.BindingNotConverged(msg)

        logger.info("Verified '%s' presents %s", self.terminal_name, current)
        return binding
