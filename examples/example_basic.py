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

import logging
import sys

import simple_rdp_cert

logging.basicConfig(level=logging.INFO)

# Settings normally come from SIMPLE_RDP_CERT_* environment variables; any of them can be overridden here.
settings = simple_rdp_cert.Settings(
    work_dir="C:\\ProgramData\\simple_rdp_cert",  # Keep the issued certificate and key out of the current directory
    openssl_path="",  # Package the PKCS#12 bundle in-process instead of calling openssl.exe
    readback_delay=1.0,  # Give WMI a moment before the binding is read back
)

# Run one rotation pass and report each stage. Warnings (e.g. the private key permission grant) do not fail the run.
report = simple_rdp_cert.CertRotator.from_settings(settings).run()
for result in report.results:
    print(f"{result.status.value:>7} {result.stage}: {result.message}")

if not report.succeeded:
    print(report.failure.error.remediation)
    sys.exit(report.exit_code)
