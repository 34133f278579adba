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
"""Runs one rotation pass. Takes no arguments; see `simple_rdp_cert.config` for the environment it reads."""
import logging
import sys

import pydantic

from simple_rdp_cert import CertRotator, Settings, check_privileges, errors
from simple_rdp_cert.models import RotationReport, StageStatus

# Exit code for configuration errors, distinct from a failed rotation
EXIT_CONFIG = 2

logger = logging.getLogger("simple_rdp_cert")


def load_settings() -> Settings:
    """
    Reads the settings from the environment.

    Raises:
        simple_rdp_cert.errors.InvalidConfiguration: When a setting fails validation.
    """
    try:
        return Settings()
    except pydantic.ValidationError as exc:
        raise errors.InvalidConfiguration(f"Invalid settings: {exc}") from exc


def summarize(report: RotationReport) -> None:
    """Logs the outcome of every stage, repeating warnings so they are not lost in the output above."""
    for result in report.results:
        if result.status is StageStatus.OK:
            logger.info("[ OK ] %s: %s", result.stage, result.message)
        elif result.status is StageStatus.WARNING:
            logger.warning("[WARN] %s: %s", result.stage, result.message)
            logger.warning("       %s", result.error.remediation)
        else:
            logger.error("[FAIL] %s", result.message)
            logger.error("       %s", result.error.remediation)

    if report.succeeded and report.warnings:
        logger.warning("Rotation finished with %d warning(s); review them above.", len(report.warnings))
    elif report.succeeded:
        logger.info("Rotation finished, '%s' presents %s", report.binding.object_path, report.binding.fingerprint)


def main() -> int:
    """Entry point of the `simple-rdp-cert` command."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        settings = load_settings()
    except errors.InvalidConfiguration as exc:
        logger.error("%s %s", exc.message, exc.remediation)
        return EXIT_CONFIG

    logging.getLogger().setLevel(settings.log_level.upper())

    if settings.require_admin:
        try:
            check_privileges()
        except errors.InsufficientPrivileges as exc:
            logger.error("%s %s", exc.message, exc.remediation)
            return 1

    report = CertRotator.from_settings(settings).run()
    summarize(report)
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
