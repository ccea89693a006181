# Copyright 2025 Snowflake Inc.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Shared helpers for Static Site Forge.

Includes: .env loading, resolved run settings, logging setup for the CLI.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

ENV_FILENAME = ".env"

DEFAULTS = {
    "SSF_PROJECT_NAME": "inlineS3Project",
    "SSF_STACK_NAME": "dev",
    "SSF_AWS_REGION": "us-west-2",
    "SSF_AWS_PLUGIN_VERSION": "v6.52.0",
}

# Third-party loggers that are too chatty at DEBUG
_QUIET_LOGGERS = {
    "asyncio": logging.INFO,
    "boto3": logging.INFO,
    "botocore": logging.ERROR,
    "urllib3": logging.WARNING,
}


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for a single run."""

    project_name: str
    stack_name: str
    aws_region: str
    aws_plugin_version: str
    aws_profile: str | None = None


def get_config(work_dir: Path) -> dict:
    """Load <work_dir>/.env as a dict (empty if the file is missing)."""
    env_file = work_dir / ENV_FILENAME
    if env_file.exists():
        return {k: v for k, v in dotenv_values(env_file).items() if v is not None}
    return {}


def _lookup(cfg: dict, key: str) -> str | None:
    """Resolve a key: .env > process environment > DEFAULTS."""
    return cfg.get(key) or os.getenv(key) or DEFAULTS.get(key)


def load_settings(cfg: dict) -> Settings:
    return Settings(
        project_name=_lookup(cfg, "SSF_PROJECT_NAME"),
        stack_name=_lookup(cfg, "SSF_STACK_NAME"),
        aws_region=_lookup(cfg, "SSF_AWS_REGION"),
        aws_plugin_version=_lookup(cfg, "SSF_AWS_PLUGIN_VERSION"),
        aws_profile=_lookup(cfg, "AWS_PROFILE"),
    )


def check_tool(name: str) -> bool:
    """Return True if an executable is available on PATH."""
    return shutil.which(name) is not None


def setup_logging_for_cli(log_level=logging.WARNING):
    logging.basicConfig(level=log_level)

    logging.root.setLevel(log_level)
    logging.getLogger("static_site_forge").setLevel(log_level)
    for logger, level in _QUIET_LOGGERS.items():
        logging.getLogger(logger).setLevel(max(level, log_level))
