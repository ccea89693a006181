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

"""Lifecycle driver -- runs the fixed phase sequence against a stack.

Phases are strictly sequential:

    update:  create stack → plugins → config → refresh → up → done
    destroy: create stack → plugins → config → refresh → destroy → remove stack → done

Each transition is reported to a listener (normally the DisplayController).
The first failing phase ends the run; nothing is retried or rolled back.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from static_site_forge.common import Settings

LOG = logging.getLogger(__name__)

AWS_PLUGIN = "aws"
REGION_CONFIG_KEY = "aws:region"
WEBSITE_URL_OUTPUT = "website_url"
DESTROY_SUCCESS_MESSAGE = "Success! Stack destroyed."


class RunMode(Enum):
    UPDATE = "update"
    DESTROY = "destroy"


class Phase(Enum):
    CREATING_STACK = "Creating stack..."
    ENSURING_PLUGINS = "Ensuring plugins..."
    SETTING_CONFIG = "Setting configuration..."
    REFRESHING = "Running refresh..."
    APPLYING = "Applying..."
    DELETING_STACK = "Deleting stack..."
    DONE = "Done"
    FAILED = "Failed"


def phase_label(phase: Phase, mode: RunMode) -> str:
    """Human-readable label shown while a phase runs."""
    if phase is Phase.APPLYING:
        return f"Running {mode.value}..."
    return phase.value


def phases_for(mode: RunMode) -> tuple[Phase, ...]:
    """Phases that report a start for the given mode, in order."""
    phases = (
        Phase.CREATING_STACK,
        Phase.ENSURING_PLUGINS,
        Phase.SETTING_CONFIG,
        Phase.REFRESHING,
        Phase.APPLYING,
    )
    if mode is RunMode.DESTROY:
        phases += (Phase.DELETING_STACK,)
    return phases


# ---------------------------------------------------------------------------
# Resource events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PreEvent:
    """A resource operation has started."""

    resource_id: str
    resource_type: str


@dataclass(frozen=True)
class OutputsEvent:
    """A resource operation has finished and its outputs are known."""

    resource_id: str
    resource_type: str


ResourceEvent = PreEvent | OutputsEvent


# ---------------------------------------------------------------------------
# Outcomes and errors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Success:
    message: str
    outputs: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Failure:
    message: str


Outcome = Success | Failure


class PhaseError(Exception):
    """A provisioning call failed while the driver was in `phase`."""

    def __init__(self, phase: Phase, message: str):
        super().__init__(message)
        self.phase = phase
        self.message = message


# ---------------------------------------------------------------------------
# Collaborator shapes
# ---------------------------------------------------------------------------

class StackHandle(Protocol):
    async def install_plugin(self, name: str, version: str) -> None: ...

    async def set_config(self, key: str, value: str) -> None: ...

    async def refresh(self) -> None: ...

    async def up(self, on_event: Callable[[ResourceEvent], None] | None = None) -> dict[str, Any]: ...

    async def destroy(self) -> None: ...

    async def remove_stack(self, name: str) -> None: ...

    async def outputs(self) -> dict[str, Any]: ...


class RunListener(Protocol):
    def on_phase_start(self, label: str) -> None: ...

    def on_resource_event(self, event: ResourceEvent) -> None: ...

    def on_finish(self, outcome: Outcome) -> None: ...


StackOpener = Callable[[Settings], Awaitable[StackHandle]]


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

class LifecycleDriver:
    """Sequences the phases of one run and reports them to a listener."""

    def __init__(self, open_stack: StackOpener, listener: RunListener, settings: Settings):
        self.open_stack = open_stack
        self.listener = listener
        self.settings = settings
        # CREATING_STACK until run() moves on; DONE or FAILED afterwards
        self.phase: Phase = Phase.CREATING_STACK

    async def run(self, mode: RunMode) -> Outcome:
        """Run every phase for `mode` and report exactly one outcome."""
        LOG.debug("Starting %s run for stack %s", mode.value, self.settings.stack_name)
        try:
            outcome = await self._run_phases(mode)
        except PhaseError as e:
            LOG.debug("Run failed during %s: %s", e.phase.name, e.message)
            self.phase = Phase.FAILED
            outcome = Failure(e.message)
        else:
            self.phase = Phase.DONE
        self.listener.on_finish(outcome)
        return outcome

    async def _run_phases(self, mode: RunMode) -> Success:
        settings = self.settings
        stack = await self._step(Phase.CREATING_STACK, mode, self.open_stack, settings)
        await self._step(Phase.ENSURING_PLUGINS, mode, stack.install_plugin,
                         AWS_PLUGIN, settings.aws_plugin_version)
        await self._step(Phase.SETTING_CONFIG, mode, stack.set_config,
                         REGION_CONFIG_KEY, settings.aws_region)
        await self._step(Phase.REFRESHING, mode, stack.refresh)

        if mode is RunMode.DESTROY:
            await self._step(Phase.APPLYING, mode, stack.destroy)
            await self._step(Phase.DELETING_STACK, mode, stack.remove_stack, settings.stack_name)
            return Success(DESTROY_SUCCESS_MESSAGE)

        outputs = await self._step(Phase.APPLYING, mode, stack.up,
                                   on_event=self.listener.on_resource_event)
        url = (outputs or {}).get(WEBSITE_URL_OUTPUT)
        if not url:
            raise PhaseError(Phase.APPLYING, f"Stack did not export '{WEBSITE_URL_OUTPUT}'")
        return Success(f"Success! Website URL: http://{url}", dict(outputs))

    async def _step(self, phase: Phase, mode: RunMode, call, *args, **kwargs):
        self.phase = phase
        self.listener.on_phase_start(phase_label(phase, mode))
        try:
            return await call(*args, **kwargs)
        except Exception as e:
            raise PhaseError(phase, str(e) or type(e).__name__) from e
