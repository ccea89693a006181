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

"""Async adapter over the Pulumi Automation API.

The automation API is blocking, so each call runs on a worker thread via
asyncio.to_thread(). Engine events fire on that worker thread; they are
converted to ResourceEvents and re-posted to the event loop with
call_soon_threadsafe() so listeners only ever run on the loop thread.
"""

import asyncio
import logging
from typing import Any, Callable

from pulumi import automation as auto

from static_site_forge.common import Settings
from static_site_forge.lifecycle import OutputsEvent, PreEvent, ResourceEvent
from static_site_forge.program import pulumi_program

LOG = logging.getLogger(__name__)


def to_resource_event(event) -> ResourceEvent | None:
    """Map a Pulumi EngineEvent to a ResourceEvent; None for other kinds."""
    if event.resource_pre_event is not None:
        meta = event.resource_pre_event.metadata
        return PreEvent(meta.urn, meta.type)
    if event.res_outputs_event is not None:
        meta = event.res_outputs_event.metadata
        return OutputsEvent(meta.urn, meta.type)
    return None


def workspace_options(settings: Settings) -> auto.LocalWorkspaceOptions | None:
    """Options for the Pulumi workspace; carries AWS_PROFILE from .env to the engine."""
    if not settings.aws_profile:
        return None
    return auto.LocalWorkspaceOptions(env_vars={"AWS_PROFILE": settings.aws_profile})


def _log_engine_output(line: str) -> None:
    LOG.debug("pulumi: %s", line.rstrip())


class PulumiStack:
    """A selected Pulumi stack exposing the lifecycle calls as coroutines."""

    def __init__(self, stack: auto.Stack):
        self.stack = stack

    @classmethod
    async def create_or_select(cls, settings: Settings) -> "PulumiStack":
        LOG.debug("Selecting stack %s/%s", settings.project_name, settings.stack_name)
        stack = await asyncio.to_thread(
            auto.create_or_select_stack,
            stack_name=settings.stack_name,
            project_name=settings.project_name,
            program=pulumi_program,
            opts=workspace_options(settings),
        )
        return cls(stack)

    @property
    def name(self) -> str:
        return self.stack.name

    async def install_plugin(self, name: str, version: str) -> None:
        await asyncio.to_thread(self.stack.workspace.install_plugin, name, version)

    async def set_config(self, key: str, value: str) -> None:
        await asyncio.to_thread(self.stack.set_config, key, auto.ConfigValue(value=value))

    async def refresh(self) -> None:
        await asyncio.to_thread(self.stack.refresh, on_output=_log_engine_output)

    async def up(self, on_event: Callable[[ResourceEvent], None] | None = None) -> dict[str, Any]:
        """Run `pulumi up` and return the stack outputs as plain values."""
        engine_callback = self._forward_events(on_event) if on_event else None
        result = await asyncio.to_thread(
            self.stack.up, on_output=_log_engine_output, on_event=engine_callback,
        )
        LOG.debug("Update summary: %s", result.summary.resource_changes)
        return {name: output.value for name, output in result.outputs.items()}

    async def destroy(self) -> None:
        await asyncio.to_thread(self.stack.destroy, on_output=_log_engine_output)

    async def remove_stack(self, name: str) -> None:
        await asyncio.to_thread(self.stack.workspace.remove_stack, name)

    async def outputs(self) -> dict[str, Any]:
        outputs = await asyncio.to_thread(self.stack.outputs)
        return {name: output.value for name, output in outputs.items()}

    @staticmethod
    def _forward_events(on_event: Callable[[ResourceEvent], None]):
        """Build an engine-event callback that delivers on the running loop."""
        loop = asyncio.get_running_loop()

        def forward(engine_event) -> None:
            event = to_resource_event(engine_event)
            if event is not None:
                loop.call_soon_threadsafe(on_event, event)

        return forward
