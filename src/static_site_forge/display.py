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

"""Terminal progress display for a provisioning run.

DisplayState is a plain value; render() turns it into text. The
DisplayController owns one state, mutates it from the driver callbacks and
re-renders after every change:

- interactive terminal: a rich Live region with a spinner, the current step
  and the resources in flight / completed
- anything else: one "Current step" line per phase

Once the run is finished a single success or failure line is printed and
nothing else is rendered.
"""

import logging
from dataclasses import dataclass, field

from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner
from rich.text import Text

from static_site_forge.lifecycle import Failure, Outcome, OutputsEvent, PreEvent, ResourceEvent

LOG = logging.getLogger(__name__)

SUCCESS_MARK = "✔"
FAILURE_MARK = "✘"


@dataclass
class DisplayState:
    current_phase_label: str = ""
    finished: bool = False
    failed: bool = False
    message: str = ""
    in_flight: dict[str, str] = field(default_factory=dict)
    completed: dict[str, str] = field(default_factory=dict)


def _resource_line(title: str, resources: dict[str, str]) -> str:
    types = ", ".join(sorted(resources.values()))
    return f"{title} ({len(resources)}): [{types}]"


def render(state: DisplayState) -> str:
    """Render `state` as plain text. Pure: same state, same text."""
    if state.finished:
        mark = FAILURE_MARK if state.failed else SUCCESS_MARK
        return f"{mark} {state.message}"

    lines = [f"Current step: {state.current_phase_label}"]
    if state.in_flight or state.completed:
        lines.append(_resource_line("Update in progress", state.in_flight))
        lines.append(_resource_line("Update complete", state.completed))
    return "\n".join(lines)


class DisplayController:
    """Owns the DisplayState of one run and draws it to the terminal.

    Use as a context manager so the live region is always torn down, even
    if the run is interrupted.
    """

    def __init__(self, console: Console | None = None, interactive: bool | None = None):
        self.console = console or Console()
        self.interactive = self.console.is_terminal if interactive is None else interactive
        self.state = DisplayState()
        self._spinner = Spinner("dots", style="magenta")
        self._live: Live | None = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()
        return False

    def start(self) -> None:
        if self.interactive and self._live is None and not self.state.finished:
            self._spinner.update(text=Text(render(self.state)))
            self._live = Live(self._spinner, console=self.console,
                              refresh_per_second=12, transient=True)
            self._live.start()

    def stop(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    # -- driver callbacks ---------------------------------------------------

    def on_phase_start(self, label: str) -> None:
        if self.state.finished:
            LOG.debug("Ignoring phase %r after finish", label)
            return
        self.state.current_phase_label = label
        if self.interactive:
            self._refresh()
        else:
            self._print(render(self.state).splitlines()[0])

    def on_resource_event(self, event: ResourceEvent) -> None:
        if self.state.finished:
            LOG.debug("Ignoring resource event %r after finish", event)
            return
        if isinstance(event, PreEvent):
            self.state.in_flight[event.resource_id] = event.resource_type
        elif isinstance(event, OutputsEvent):
            self.state.in_flight.pop(event.resource_id, None)
            self.state.completed[event.resource_id] = event.resource_type
        else:
            LOG.debug("Unknown resource event %r", event)
            return
        self._refresh()

    def on_finish(self, outcome: Outcome) -> None:
        if self.state.finished:
            LOG.warning("Run already finished; ignoring %r", outcome)
            return
        self.state.finished = True
        if isinstance(outcome, Failure):
            self.state.failed = True
            self.state.message = f"Failure!: {outcome.message}"
            self.state.current_phase_label = self.state.message
        else:
            self.state.message = outcome.message
        self.stop()
        style = "bold red" if self.state.failed else "bold green"
        self._print(render(self.state), style=style)

    def _print(self, line: str, style: str | None = None) -> None:
        # Resource types and error text contain brackets and colons
        self.console.print(line, style=style, markup=False, emoji=False, highlight=False,
                           soft_wrap=True)

    def _refresh(self) -> None:
        if self._live is None:
            return
        self._spinner.update(text=Text(render(self.state)))
        self._live.refresh()
