"""Tests for DisplayState rendering and the DisplayController callbacks."""

import io

from hypothesis import given
from hypothesis import strategies as st
from rich.console import Console

from static_site_forge.display import DisplayController, DisplayState, render
from static_site_forge.lifecycle import Failure, OutputsEvent, PreEvent, Success
from tests.conftest import BUCKET_URN, OBJECT_URN


def make_console(terminal: bool = False) -> Console:
    return Console(file=io.StringIO(), force_terminal=terminal, width=200, color_system=None)


def output_of(console: Console) -> str:
    return console.file.getvalue()


# ---------------------------------------------------------------------------
# render()
# ---------------------------------------------------------------------------

class TestRender:
    def test_only_current_step_before_any_resource_event(self):
        state = DisplayState(current_phase_label="Running refresh...")
        assert render(state) == "Current step: Running refresh..."

    def test_resource_lines_are_sorted_with_counts(self):
        state = DisplayState(
            current_phase_label="Running update...",
            in_flight={"b": "aws:s3/bucketPolicy:BucketPolicy", "a": "aws:s3/bucketObject:BucketObject"},
            completed={"c": "aws:s3/bucket:Bucket"},
        )
        assert render(state).splitlines() == [
            "Current step: Running update...",
            "Update in progress (2): [aws:s3/bucketObject:BucketObject, aws:s3/bucketPolicy:BucketPolicy]",
            "Update complete (1): [aws:s3/bucket:Bucket]",
        ]

    def test_finished_success_is_a_single_line(self):
        state = DisplayState(finished=True, message="Success! Stack destroyed.",
                             completed={"c": "aws:s3/bucket:Bucket"})
        assert render(state) == "✔ Success! Stack destroyed."

    def test_finished_failure_uses_failure_marker(self):
        state = DisplayState(finished=True, failed=True, message="Failure!: InvalidRegion")
        assert render(state) == "✘ Failure!: InvalidRegion"

    def test_render_is_idempotent(self):
        state = DisplayState(
            current_phase_label="Running update...",
            in_flight={BUCKET_URN: "aws:s3/bucket:Bucket"},
            completed={OBJECT_URN: "aws:s3/bucketObject:BucketObject"},
        )
        assert render(state) == render(state)


# ---------------------------------------------------------------------------
# DisplayController
# ---------------------------------------------------------------------------

class TestController:
    def test_pre_then_outputs_moves_resource_to_completed(self):
        display = DisplayController(make_console(), interactive=False)
        display.on_resource_event(PreEvent(BUCKET_URN, "aws:s3/bucket:Bucket"))
        assert display.state.in_flight == {BUCKET_URN: "aws:s3/bucket:Bucket"}

        display.on_resource_event(OutputsEvent(BUCKET_URN, "aws:s3/bucket:Bucket"))
        assert display.state.in_flight == {}
        assert display.state.completed == {BUCKET_URN: "aws:s3/bucket:Bucket"}

    def test_phase_start_keeps_resource_mappings(self):
        display = DisplayController(make_console(), interactive=False)
        display.on_resource_event(PreEvent(BUCKET_URN, "aws:s3/bucket:Bucket"))
        display.on_phase_start("Deleting stack...")
        assert display.state.current_phase_label == "Deleting stack..."
        assert BUCKET_URN in display.state.in_flight

    def test_non_interactive_prints_one_line_per_phase(self):
        console = make_console()
        display = DisplayController(console, interactive=False)
        with display:
            display.on_phase_start("Creating stack...")
            display.on_resource_event(PreEvent(BUCKET_URN, "aws:s3/bucket:Bucket"))
            display.on_phase_start("Running update...")
            display.on_finish(Success("Success! Website URL: http://example.com"))

        assert output_of(console).splitlines() == [
            "Current step: Creating stack...",
            "Current step: Running update...",
            "✔ Success! Website URL: http://example.com",
        ]

    def test_failure_sets_failed_and_message(self):
        console = make_console()
        display = DisplayController(console, interactive=False)
        display.on_phase_start("Setting configuration...")
        display.on_finish(Failure("InvalidRegion"))

        assert display.state.finished is True
        assert display.state.failed is True
        assert display.state.message == "Failure!: InvalidRegion"
        assert output_of(console).splitlines()[-1] == "✘ Failure!: InvalidRegion"

    def test_nothing_changes_after_finish(self):
        console = make_console()
        display = DisplayController(console, interactive=False)
        display.on_resource_event(PreEvent(BUCKET_URN, "aws:s3/bucket:Bucket"))
        display.on_finish(Failure("boom"))
        printed = output_of(console)

        display.on_phase_start("Running refresh...")
        display.on_resource_event(OutputsEvent(BUCKET_URN, "aws:s3/bucket:Bucket"))
        display.on_finish(Success("late"))

        assert display.state.in_flight == {BUCKET_URN: "aws:s3/bucket:Bucket"}
        assert display.state.completed == {}
        assert display.state.failed is True
        assert display.state.message == "Failure!: boom"
        assert output_of(console) == printed

    def test_interactive_live_region_ends_with_final_line(self):
        console = make_console(terminal=True)
        display = DisplayController(console, interactive=True)
        with display:
            assert display._live is not None
            display.on_phase_start("Running update...")
            display.on_resource_event(PreEvent(BUCKET_URN, "aws:s3/bucket:Bucket"))
            display.on_resource_event(OutputsEvent(BUCKET_URN, "aws:s3/bucket:Bucket"))
            display.on_finish(Success("Success! Website URL: http://example.com"))
            assert display._live is None

        assert "✔ Success! Website URL: http://example.com" in output_of(console)

    def test_exit_stops_live_region_without_finish(self):
        display = DisplayController(make_console(terminal=True), interactive=True)
        with display:
            display.on_phase_start("Running refresh...")
        assert display._live is None
        assert display.state.finished is False


# ---------------------------------------------------------------------------
# Interleavings
# ---------------------------------------------------------------------------

@st.composite
def interleavings(draw):
    """Events for distinct resources, shuffled but Pre-before-Outputs per resource."""
    resources = draw(st.dictionaries(
        st.text(alphabet="abcdefgh", min_size=1, max_size=4),
        st.booleans(),
        max_size=8,
    ))
    tokens = []
    for urn, done in resources.items():
        tokens.extend([urn, urn] if done else [urn])
    order = draw(st.permutations(tokens))

    seen = set()
    events = []
    for urn in order:
        if urn in seen:
            events.append(OutputsEvent(urn, f"type:{urn}"))
        else:
            seen.add(urn)
            events.append(PreEvent(urn, f"type:{urn}"))
    return resources, events


@given(interleavings())
def test_in_flight_and_completed_partition_resources(case):
    resources, events = case
    display = DisplayController(make_console(), interactive=False)
    for event in events:
        display.on_resource_event(event)

    in_flight = set(display.state.in_flight)
    completed = set(display.state.completed)
    assert in_flight == {urn for urn, done in resources.items() if not done}
    assert completed == {urn for urn, done in resources.items() if done}
    assert not in_flight & completed
