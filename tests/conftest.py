import pytest

from static_site_forge.common import Settings
from static_site_forge.lifecycle import OutputsEvent, PreEvent

BUCKET_URN = "urn:pulumi:dev::inlineS3Project::aws:s3/bucket:Bucket::s3-website-bucket"
OBJECT_URN = "urn:pulumi:dev::inlineS3Project::aws:s3/bucketObject:BucketObject::index"
POLICY_URN = "urn:pulumi:dev::inlineS3Project::aws:s3/bucketPolicy:BucketPolicy::bucketPolicy"

WEBSITE_ENDPOINT = "s3-website-bucket-1234.s3-website-us-west-2.amazonaws.com"


class FakeStack:
    """In-memory stand-in for PulumiStack that records every call."""

    def __init__(self, calls: list, fail_on: dict | None = None, events=(), outputs=None):
        self.calls = calls
        self.fail_on = fail_on or {}
        self.events = list(events)
        self._outputs = {"website_url": WEBSITE_ENDPOINT} if outputs is None else outputs

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise self.fail_on[name]

    async def install_plugin(self, name, version):
        self._record("install_plugin", name, version)

    async def set_config(self, key, value):
        self._record("set_config", key, value)

    async def refresh(self):
        self._record("refresh")

    async def up(self, on_event=None):
        self._record("up")
        for event in self.events:
            if on_event is not None:
                on_event(event)
        return dict(self._outputs)

    async def destroy(self):
        self._record("destroy")

    async def remove_stack(self, name):
        self._record("remove_stack", name)

    async def outputs(self):
        self._record("outputs")
        return dict(self._outputs)


class RecordingListener:
    def __init__(self):
        self.phases = []
        self.events = []
        self.outcomes = []

    def on_phase_start(self, label):
        self.phases.append(label)

    def on_resource_event(self, event):
        self.events.append(event)

    def on_finish(self, outcome):
        self.outcomes.append(outcome)


def make_opener(calls: list, fail_on: dict | None = None, **kwargs):
    """Return (opener, stack); opener records create_or_select like the real one."""
    stack = FakeStack(calls, fail_on=fail_on, **kwargs)

    async def open_stack(settings):
        calls.append(("create_or_select", settings.stack_name))
        if fail_on and "create_or_select" in fail_on:
            raise fail_on["create_or_select"]
        return stack

    return open_stack, stack


@pytest.fixture
def settings():
    return Settings(
        project_name="inlineS3Project",
        stack_name="dev",
        aws_region="us-west-2",
        aws_plugin_version="v6.52.0",
    )


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def website_events():
    return [
        PreEvent(BUCKET_URN, "aws:s3/bucket:Bucket"),
        OutputsEvent(BUCKET_URN, "aws:s3/bucket:Bucket"),
        PreEvent(OBJECT_URN, "aws:s3/bucketObject:BucketObject"),
        OutputsEvent(OBJECT_URN, "aws:s3/bucketObject:BucketObject"),
        PreEvent(POLICY_URN, "aws:s3/bucketPolicy:BucketPolicy"),
        OutputsEvent(POLICY_URN, "aws:s3/bucketPolicy:BucketPolicy"),
    ]
