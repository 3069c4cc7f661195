"""
Unit tests for webhook processors and head delta events.

Tests event type inference, source matching across cloud and server
instances, head delta computation and payload validation.
"""

import pytest

from headscan.scm import BranchHead, GitRevision, MercurialRevision, RepositoryKind
from headscan.webhooks import (
    Change,
    HeadDeltaEvent,
    HeadEventType,
    HookEventType,
    InstanceKind,
    PullRequestHookProcessor,
    PushHookProcessor,
    Reference,
    SourceNavigator,
    WebhookRejectedError,
    infer_event_type,
)
from tests.fixtures.hosting import FakeHostingClient, make_source
from tests.fixtures.webhooks import (
    change,
    cloud_pull_request,
    cloud_push,
    reference,
    server_pull_request,
    server_push,
)

SERVER_URL = "https://git.example.com"


def _change(created: bool = False, closed: bool = False) -> Change:
    ref = Reference(name="b", type="branch", hash="h")
    return Change(
        old=None if created else ref,
        new=None if closed else ref,
        created=created,
        closed=closed,
    )


def _cloud_event(changes: list[dict], **repository) -> HeadDeltaEvent:
    push = PushHookProcessor().parse(
        HookEventType.PUSH, cloud_push(changes, **repository), InstanceKind.CLOUD
    )
    return HeadDeltaEvent(infer_event_type(push.changes), push)


def _server_event(changes: list[dict], **repository) -> HeadDeltaEvent:
    push = PushHookProcessor().parse(
        HookEventType.SERVER_REFS_CHANGED,
        server_push(changes, **repository),
        InstanceKind.SERVER,
    )
    return HeadDeltaEvent(infer_event_type(push.changes), push)


class TestInferEventType:
    """Tests for deriving one event type from a batch of changes."""

    def test_created_only_batch_is_created(self):
        assert infer_event_type([_change(created=True), _change(created=True)]) == (
            HeadEventType.CREATED
        )

    def test_removed_only_batch_is_removed(self):
        assert infer_event_type([_change(closed=True)]) == HeadEventType.REMOVED

    def test_plain_update_is_updated(self):
        assert infer_event_type([_change()]) == HeadEventType.UPDATED

    def test_creation_and_deletion_mix_is_updated(self):
        """
        Why: Mixed batches keep the long-standing coarse classification
        What: Tests that one creation plus one unrelated deletion is UPDATED
        How: Infers the type of both orderings of the two changes
        """
        created = _change(created=True)
        closed = _change(closed=True)

        assert infer_event_type([created, closed]) == HeadEventType.UPDATED
        assert infer_event_type([closed, created]) == HeadEventType.UPDATED


class TestHeadDeltaMatching:
    """Tests for matching push events to sources."""

    def test_cloud_event_matches_cloud_source_ignoring_owner_case(self):
        source = make_source(FakeHostingClient(owner="Bob"), [])
        event = _cloud_event([change(new=reference("master", "h2"))])

        assert event.is_match(source)

    def test_repository_name_must_match_exactly(self):
        source = make_source(FakeHostingClient(repository="Foo"), [])
        event = _cloud_event([change(new=reference("master", "h2"))])

        assert not event.is_match(source)

    def test_cloud_event_does_not_match_server_source(self):
        """
        Why: Equal owner/repository strings on different services are unrelated
        What: Tests that a cloud payload never matches a server source
        How: Builds a server source for bob/foo and a cloud push for bob/foo
        """
        source = make_source(FakeHostingClient(), [], server_url=SERVER_URL)
        event = _cloud_event([change(new=reference("master", "h2"))])

        assert not event.is_match(source)
        assert event.heads(source) == {}

    def test_server_event_does_not_match_cloud_source(self):
        source = make_source(FakeHostingClient(owner="BOB"), [])
        event = _server_event([change(new=reference("master", "h2"))])

        assert not event.is_match(source)

    def test_server_event_matches_by_self_link_host(self):
        source = make_source(FakeHostingClient(owner="BOB"), [], server_url=SERVER_URL)
        other = make_source(
            FakeHostingClient(owner="BOB"), [], server_url="https://other.example.com"
        )
        event = _server_event([change(new=reference("master", "h2"))])

        assert event.is_match(source)
        assert not event.is_match(other)

    def test_navigator_matching(self):
        async def on_event(navigator, event):
            pass

        event = _cloud_event([change(new=reference("master", "h2"))])

        assert event.is_match_navigator(SourceNavigator("BOB", on_event))
        assert not event.is_match_navigator(SourceNavigator("alice", on_event))
        assert not event.is_match_navigator(
            SourceNavigator("bob", on_event, server_url=SERVER_URL)
        )


class TestHeadDeltaHeads:
    """Tests for computing the head delta of a push."""

    def test_deletion_yields_none_revision(self):
        """
        Why: A deleted branch must be reported as removed, not ignored
        What: Tests that {old: master@h1, new: absent, closed} maps master to None
        How: Parses a cloud push with a single closed change
        """
        source = make_source(FakeHostingClient(), [])
        event = _cloud_event(
            [change(old=reference("master", "h1"), new=None, closed=True)]
        )

        assert event.type == HeadEventType.REMOVED
        assert event.heads(source) == {BranchHead("master"): None}

    def test_update_yields_revision_of_repository_kind(self):
        source = make_source(FakeHostingClient(), [])
        event = _cloud_event(
            [change(old=reference("master", "h1"), new=reference("master", "h2"))]
        )

        heads = event.heads(source)

        master = BranchHead("master")
        assert heads == {master: GitRevision(master, "h2")}
        (head,) = heads
        assert head.repository_kind == RepositoryKind.GIT

    def test_mercurial_push_yields_mercurial_revisions(self):
        source = make_source(FakeHostingClient(), [])
        event = _cloud_event(
            [change(new=reference("default", "c1", type="named_branch"), created=True)],
            scm="hg",
        )

        (revision,) = event.heads(source).values()

        assert isinstance(revision, MercurialRevision)
        assert event.type == HeadEventType.CREATED

    def test_tags_are_ignored(self):
        source = make_source(FakeHostingClient(), [])
        event = _cloud_event([change(new=reference("v1.0", "h3", type="tag"), created=True)])

        assert event.heads(source) == {}

    def test_unknown_scm_yields_nothing(self):
        source = make_source(FakeHostingClient(), [])
        event = _cloud_event([change(new=reference("master", "h2"))], scm="svn")

        assert event.heads(source) == {}


class TestPayloadParsing:
    """Tests for payload validation."""

    def test_malformed_json_is_rejected(self):
        with pytest.raises(WebhookRejectedError) as exc_info:
            PushHookProcessor().parse(HookEventType.PUSH, "{not json", InstanceKind.CLOUD)

        assert exc_info.value.status_code == 400

    def test_missing_repository_is_rejected(self):
        with pytest.raises(WebhookRejectedError):
            PushHookProcessor().parse(
                HookEventType.PUSH, '{"push": {"changes": []}}', InstanceKind.CLOUD
            )

    def test_server_push_normalized(self):
        push = PushHookProcessor().parse(
            HookEventType.SERVER_REFS_CHANGED,
            server_push([change(new=reference("master", "h2"))]),
            InstanceKind.SERVER,
        )

        assert push.repository.owner_name == "BOB"
        assert push.repository.repository_name == "foo"
        assert push.repository.links["self"] == [
            f"{SERVER_URL}/projects/BOB/repos/foo/browse"
        ]
        assert push.changes[0].new == Reference("master", "branch", "h2")

    def test_pull_request_payloads_normalized(self):
        processor = PullRequestHookProcessor()

        cloud = processor.parse(
            HookEventType.PULL_REQUEST_CREATED, cloud_pull_request(7), InstanceKind.CLOUD
        )
        server = processor.parse(
            HookEventType.SERVER_PULL_REQUEST_OPENED,
            server_pull_request(8),
            InstanceKind.SERVER,
        )

        assert (cloud.repository.full_name, cloud.pull_request_id) == ("bob/foo", "7")
        assert (server.repository.full_name, server.pull_request_id) == ("BOB/foo", "8")
