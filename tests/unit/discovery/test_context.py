"""
Unit tests for the discovery context and the trait pipeline.

Tests monotonic accumulation, order independence of the context half,
freezing after a request is built, trait construction from configuration and
the order-sensitive builder half.
"""

import itertools

import pytest

from headscan.config import ForkTrust, TraitConfig, TraitKind
from headscan.discovery import (
    BranchDiscoveryTrait,
    CheckoutBuilder,
    CheckoutCredentialsTrait,
    CollectingObserver,
    ContextFrozenError,
    DisableNotificationsTrait,
    DiscoveryContext,
    ForkPullRequestDiscoveryTrait,
    OriginPullRequestDiscoveryTrait,
    PublicRepoPullRequestFilterTrait,
    RefSpecsTrait,
    TagDiscoveryTrait,
    TraitPipeline,
    TrustEveryone,
    TrustNobody,
    TrustTeamForks,
    WebhookRegistration,
    WebhookRegistrationTrait,
    WildcardHeadFilter,
    build_traits,
)
from headscan.scm import BranchHead, CheckoutStrategy
from tests.fixtures.hosting import FakeHostingClient, make_source


class TestDiscoveryContext:
    """Tests for context accumulators."""

    def test_accumulators_only_turn_flags_on(self):
        """
        Why: A later trait must never undo a requirement an earlier one added
        What: Tests that passing False after True keeps the flag on
        How: Calls each accumulator with True then False
        """
        context = DiscoveryContext()
        context.want_branches(True).want_branches(False)
        context.want_tags(True).want_tags(False)
        context.want_origin_prs(True).want_origin_prs(False)
        context.want_fork_prs(True).want_fork_prs(False)
        context.skip_public_prs(True).skip_public_prs(False)

        assert context.wants_branches
        assert context.wants_tags
        assert context.wants_origin_prs
        assert context.wants_fork_prs
        assert context.skips_public_prs

    def test_strategies_accumulate_as_sets(self):
        context = DiscoveryContext()
        context.with_origin_pr_strategies([CheckoutStrategy.HEAD])
        context.with_origin_pr_strategies([CheckoutStrategy.MERGE])
        context.with_fork_pr_strategies([CheckoutStrategy.MERGE])
        context.with_fork_pr_strategies([CheckoutStrategy.MERGE])

        assert context.origin_pr_strategies == {
            CheckoutStrategy.HEAD,
            CheckoutStrategy.MERGE,
        }
        assert context.fork_pr_strategies == {CheckoutStrategy.MERGE}

    def test_wants_prs_is_either_pr_flag(self):
        assert not DiscoveryContext().wants_prs
        assert DiscoveryContext().want_origin_prs(True).wants_prs
        assert DiscoveryContext().want_fork_prs(True).wants_prs

    def test_defaults(self):
        context = DiscoveryContext()

        assert context.registration == WebhookRegistration.SYSTEM
        assert not context.notifications_disabled
        assert not context.frozen

    def test_trait_order_does_not_change_context_settings(self):
        """
        Why: Users list traits in any order; discovery must not depend on it
        What: Tests that every permutation of traits yields the same settings
        How: Compares the wanted flags and strategy sets of all permutations
        """
        traits = [
            BranchDiscoveryTrait(),
            OriginPullRequestDiscoveryTrait([CheckoutStrategy.MERGE]),
            ForkPullRequestDiscoveryTrait([CheckoutStrategy.HEAD, CheckoutStrategy.MERGE]),
            TagDiscoveryTrait(),
            PublicRepoPullRequestFilterTrait(),
            DisableNotificationsTrait(),
        ]

        def summary(ordered):
            settings = DiscoveryContext().with_traits(ordered).settings()
            return (
                settings.want_branches,
                settings.want_tags,
                settings.want_origin_prs,
                settings.want_fork_prs,
                settings.skip_public_prs,
                settings.origin_pr_strategies,
                settings.fork_pr_strategies,
                settings.notifications_disabled,
            )

        expected = summary(traits)
        for permutation in itertools.permutations(traits):
            assert summary(list(permutation)) == expected

    def test_context_is_frozen_after_request(self):
        source = make_source(FakeHostingClient(), [])
        context = DiscoveryContext().want_branches(True)

        request = context.new_request(source, CollectingObserver())

        assert context.frozen
        assert request.wants_branches
        with pytest.raises(ContextFrozenError):
            context.want_tags(True)
        with pytest.raises(ContextFrozenError):
            context.with_traits([BranchDiscoveryTrait()])

    def test_request_settings_are_a_snapshot(self):
        source = make_source(FakeHostingClient(), [])
        context = DiscoveryContext().with_origin_pr_strategies([CheckoutStrategy.HEAD])

        request = context.new_request(source, CollectingObserver())

        assert request.settings.origin_pr_strategies == frozenset({CheckoutStrategy.HEAD})


class TestTraits:
    """Tests for individual traits."""

    def test_webhook_registration_trait_sets_mode(self):
        context = DiscoveryContext().with_traits(
            [WebhookRegistrationTrait(WebhookRegistration.ITEM)]
        )

        assert context.registration == WebhookRegistration.ITEM

    def test_strongest_webhook_registration_wins_in_any_order(self):
        """
        Why: Two traits asking for different registration modes must not
             depend on the order they are listed in
        What: Tests that ITEM beats SYSTEM beats DISABLE for every ordering
        How: Decorates contexts with all permutations of the three modes
        """
        traits = [WebhookRegistrationTrait(mode) for mode in WebhookRegistration]

        for permutation in itertools.permutations(traits):
            context = DiscoveryContext().with_traits(permutation)
            assert context.registration == WebhookRegistration.ITEM

        weaker = [WebhookRegistration.DISABLE, WebhookRegistration.SYSTEM]
        for ordered in (weaker, list(reversed(weaker))):
            context = DiscoveryContext().with_traits(
                [WebhookRegistrationTrait(mode) for mode in ordered]
            )
            assert context.registration == WebhookRegistration.SYSTEM

    def test_disable_alone_disables_registration(self):
        context = DiscoveryContext().with_traits(
            [WebhookRegistrationTrait(WebhookRegistration.DISABLE)]
        )

        assert context.registration == WebhookRegistration.DISABLE
        assert context.settings().webhook_registration == WebhookRegistration.DISABLE

    def test_fork_trait_registers_trust_authority(self):
        for trust, authority in [
            (ForkTrust.EVERYONE, TrustEveryone),
            (ForkTrust.TEAM_FORKS, TrustTeamForks),
            (ForkTrust.NOBODY, TrustNobody),
        ]:
            settings = (
                DiscoveryContext()
                .with_traits([ForkPullRequestDiscoveryTrait(trust=trust)])
                .settings()
            )
            assert [type(a) for a in settings.authorities] == [authority]

    def test_wildcard_filter_matches_names(self):
        head_filter = WildcardHeadFilter("master feature/*", "feature/wip*")

        assert not head_filter.is_excluded(None, BranchHead("master"))
        assert not head_filter.is_excluded(None, BranchHead("feature/login"))
        assert head_filter.is_excluded(None, BranchHead("feature/wip-login"))
        assert head_filter.is_excluded(None, BranchHead("develop"))

    def test_empty_includes_exclude_everything(self):
        head_filter = WildcardHeadFilter("", "")

        assert head_filter.is_excluded(None, BranchHead("master"))


class TestTraitPipeline:
    """Tests for the builder half of the trait pipeline."""

    def test_builder_traits_run_in_order(self):
        """
        Why: Builder decoration is order sensitive; the last trait wins
        What: Tests that two credential traits leave the later credentials
        How: Decorates a builder through a pipeline of two credential traits
        """
        pipeline = TraitPipeline(
            [CheckoutCredentialsTrait("first"), CheckoutCredentialsTrait("second")]
        )
        builder = CheckoutBuilder(head=BranchHead("master"), revision=None, remote="r")

        pipeline.decorate_builder(builder)

        assert builder.credentials_id == "second"

    def test_refspecs_trait_appends_without_duplicates(self):
        builder = CheckoutBuilder(
            head=BranchHead("master"),
            revision=None,
            remote="r",
            refspecs=["+refs/heads/master:refs/remotes/origin/master"],
        )

        RefSpecsTrait(
            [
                "+refs/heads/master:refs/remotes/origin/master",
                "+refs/tags/*:refs/tags/*",
            ]
        ).decorate_builder(builder)

        assert builder.refspecs == [
            "+refs/heads/master:refs/remotes/origin/master",
            "+refs/tags/*:refs/tags/*",
        ]

    def test_context_traits_leave_builder_untouched(self):
        builder = CheckoutBuilder(head=BranchHead("master"), revision=None, remote="r")

        TraitPipeline([BranchDiscoveryTrait()]).decorate_builder(builder)

        assert builder.credentials_id is None
        assert builder.refspecs == []


class TestBuildTraits:
    """Tests for building traits from configuration."""

    def test_build_traits_in_configuration_order(self):
        configs = [
            TraitConfig(kind=TraitKind.BRANCH_DISCOVERY),
            TraitConfig(kind=TraitKind.ORIGIN_PR_DISCOVERY, strategies=["merge", "head"]),
            TraitConfig(kind=TraitKind.FORK_PR_DISCOVERY, trust="nobody"),
            TraitConfig(kind=TraitKind.WILDCARD_FILTER, includes="master"),
            TraitConfig(kind=TraitKind.WEBHOOK_REGISTRATION, mode="disable"),
            TraitConfig(kind=TraitKind.CHECKOUT_CREDENTIALS, credentials_id="ssh-key"),
        ]

        traits = build_traits(configs)

        assert [type(trait).__name__ for trait in traits] == [
            "BranchDiscoveryTrait",
            "OriginPullRequestDiscoveryTrait",
            "ForkPullRequestDiscoveryTrait",
            "WildcardHeadFilterTrait",
            "WebhookRegistrationTrait",
            "CheckoutCredentialsTrait",
        ]
        assert traits[1].strategies == {CheckoutStrategy.MERGE, CheckoutStrategy.HEAD}
        assert traits[2].trust == ForkTrust.NOBODY
        assert traits[4].mode == WebhookRegistration.DISABLE
        assert traits[5].credentials_id == "ssh-key"
