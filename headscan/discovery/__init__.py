"""Head discovery: traits, context, scan requests and sources."""

from .context import DiscoveryContext, DiscoverySettings, WebhookRegistration
from .exceptions import (
    ContextFrozenError,
    DiscoveryError,
    RequestClosedError,
    ScanInterruptedError,
)
from .interfaces import (
    HeadAuthority,
    HeadObserver,
    HeadPrefilter,
    Probe,
    ScanOutcome,
    ScanStatus,
    SourceCriteria,
)
from .lazy import Lazy
from .listener import ScanListener
from .metadata_cache import PullRequestMetadata, PullRequestMetadataCache
from .observers import CollectingObserver, NoOpObserver, SelectHeadObserver
from .probe import (
    LAST_MODIFIED_UNKNOWN,
    AcceptAllCriteria,
    AllOfCriteria,
    HostingProbe,
    PathExistsCriteria,
)
from .request import DiscoveryRequest
from .source import (
    CLOUD_SERVER_URL,
    HeadMetadata,
    HostedSource,
    RepositoryMetadata,
    normalize_server_url,
    run_scan,
)
from .traits import (
    BranchDiscoveryTrait,
    BranchHeadAuthority,
    CheckoutBuilder,
    CheckoutCredentialsTrait,
    DisableNotificationsTrait,
    ForkPullRequestDiscoveryTrait,
    OriginPullRequestAuthority,
    OriginPullRequestDiscoveryTrait,
    PublicRepoPullRequestFilterTrait,
    RefSpecsTrait,
    SourceTrait,
    TagDiscoveryTrait,
    TraitPipeline,
    TrustEveryone,
    TrustNobody,
    TrustTeamForks,
    WebhookRegistrationTrait,
    WildcardHeadFilter,
    WildcardHeadFilterTrait,
    build_trait,
    build_traits,
)

__all__ = [
    "AcceptAllCriteria",
    "AllOfCriteria",
    "BranchDiscoveryTrait",
    "BranchHeadAuthority",
    "CLOUD_SERVER_URL",
    "CheckoutBuilder",
    "CheckoutCredentialsTrait",
    "CollectingObserver",
    "ContextFrozenError",
    "DisableNotificationsTrait",
    "DiscoveryContext",
    "DiscoveryError",
    "DiscoveryRequest",
    "DiscoverySettings",
    "ForkPullRequestDiscoveryTrait",
    "HeadAuthority",
    "HeadMetadata",
    "HeadObserver",
    "HeadPrefilter",
    "HostedSource",
    "HostingProbe",
    "LAST_MODIFIED_UNKNOWN",
    "Lazy",
    "NoOpObserver",
    "OriginPullRequestAuthority",
    "OriginPullRequestDiscoveryTrait",
    "PathExistsCriteria",
    "Probe",
    "PublicRepoPullRequestFilterTrait",
    "PullRequestMetadata",
    "PullRequestMetadataCache",
    "RefSpecsTrait",
    "RepositoryMetadata",
    "RequestClosedError",
    "ScanInterruptedError",
    "ScanListener",
    "ScanOutcome",
    "ScanStatus",
    "SelectHeadObserver",
    "SourceCriteria",
    "SourceTrait",
    "TagDiscoveryTrait",
    "TraitPipeline",
    "TrustEveryone",
    "TrustNobody",
    "TrustTeamForks",
    "WebhookRegistration",
    "WebhookRegistrationTrait",
    "WildcardHeadFilter",
    "WildcardHeadFilterTrait",
    "build_trait",
    "build_traits",
    "normalize_server_url",
    "run_scan",
]
