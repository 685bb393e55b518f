"""Service layer: packet-filter engine, guard services, backups and the apply state machine."""

from nftsafe.services.nftables import NftablesEngine, RulesetEngine
from nftsafe.services.guard import GuardServiceController, SystemdGuardController
from nftsafe.services.backup import BackupStore
from nftsafe.services.apply import ApplyResult, ApplyState, ApplyStateMachine

__all__ = [
    "NftablesEngine",
    "RulesetEngine",
    "GuardServiceController",
    "SystemdGuardController",
    "BackupStore",
    "ApplyResult",
    "ApplyState",
    "ApplyStateMachine",
]
