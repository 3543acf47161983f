"""Phase driven reconciliation engine.

Each kind of managed resource registers one `PhaseReconciler` per phase with a
`PhaseDispatcher`. The dispatcher looks up the reconciler for the resource's
current phase, checks that the phases match and invokes it on a clone of the
resource.
"""

from .base import PhaseReconciler, ReconcileResult
from .cache import LastKnownGoodCache
from .deployer import ResourceDeployer
from .dispatcher import PhaseDispatcher, apply_transition, check_phase

__all__ = [
    "PhaseReconciler",
    "ReconcileResult",
    "LastKnownGoodCache",
    "ResourceDeployer",
    "PhaseDispatcher",
    "apply_transition",
    "check_phase",
]
