# accucb/bandit/__init__.py
"""
ACC-UCB: contextual combinatorial bandit with adaptive hierarchical discretization.

Components (leaves first):
- PartitionTree / PartitionNode: arena-backed context-partition tree.
- ConfidenceModel: confidence radius and optimistic index of a node.
- ScoringStrategy: UCB index plus optional diversity / coverage terms.
- SuperArmOracle: greedy top-K selection with deterministic tie-break.
- StatisticsAggregator: one statistics transition per node per round.
- RefinementEngine: splits leaves whose confidence radius is small enough.
- BanditScheduler: drives one full round at a time.
"""

from .aggregation import NodeDelta, StatisticsAggregator
from .arms import Arm, ArmRecord
from .confidence import UNBOUNDED, ConfidenceModel, confidence_radius
from .errors import (
    BanditError,
    ConfigurationError,
    EmptyCandidateSet,
    OracleFailure,
    OracleTimeout,
    SchedulerHalted,
    UnknownArmId,
    UnknownNodeId,
)
from .matching import ContainmentLeafMatcher, LeafMatcher, RandomLeafMatcher, build_leaf_matcher
from .oracle import SuperArmOracle
from .partition import PartitionNode, PartitionTree
from .refinement import RefinementEngine
from .reward import (
    CallableRewardOracle,
    CollectedReward,
    DeadlineRewardOracle,
    Failed,
    RewardCollector,
    RewardOracle,
    RewardOutcome,
    RewardValue,
    TimedOut,
)
from .scheduler import BanditScheduler, RoundPhase, RoundResult, build_scheduler
from .scoring import ScoringStrategy
from .settings import BanditConfig
from .simulation import BernoulliRewardOracle, UniformArmSource

__all__ = [
    "Arm",
    "ArmRecord",
    "BanditConfig",
    "BanditError",
    "BanditScheduler",
    "BernoulliRewardOracle",
    "CallableRewardOracle",
    "CollectedReward",
    "ConfidenceModel",
    "ConfigurationError",
    "ContainmentLeafMatcher",
    "DeadlineRewardOracle",
    "EmptyCandidateSet",
    "Failed",
    "LeafMatcher",
    "NodeDelta",
    "OracleFailure",
    "OracleTimeout",
    "PartitionNode",
    "PartitionTree",
    "RandomLeafMatcher",
    "RefinementEngine",
    "RewardCollector",
    "RewardOracle",
    "RewardOutcome",
    "RewardValue",
    "RoundPhase",
    "RoundResult",
    "SchedulerHalted",
    "ScoringStrategy",
    "StatisticsAggregator",
    "SuperArmOracle",
    "TimedOut",
    "UNBOUNDED",
    "UniformArmSource",
    "UnknownArmId",
    "UnknownNodeId",
    "build_leaf_matcher",
    "build_scheduler",
    "confidence_radius",
]
