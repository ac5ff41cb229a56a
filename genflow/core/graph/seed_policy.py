# genflow/core/graph/seed_policy.py
"""Seed policies: how the noise node gets its seed(s).

Two independent switches pick the policy: seed randomization and whether more
than one iteration is requested. Each policy inserts its own generator stage
upstream of the noise node:

    FIXED_SINGLE     noise(seed=<seed>)
    RANDOM_SINGLE    rand_int.a -> noise.seed
    FIXED_ITERATED   range_of_size(start=<seed>, size=N).collection -> iterate.collection,
                     iterate.item -> noise.seed
    RANDOM_ITERATED  rand_int.a -> range_of_size.start, then as FIXED_ITERATED
"""
from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from genflow.schema import GenerationConfig

from .graph import EdgeConnection, GraphBuilder
from .nodes import IterateNode, NodeRole, RandomIntNode, RangeOfSizeNode


class SeedPolicy(str, Enum):
    FIXED_SINGLE = "fixed_single"
    RANDOM_SINGLE = "random_single"
    FIXED_ITERATED = "fixed_iterated"
    RANDOM_ITERATED = "random_iterated"

    @classmethod
    def select(cls, should_randomize_seed: bool, iterations: int) -> SeedPolicy:
        """The one policy for (randomize, iterations > 1)."""
        return _POLICY_TABLE[(bool(should_randomize_seed), iterations > 1)]

    @property
    def upstream_node_count(self) -> int:
        """Generator nodes inserted before the noise node."""
        return _UPSTREAM_NODE_COUNT[self]


class SeedSource(NamedTuple):
    """What the noise node needs from a policy.

    ``seed`` is the literal seed for the noise node (None when fed by an edge);
    ``feed`` is the output connected to ``noise.seed`` (None for a literal seed).
    """
    seed: Optional[int]
    feed: Optional[EdgeConnection]


# ==================== BUILDERS ====================

def _fixed_single(builder: GraphBuilder, config: GenerationConfig) -> SeedSource:
    return SeedSource(seed=config.seed, feed=None)


def _random_single(builder: GraphBuilder, config: GenerationConfig) -> SeedSource:
    builder.add_node(RandomIntNode(NodeRole.RANDOM_INT))
    return SeedSource(seed=None, feed=EdgeConnection(NodeRole.RANDOM_INT, "a"))


def _iterate_over_range(
    builder: GraphBuilder,
    config: GenerationConfig,
    *,
    start: Optional[int] = None,
    start_feed: Optional[EdgeConnection] = None,
) -> SeedSource:
    """range_of_size -> iterate; one seed per iteration, ``start .. start + iterations``."""
    builder.add_node(RangeOfSizeNode(NodeRole.RANGE_OF_SIZE, start=start, size=config.iterations))
    builder.add_node(IterateNode(NodeRole.ITERATE))

    if start_feed is not None:
        builder.connect(start_feed.node_id, start_feed.field, NodeRole.RANGE_OF_SIZE, "start")
    builder.connect(NodeRole.RANGE_OF_SIZE, "collection", NodeRole.ITERATE, "collection")
    return SeedSource(seed=None, feed=EdgeConnection(NodeRole.ITERATE, "item"))


def _fixed_iterated(builder: GraphBuilder, config: GenerationConfig) -> SeedSource:
    return _iterate_over_range(builder, config, start=config.seed)


def _random_iterated(builder: GraphBuilder, config: GenerationConfig) -> SeedSource:
    # The range starts on a random first seed
    builder.add_node(RandomIntNode(NodeRole.RANDOM_INT))
    return _iterate_over_range(builder, config, start_feed=EdgeConnection(NodeRole.RANDOM_INT, "a"))


SeedSourceBuilder = Callable[[GraphBuilder, GenerationConfig], SeedSource]

# (should_randomize_seed, iterations > 1) -> policy
_POLICY_TABLE: Dict[Tuple[bool, bool], SeedPolicy] = {
    (False, False): SeedPolicy.FIXED_SINGLE,
    (True, False): SeedPolicy.RANDOM_SINGLE,
    (False, True): SeedPolicy.FIXED_ITERATED,
    (True, True): SeedPolicy.RANDOM_ITERATED,
}

_SEED_SOURCES: Dict[SeedPolicy, SeedSourceBuilder] = {
    SeedPolicy.FIXED_SINGLE: _fixed_single,
    SeedPolicy.RANDOM_SINGLE: _random_single,
    SeedPolicy.FIXED_ITERATED: _fixed_iterated,
    SeedPolicy.RANDOM_ITERATED: _random_iterated,
}

_UPSTREAM_NODE_COUNT: Dict[SeedPolicy, int] = {
    SeedPolicy.FIXED_SINGLE: 0,
    SeedPolicy.RANDOM_SINGLE: 1,
    SeedPolicy.FIXED_ITERATED: 2,
    SeedPolicy.RANDOM_ITERATED: 3,
}


def _check_exhaustive() -> None:
    """Every switch combination maps to a distinct policy and every policy has a builder."""
    combinations = {(r, m) for r in (False, True) for m in (False, True)}
    policies = set(SeedPolicy)
    if set(_POLICY_TABLE) != combinations:
        raise RuntimeError(f"Seed policy table misses combinations: {combinations - set(_POLICY_TABLE)}")
    if len(set(_POLICY_TABLE.values())) != len(_POLICY_TABLE) or set(_POLICY_TABLE.values()) != policies:
        raise RuntimeError("Seed policy table must map each combination to a distinct policy")
    if set(_SEED_SOURCES) != policies or set(_UPSTREAM_NODE_COUNT) != policies:
        raise RuntimeError(f"Seed policies without a builder: {policies - set(_SEED_SOURCES)}")


_check_exhaustive()


def add_seed_source(builder: GraphBuilder, policy: SeedPolicy, config: GenerationConfig) -> SeedSource:
    """Add the generator nodes of ``policy`` (and their edges) to ``builder``."""
    return _SEED_SOURCES[policy](builder, config)
