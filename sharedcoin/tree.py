"""
Shared Coin Covenant - Tree Generator

This module builds the self-replicating covenant tree of a shared coin.

Every stakeholder script is prefixed with an output check forcing output #0
of the spending transaction to pay the rest of the coin to the tree of the
other stakeholders. The change tree is built the same way, recursively, so
each withdrawal leaves a coin that is again a shared coin. A single
stakeholder's tree is just their own scripts.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from scripts.exceptions import ScriptDecodeError
from scripts.output_constraint import OutputConstraint, extract_output_constraint, wrap_script
from scripts.taproot_tree import (
    TapLeaf,
    TapTree,
    control_block,
    iter_leaves,
    merkle_path,
    sorted_taproot_tree,
    taproot_output_script,
    taproot_witness_program,
)
from sharedcoin.exceptions import NoStakeholdersError, StakeholderNotFoundError
from sharedcoin.stakeholder import Stakeholder, total_amount


# BIP341 "H" point: x-only key with no known discrete log
UNSPENDABLE_INTERNAL_KEY = bytes.fromhex(
    '50929b74c1a04954b78b4b6035e97a5e078a5a0f28ec96d547bfee9ace803ac0'
)

CHANGE_OUTPUT_INDEX = 0

StakeholderKey = Tuple[Stakeholder, ...]


@dataclass
class ScriptPathInfo:
    """Information a stakeholder needs to withdraw from the shared coin."""
    leaf: TapLeaf
    merkle_path: List[bytes]
    control_block: bytes
    output_constraint: Optional[OutputConstraint] = None
    remaining_stakeholders: List[Stakeholder] = field(default_factory=list)

    def __post_init__(self):
        """Validate script path info."""
        if len(self.control_block) < 33:
            raise ValueError("Control block too short")
        if len(self.control_block) % 32 != 1:
            raise ValueError("Invalid control block length")

    def to_dict(self) -> dict:
        return {
            "leaf_script": self.leaf.script.hex(),
            "leaf_version": self.leaf.leaf_version,
            "control_block": self.control_block.hex(),
            "merkle_path": [node.hex() for node in self.merkle_path],
            "change_output": self.output_constraint.to_dict() if self.output_constraint else None,
            "remaining_stakeholders": [s.to_dict() for s in self.remaining_stakeholders],
        }


class SharedCoinTreeBuilder:
    """
    Builder for shared coin Taproot trees.

    With cache_enabled, trees are memoized by the exact ordered stakeholder
    tuple, which removes the repeated subtree rebuilds across siblings.
    """

    def __init__(
        self,
        internal_pubkey: bytes = UNSPENDABLE_INTERNAL_KEY,
        cache_enabled: bool = False
    ):
        """
        Initialize the tree builder.

        Args:
            internal_pubkey: 32-byte x-only internal key of every tree level
            cache_enabled: Memoize subtrees by stakeholder tuple
        """
        if len(internal_pubkey) != 32:
            raise ValueError("Internal pubkey must be 32 bytes (x-only)")

        self.internal_pubkey = internal_pubkey
        self.cache_enabled = cache_enabled
        self.tree_cache: Dict[StakeholderKey, TapTree] = {}
        self.logger = logging.getLogger(__name__)

    def build_tree(self, stakeholders: Sequence[Stakeholder]) -> TapTree:
        """
        Build the covenant tree for stakeholders.

        Args:
            stakeholders: Parties sharing the coin (order does not change the root)

        Returns:
            Root of the script tree
        """
        key = tuple(stakeholders)
        if not key:
            raise NoStakeholdersError("No stakeholders provided")

        if self.cache_enabled and key in self.tree_cache:
            self.logger.debug(f"Tree cache hit for {len(key)} stakeholders")
            return self.tree_cache[key]

        if len(key) == 1:
            tree = sorted_taproot_tree([TapLeaf(script) for script in key[0].scripts])
        else:
            tree = sorted_taproot_tree(self._constrained_leaves(key))

        self.logger.debug(f"Built shared coin tree for {len(key)} stakeholders: {tree.hash.hex()}")

        if self.cache_enabled:
            self.tree_cache[key] = tree
        return tree

    def _change_constraint(self, stakeholders: StakeholderKey, index: int) -> OutputConstraint:
        """Output check carried by every leaf of stakeholder #index."""
        others = stakeholders[:index] + stakeholders[index + 1:]
        return OutputConstraint(
            output_index=CHANGE_OUTPUT_INDEX,
            witness_program=self.witness_program(others),
            amount=total_amount(stakeholders) - stakeholders[index].amount,
        )

    def _constrained_leaves(self, stakeholders: StakeholderKey) -> List[TapLeaf]:
        leaves = []

        for index, stakeholder in enumerate(stakeholders):
            constraint = self._change_constraint(stakeholders, index)
            leaves.extend(TapLeaf(wrap_script(script, constraint)) for script in stakeholder.scripts)

        return leaves

    def witness_program(self, stakeholders: Sequence[Stakeholder]) -> bytes:
        """32-byte segwit v1 program of the shared coin."""
        return taproot_witness_program(self.internal_pubkey, self.build_tree(stakeholders).hash)

    def output_script(self, stakeholders: Sequence[Stakeholder]) -> bytes:
        """scriptPubKey locking the shared coin."""
        return taproot_output_script(self.witness_program(stakeholders))

    def spend_info(self, stakeholders: Sequence[Stakeholder], script: bytes) -> ScriptPathInfo:
        """
        Collect what the owner of script needs to withdraw their share.

        Args:
            stakeholders: Current stakeholders of the coin
            script: One of the withdrawing stakeholder's plain scripts

        Returns:
            ScriptPathInfo with the committed leaf, its control block and the
            change output the spending transaction must carry
        """
        key = tuple(stakeholders)
        owners = [i for i, s in enumerate(key) if script in s.scripts]
        if not owners:
            raise StakeholderNotFoundError("No stakeholder owns this script")

        # First owner withdraws, through the leaf carrying its own change constraint
        index = owners[0]
        remaining = list(key[:index] + key[index + 1:])
        constraint = None
        leaf = TapLeaf(script)
        if remaining:
            constraint = self._change_constraint(key, index)
            leaf = TapLeaf(wrap_script(script, constraint))

        tree = self.build_tree(key)
        path = merkle_path(tree, leaf)
        if path is None:
            raise StakeholderNotFoundError("Script is not committed in the shared coin tree")

        self.logger.info(f"Prepared withdrawal of stakeholder #{index} ({len(remaining)} remaining)")

        return ScriptPathInfo(
            leaf=leaf,
            merkle_path=path,
            control_block=control_block(tree, leaf, self.internal_pubkey),
            output_constraint=constraint,
            remaining_stakeholders=remaining,
        )

    def clear_cache(self) -> None:
        """Clear all cached trees."""
        self.tree_cache.clear()


def shared_coin_tree(
    stakeholders: Sequence[Stakeholder],
    internal_pubkey: bytes = UNSPENDABLE_INTERNAL_KEY
) -> TapTree:
    """Build the covenant tree of a shared coin."""
    return SharedCoinTreeBuilder(internal_pubkey).build_tree(stakeholders)


def _leaf_matches(leaf: TapLeaf, script: bytes) -> bool:
    if leaf.script == script:
        return True
    if not script or not leaf.script.endswith(script):
        return False

    # Only the prefix is decompiled; the stakeholder script may not parse on its own
    prefix = leaf.script[:-len(script)]
    try:
        constraint = extract_output_constraint(prefix)
    except ScriptDecodeError:
        return False
    return constraint is not None and constraint.to_script() == prefix


def find_leaf_including_script(tree: TapTree, script: bytes) -> Optional[TapLeaf]:
    """
    Find the committed leaf for a stakeholder's plain script.

    A leaf matches when it is the script itself, or an output check followed
    by exactly the script. Leaves are searched left to right.

    Returns:
        The first matching leaf, or None
    """
    for leaf in iter_leaves(tree):
        if _leaf_matches(leaf, script):
            return leaf
    return None
