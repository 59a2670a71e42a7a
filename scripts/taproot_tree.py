"""
Shared Coin Covenant - Taproot Script Tree

This module provides Elements Taproot script tree functionality including:
- Tap leaves and branches with Elements tagged hashes
- Canonical (hash-sorted) tree construction
- Witness program derivation from internal key and tree root
- Control block generation for script-path spending
- Merkle root reconstruction and script-path verification from a control block
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Union

from crypto.keys import tagged_hash, xonly_tweak_add
from scripts.encoding import serialize_compact_size
from scripts.opcodes import ScriptOpcode


TAPLEAF_TAG = "TapLeaf/elements"
TAPBRANCH_TAG = "TapBranch/elements"
TAPTWEAK_TAG = "TapTweak/elements"

LEAF_VERSION_TAPSCRIPT = 0xc4

TAPROOT_CONTROL_BASE_SIZE = 33
TAPROOT_CONTROL_NODE_SIZE = 32
TAPROOT_CONTROL_MAX_NODE_COUNT = 128


def tap_branch_hash(left: bytes, right: bytes) -> bytes:
    """Hash two child hashes, lexicographically smaller first."""
    if left > right:
        left, right = right, left
    return tagged_hash(TAPBRANCH_TAG, left + right)


@dataclass(frozen=True)
class TapLeaf:
    """Represents a single leaf in the Taproot script tree."""
    script: bytes
    leaf_version: int = LEAF_VERSION_TAPSCRIPT

    def __post_init__(self):
        """Validate leaf parameters."""
        if not self.script:
            raise ValueError("Tap leaf script cannot be empty")
        if self.leaf_version & 1:
            raise ValueError("Leaf version must be even")

    @property
    def hash(self) -> bytes:
        return self.leaf_hash()

    def leaf_hash(self) -> bytes:
        """Compute TapLeaf hash for this leaf."""
        return tagged_hash(
            TAPLEAF_TAG,
            bytes([self.leaf_version]) + serialize_compact_size(len(self.script)) + self.script
        )


@dataclass(frozen=True)
class TapBranch:
    """Represents an internal node in the Taproot script tree."""
    left: Union['TapBranch', TapLeaf]
    right: Union['TapBranch', TapLeaf]
    hash: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'hash', tap_branch_hash(self.left.hash, self.right.hash))

    def branch_hash(self) -> bytes:
        """Compute TapBranch hash for this internal node."""
        return self.hash


TapTree = Union[TapBranch, TapLeaf]


def build_script_tree(leaves: Sequence[TapLeaf]) -> TapTree:
    """
    Build balanced script tree from leaves, in the given order.

    Adjacent nodes are paired level by level; an odd node is carried up.

    Args:
        leaves: List of tap leaves

    Returns:
        Root of the script tree
    """
    if not leaves:
        raise ValueError("At least one leaf required to build a script tree")

    current_level: List[TapTree] = list(leaves)

    while len(current_level) > 1:
        next_level: List[TapTree] = []

        for i in range(0, len(current_level), 2):
            if i + 1 < len(current_level):
                next_level.append(TapBranch(current_level[i], current_level[i + 1]))
            else:
                next_level.append(current_level[i])

        current_level = next_level

    return current_level[0]


def sorted_taproot_tree(leaves: Sequence[TapLeaf]) -> TapTree:
    """
    Build the canonical tree for a set of leaves.

    Leaves are sorted by leaf hash first, so any permutation of the same
    leaves yields the same root.
    """
    return build_script_tree(sorted(leaves, key=lambda leaf: leaf.leaf_hash()))


def iter_leaves(tree: TapTree) -> Iterator[TapLeaf]:
    """Yield leaves left to right."""
    if isinstance(tree, TapLeaf):
        yield tree
    else:
        yield from iter_leaves(tree.left)
        yield from iter_leaves(tree.right)


def taproot_tweak(internal_pubkey: bytes, merkle_root: bytes) -> bytes:
    """Compute the TapTweak hash committing merkle_root to internal_pubkey."""
    if len(internal_pubkey) != 32:
        raise ValueError("Internal pubkey must be 32 bytes (x-only)")
    if len(merkle_root) != 32:
        raise ValueError("Tree root hash must be 32 bytes")
    return tagged_hash(TAPTWEAK_TAG, internal_pubkey + merkle_root)


def taproot_output_key(internal_pubkey: bytes, merkle_root: bytes):
    """
    Tweak internal_pubkey with merkle_root.

    Returns:
        Tuple of (32-byte x-only output key, parity bit)
    """
    return xonly_tweak_add(internal_pubkey, taproot_tweak(internal_pubkey, merkle_root))


def taproot_witness_program(internal_pubkey: bytes, merkle_root: bytes) -> bytes:
    """
    Compute the segwit v1 witness program for a script tree.

    Args:
        internal_pubkey: 32-byte x-only internal public key
        merkle_root: 32-byte root hash of the script tree

    Returns:
        32-byte x-only output key
    """
    output_key, _ = taproot_output_key(internal_pubkey, merkle_root)
    return output_key


def taproot_output_script(witness_program: bytes) -> bytes:
    """scriptPubKey for a segwit v1 witness program: OP_1 <32 bytes>."""
    if len(witness_program) != 32:
        raise ValueError("Witness program must be 32 bytes")
    return bytes([ScriptOpcode.OP_1, 0x20]) + witness_program


def merkle_path(tree: TapTree, target: TapLeaf) -> Optional[List[bytes]]:
    """
    Find the sibling hashes from target up to the root.

    Returns:
        Path ordered leaf-side first, or None if target is not in tree
    """
    if isinstance(tree, TapLeaf):
        return [] if tree == target else None

    left_path = merkle_path(tree.left, target)
    if left_path is not None:
        return left_path + [tree.right.hash]

    right_path = merkle_path(tree.right, target)
    if right_path is not None:
        return right_path + [tree.left.hash]

    return None


def control_block(tree: TapTree, leaf: TapLeaf, internal_pubkey: bytes) -> bytes:
    """
    Generate control block for script-path spending of leaf.

    Args:
        tree: Full script tree
        leaf: The leaf being executed
        internal_pubkey: 32-byte x-only internal public key

    Returns:
        Control block bytes
    """
    path = merkle_path(tree, leaf)
    if path is None:
        raise ValueError("Leaf is not part of the script tree")

    _, parity = taproot_output_key(internal_pubkey, tree.hash)
    return bytes([leaf.leaf_version | parity]) + internal_pubkey + b''.join(path)


def _control_path_length(control: bytes) -> int:
    path_size = len(control) - TAPROOT_CONTROL_BASE_SIZE
    if path_size < 0 or path_size % TAPROOT_CONTROL_NODE_SIZE != 0:
        raise ValueError(f"Invalid control block length: {len(control)}")
    path_len = path_size // TAPROOT_CONTROL_NODE_SIZE
    if path_len > TAPROOT_CONTROL_MAX_NODE_COUNT:
        raise ValueError("Control block path too long")
    return path_len


def compute_merkle_root(control: bytes, leaf_hash: bytes) -> bytes:
    """
    Fold leaf_hash up through the control block path.

    Args:
        control: Control block bytes
        leaf_hash: TapLeaf hash of the executed script

    Returns:
        Reconstructed 32-byte tree root
    """
    k = leaf_hash
    for i in range(_control_path_length(control)):
        start = TAPROOT_CONTROL_BASE_SIZE + i * TAPROOT_CONTROL_NODE_SIZE
        k = tap_branch_hash(k, control[start:start + TAPROOT_CONTROL_NODE_SIZE])
    return k


def verify_script_path(witness_program: bytes, script: bytes, control: bytes) -> bool:
    """
    Check that script, revealed with control, is committed in witness_program.

    Verifies both the output key and the parity bit carried by the control block.
    """
    _control_path_length(control)
    leaf_version = control[0] & 0xfe
    internal_pubkey = control[1:TAPROOT_CONTROL_BASE_SIZE]

    root = compute_merkle_root(control, TapLeaf(script, leaf_version).leaf_hash())
    output_key, parity = taproot_output_key(internal_pubkey, root)
    return output_key == witness_program and parity == control[0] & 1
