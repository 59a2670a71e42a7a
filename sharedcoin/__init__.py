"""
Shared Coin Covenant

N-party shared custody of a single Elements Taproot output. Each stakeholder
can withdraw their share alone; introspection opcodes force the remainder
back into the shared coin of the other stakeholders.
"""

from .exceptions import (
    SharedCoinError,
    NoStakeholdersError,
    InvalidStakeholderError,
    StakeholderNotFoundError,
)
from .stakeholder import Stakeholder, stakeholders_from_list, total_amount
from .tree import (
    UNSPENDABLE_INTERNAL_KEY,
    ScriptPathInfo,
    SharedCoinTreeBuilder,
    shared_coin_tree,
    find_leaf_including_script,
)

__version__ = "0.1.0"
__all__ = [
    "SharedCoinError",
    "NoStakeholdersError",
    "InvalidStakeholderError",
    "StakeholderNotFoundError",
    "Stakeholder",
    "stakeholders_from_list",
    "total_amount",
    "UNSPENDABLE_INTERNAL_KEY",
    "ScriptPathInfo",
    "SharedCoinTreeBuilder",
    "shared_coin_tree",
    "find_leaf_including_script",
]
