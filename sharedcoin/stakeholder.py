"""
Shared Coin Stakeholders

A stakeholder is one party locking funds into the shared coin: the amount
they contributed and the tapscripts they can spend their share with.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

from sharedcoin.exceptions import InvalidStakeholderError


@dataclass(frozen=True)
class Stakeholder:
    """Immutable, hashable stakeholder record."""
    scripts: Tuple[bytes, ...]
    amount: int

    def __post_init__(self):
        """Validate stakeholder parameters."""
        if isinstance(self.scripts, (bytes, bytearray)):
            raise InvalidStakeholderError("Stakeholder scripts must be a sequence of scripts")
        object.__setattr__(self, 'scripts', tuple(bytes(s) for s in self.scripts))

        if not self.scripts:
            raise InvalidStakeholderError("Stakeholder needs at least one script")
        if any(not script for script in self.scripts):
            raise InvalidStakeholderError("Stakeholder scripts cannot be empty")
        if not isinstance(self.amount, int) or isinstance(self.amount, bool) or self.amount < 0:
            raise InvalidStakeholderError(f"Invalid stakeholder amount: {self.amount!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Stakeholder':
        """
        Create a stakeholder from its JSON form.

        Accepts {"scripts": [hex, ...], "amount": int} or a single "script".
        """
        if not isinstance(data, dict):
            raise InvalidStakeholderError("Stakeholder entry must be an object")

        if 'scripts' in data:
            scripts_hex = data['scripts']
        elif 'script' in data:
            scripts_hex = [data['script']]
        else:
            raise InvalidStakeholderError("Stakeholder entry has no scripts")
        if 'amount' not in data:
            raise InvalidStakeholderError("Stakeholder entry has no amount")

        try:
            scripts = tuple(bytes.fromhex(s) for s in scripts_hex)
        except (TypeError, ValueError) as e:
            raise InvalidStakeholderError(f"Invalid script hex: {e}")

        return cls(scripts=scripts, amount=data['amount'])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scripts": [script.hex() for script in self.scripts],
            "amount": self.amount,
        }


def stakeholders_from_list(entries: Iterable[Dict[str, Any]]) -> List[Stakeholder]:
    """Parse a list of stakeholder JSON objects."""
    return [Stakeholder.from_dict(entry) for entry in entries]


def total_amount(stakeholders: Iterable[Stakeholder]) -> int:
    return sum(s.amount for s in stakeholders)
