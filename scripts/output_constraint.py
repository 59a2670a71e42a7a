"""
Shared Coin Covenant - Output Constraint Codec

Encodes and recognizes the introspection prefix that forces a transaction
output to carry a given segwit v1 program and explicit amount:

    <idx> OP_INSPECTOUTPUTSCRIPTPUBKEY OP_1 OP_EQUALVERIFY <program> OP_EQUALVERIFY
    <idx> OP_INSPECTOUTPUTVALUE        OP_1 OP_EQUALVERIFY <amount>  OP_EQUALVERIFY

OP_INSPECTOUTPUTSCRIPTPUBKEY leaves the witness program under the witness
version, OP_INSPECTOUTPUTVALUE leaves the 8-byte little-endian value under
the explicit prefix (1), so each half checks the tag and then the payload.
"""

import struct
from dataclasses import dataclass
from typing import List, Optional

from scripts.encoding import Token, compile_script, decompile_script, decode_script_num, encode_script_num
from scripts.opcodes import ScriptOpcode, decode_small_int


CONSTRAINT_TOKEN_COUNT = 12
WITNESS_PROGRAM_SIZE = 32
AMOUNT_SIZE = 8

# Index is read back as a 4-byte script number
MAX_OUTPUT_INDEX = 0x7fffffff
MAX_AMOUNT = 0xffffffffffffffff


@dataclass(frozen=True)
class OutputConstraint:
    """Output #output_index must pay amount to the segwit v1 witness_program."""
    output_index: int
    witness_program: bytes
    amount: int

    def to_tokens(self) -> List[Token]:
        return must_have_output(self.output_index, self.witness_program, self.amount)

    def to_script(self) -> bytes:
        """Compiled prefix bytes."""
        return compile_script(self.to_tokens())

    def to_dict(self) -> dict:
        return {
            "output_index": self.output_index,
            "witness_program": self.witness_program.hex(),
            "amount": self.amount,
        }


def must_have_output(output_index: int, witness_program: bytes, amount: int) -> List[Token]:
    """
    Build the 12-token output check.

    Args:
        output_index: Index of the output to inspect
        witness_program: 32-byte x-only taproot output key expected in that output
        amount: Explicit value expected in that output

    Returns:
        Token list ready to be prepended to another script
    """
    if len(witness_program) != WITNESS_PROGRAM_SIZE:
        raise ValueError("Witness program must be 32 bytes")
    if not 0 <= output_index <= MAX_OUTPUT_INDEX:
        raise ValueError(f"Output index must be between 0 and {MAX_OUTPUT_INDEX}")
    if not 0 <= amount <= MAX_AMOUNT:
        raise ValueError("Amount must be non-negative and fit in 8 bytes")

    # 0 is the empty push, compiled as OP_0
    index = encode_script_num(output_index)
    amount_bytes = struct.pack('<Q', amount)

    return [
        index,
        ScriptOpcode.OP_INSPECTOUTPUTSCRIPTPUBKEY,
        ScriptOpcode.OP_1,
        ScriptOpcode.OP_EQUALVERIFY,  # segwit v1
        witness_program,
        ScriptOpcode.OP_EQUALVERIFY,

        index,
        ScriptOpcode.OP_INSPECTOUTPUTVALUE,
        ScriptOpcode.OP_1,
        ScriptOpcode.OP_EQUALVERIFY,  # unconfidential
        amount_bytes,
        ScriptOpcode.OP_EQUALVERIFY,
    ]


def wrap_script(script: bytes, constraint: OutputConstraint) -> bytes:
    """Prefix script with the output check for constraint."""
    return constraint.to_script() + script


def _decode_index(token: Token) -> Optional[int]:
    if isinstance(token, int):
        return decode_small_int(token)
    try:
        value = decode_script_num(token)
    except ValueError:
        return None
    return value if value >= 0 else None


def _is_op(token: Token, opcode: int) -> bool:
    return isinstance(token, int) and token == opcode


def extract_output_constraint(script: bytes) -> Optional[OutputConstraint]:
    """
    Recognize the output check at the start of a script.

    Args:
        script: Any tapscript

    Returns:
        The embedded constraint, or None if the script does not start with one

    Raises:
        ScriptDecodeError: if the script bytes are corrupt
    """
    tokens = decompile_script(script)
    if len(tokens) < CONSTRAINT_TOKEN_COUNT:
        return None

    (index, inspect_spk, version, verify_spk, program, verify_program,
     index_again, inspect_value, explicit, verify_value, amount, verify_amount) = tokens[:CONSTRAINT_TOKEN_COUNT]

    if not (
        _is_op(inspect_spk, ScriptOpcode.OP_INSPECTOUTPUTSCRIPTPUBKEY)
        and _is_op(version, ScriptOpcode.OP_1)
        and _is_op(verify_spk, ScriptOpcode.OP_EQUALVERIFY)
        and isinstance(program, bytes)
        and _is_op(verify_program, ScriptOpcode.OP_EQUALVERIFY)
        and _is_op(inspect_value, ScriptOpcode.OP_INSPECTOUTPUTVALUE)
        and _is_op(explicit, ScriptOpcode.OP_1)
        and _is_op(verify_value, ScriptOpcode.OP_EQUALVERIFY)
        and isinstance(amount, bytes) and len(amount) == AMOUNT_SIZE
        and _is_op(verify_amount, ScriptOpcode.OP_EQUALVERIFY)
    ):
        return None

    output_index = _decode_index(index)
    if output_index is None or index_again != index:
        return None

    return OutputConstraint(
        output_index=output_index,
        witness_program=program,
        amount=struct.unpack('<Q', amount)[0],
    )
