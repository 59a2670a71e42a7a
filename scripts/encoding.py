"""
Shared Coin Covenant - Script Encoding and Decoding Utilities

This module compiles token sequences into tapscript bytes, decompiles script
bytes back into tokens and renders scripts in human-readable assembly.

A token is either an ``int`` (an opcode) or ``bytes`` (a data push). Pushes
that have a minimal opcode form are always compiled to, and decompiled as,
that opcode, so numeric pushes and opaque buffers stay distinguishable.
"""

import struct
from typing import List, Optional, Sequence, Union

from scripts.exceptions import ScriptDecodeError
from scripts.opcodes import ScriptOpcode, opcode_name, opcode_from_name


Token = Union[int, bytes]

MAX_SCRIPT_NUM_SIZE = 4


def serialize_compact_size(n: int) -> bytes:
    """Serialize integer as Bitcoin compact size."""
    if n < 0xfd:
        return struct.pack('<B', n)
    elif n <= 0xffff:
        return b'\xfd' + struct.pack('<H', n)
    elif n <= 0xffffffff:
        return b'\xfe' + struct.pack('<I', n)
    else:
        return b'\xff' + struct.pack('<Q', n)


def encode_script_num(value: int) -> bytes:
    """Encode integer as minimal Script number (little-endian, sign bit in last byte)."""
    if value == 0:
        return b''

    negative = value < 0
    value = abs(value)

    result = []
    while value > 0:
        result.append(value & 0xFF)
        value >>= 8

    if result[-1] & 0x80:
        result.append(0x80 if negative else 0x00)
    elif negative:
        result[-1] |= 0x80

    return bytes(result)


def decode_script_num(data: bytes, max_size: int = MAX_SCRIPT_NUM_SIZE) -> int:
    """
    Decode a minimally encoded Script number.

    Args:
        data: Number bytes as pushed on the stack
        max_size: Maximum accepted width in bytes

    Returns:
        Decoded integer
    """
    if len(data) > max_size:
        raise ValueError(f"Script number overflow: {len(data)} > {max_size} bytes")
    if not data:
        return 0

    if data[-1] & 0x7f == 0:
        if len(data) == 1 or data[-2] & 0x80 == 0:
            raise ValueError("Non-minimally encoded script number")

    result = int.from_bytes(data, 'little')
    if data[-1] & 0x80:
        return -(result & ~(0x80 << (8 * (len(data) - 1))))
    return result


def minimal_push_opcode(data: bytes) -> Optional[int]:
    """Opcode equivalent to pushing data, if one exists."""
    if len(data) == 0:
        return ScriptOpcode.OP_0
    if len(data) == 1:
        if 1 <= data[0] <= 16:
            return ScriptOpcode.OP_1 + data[0] - 1
        if data[0] == 0x81:
            return ScriptOpcode.OP_1NEGATE
    return None


def _push_data(data: bytes) -> bytes:
    size = len(data)
    if size < ScriptOpcode.OP_PUSHDATA1:
        return bytes([size]) + data
    elif size <= 0xff:
        return bytes([ScriptOpcode.OP_PUSHDATA1, size]) + data
    elif size <= 0xffff:
        return bytes([ScriptOpcode.OP_PUSHDATA2]) + struct.pack('<H', size) + data
    else:
        return bytes([ScriptOpcode.OP_PUSHDATA4]) + struct.pack('<I', size) + data


def compile_script(tokens: Sequence[Token]) -> bytes:
    """
    Compile a sequence of opcodes and data pushes into script bytes.

    Args:
        tokens: Opcodes (int) and pushes (bytes)

    Returns:
        Serialized script
    """
    parts = []
    for token in tokens:
        if isinstance(token, (bytes, bytearray)):
            opcode = minimal_push_opcode(bytes(token))
            if opcode is not None:
                parts.append(bytes([opcode]))
            else:
                parts.append(_push_data(bytes(token)))
        elif isinstance(token, int):
            if not 0 <= token <= 0xff:
                raise ValueError(f"Invalid opcode: {token}")
            parts.append(bytes([token]))
        else:
            raise TypeError(f"Unsupported script token: {token!r}")
    return b''.join(parts)


def decompile_script(script: bytes) -> List[Token]:
    """
    Decompile script bytes into opcodes and data pushes.

    Args:
        script: Raw script bytes

    Returns:
        List of tokens

    Raises:
        ScriptDecodeError: if a push runs past the end of the script
    """
    tokens: List[Token] = []
    pc = 0

    while pc < len(script):
        opcode = script[pc]
        pc += 1

        if ScriptOpcode.OP_0 < opcode <= ScriptOpcode.OP_PUSHDATA4:
            if opcode < ScriptOpcode.OP_PUSHDATA1:
                data_len = opcode
            else:
                width = {ScriptOpcode.OP_PUSHDATA1: 1,
                         ScriptOpcode.OP_PUSHDATA2: 2,
                         ScriptOpcode.OP_PUSHDATA4: 4}[opcode]
                if pc + width > len(script):
                    raise ScriptDecodeError(
                        f"Missing length bytes for {opcode_name(opcode)} at position {pc - 1}"
                    )
                data_len = int.from_bytes(script[pc:pc + width], 'little')
                pc += width

            if pc + data_len > len(script):
                raise ScriptDecodeError(f"Insufficient data for push at position {pc - 1}")

            data = script[pc:pc + data_len]
            pc += data_len

            minimal = minimal_push_opcode(data)
            tokens.append(minimal if minimal is not None else data)
        else:
            tokens.append(opcode)

    return tokens


def script_to_asm(script: bytes) -> str:
    """Convert script bytes to an assembly string."""
    return " ".join(
        token.hex() if isinstance(token, bytes) else opcode_name(token)
        for token in decompile_script(script)
    )


def script_from_asm(asm_string: str) -> bytes:
    """Convert an assembly string (opcode names and hex pushes) to script bytes."""
    tokens: List[Token] = []
    for part in asm_string.split():
        if part.startswith('OP_'):
            opcode = opcode_from_name(part)
            if opcode is None:
                raise ScriptDecodeError(f"Unknown opcode: {part}")
            tokens.append(opcode)
            continue
        try:
            tokens.append(bytes.fromhex(part))
        except ValueError:
            raise ScriptDecodeError(f"Unknown assembly token: {part}")
    return compile_script(tokens)
