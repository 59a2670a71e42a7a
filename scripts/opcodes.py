"""
Elements Tapscript Opcodes

Opcode constants used when compiling, decompiling and rendering covenant
scripts, including the Elements transaction introspection opcodes.
"""

from typing import Dict, Optional


class ScriptOpcode:
    """Script opcodes used in covenant construction."""

    # Constants
    OP_0 = 0x00
    OP_FALSE = OP_0
    OP_PUSHDATA1 = 0x4c
    OP_PUSHDATA2 = 0x4d
    OP_PUSHDATA4 = 0x4e
    OP_1NEGATE = 0x4f
    OP_RESERVED = 0x50
    OP_1 = 0x51
    OP_TRUE = OP_1
    OP_2 = 0x52
    OP_3 = 0x53
    OP_4 = 0x54
    OP_5 = 0x55
    OP_6 = 0x56
    OP_7 = 0x57
    OP_8 = 0x58
    OP_9 = 0x59
    OP_10 = 0x5a
    OP_11 = 0x5b
    OP_12 = 0x5c
    OP_13 = 0x5d
    OP_14 = 0x5e
    OP_15 = 0x5f
    OP_16 = 0x60

    # Flow control
    OP_NOP = 0x61
    OP_VER = 0x62
    OP_IF = 0x63
    OP_NOTIF = 0x64
    OP_VERIF = 0x65
    OP_VERNOTIF = 0x66
    OP_ELSE = 0x67
    OP_ENDIF = 0x68
    OP_VERIFY = 0x69
    OP_RETURN = 0x6a

    # Stack operations
    OP_TOALTSTACK = 0x6b
    OP_FROMALTSTACK = 0x6c
    OP_2DROP = 0x6d
    OP_2DUP = 0x6e
    OP_3DUP = 0x6f
    OP_2OVER = 0x70
    OP_2ROT = 0x71
    OP_2SWAP = 0x72
    OP_IFDUP = 0x73
    OP_DEPTH = 0x74
    OP_DROP = 0x75
    OP_DUP = 0x76
    OP_NIP = 0x77
    OP_OVER = 0x78
    OP_PICK = 0x79
    OP_ROLL = 0x7a
    OP_ROT = 0x7b
    OP_SWAP = 0x7c
    OP_TUCK = 0x7d

    # String operations
    OP_CAT = 0x7e
    OP_SUBSTR = 0x7f
    OP_LEFT = 0x80
    OP_RIGHT = 0x81
    OP_SIZE = 0x82

    # Bitwise logic
    OP_INVERT = 0x83
    OP_AND = 0x84
    OP_OR = 0x85
    OP_XOR = 0x86
    OP_EQUAL = 0x87
    OP_EQUALVERIFY = 0x88

    # Arithmetic
    OP_1ADD = 0x8b
    OP_1SUB = 0x8c
    OP_NEGATE = 0x8f
    OP_ABS = 0x90
    OP_NOT = 0x91
    OP_0NOTEQUAL = 0x92
    OP_ADD = 0x93
    OP_SUB = 0x94
    OP_BOOLAND = 0x9a
    OP_BOOLOR = 0x9b
    OP_NUMEQUAL = 0x9c
    OP_NUMEQUALVERIFY = 0x9d
    OP_NUMNOTEQUAL = 0x9e
    OP_LESSTHAN = 0x9f
    OP_GREATERTHAN = 0xa0
    OP_LESSTHANOREQUAL = 0xa1
    OP_GREATERTHANOREQUAL = 0xa2
    OP_MIN = 0xa3
    OP_MAX = 0xa4
    OP_WITHIN = 0xa5

    # Crypto
    OP_RIPEMD160 = 0xa6
    OP_SHA1 = 0xa7
    OP_SHA256 = 0xa8
    OP_HASH160 = 0xa9
    OP_HASH256 = 0xaa
    OP_CODESEPARATOR = 0xab
    OP_CHECKSIG = 0xac
    OP_CHECKSIGVERIFY = 0xad
    OP_CHECKMULTISIG = 0xae
    OP_CHECKMULTISIGVERIFY = 0xaf

    # Expansion
    OP_NOP1 = 0xb0
    OP_CHECKLOCKTIMEVERIFY = 0xb1
    OP_CHECKSEQUENCEVERIFY = 0xb2
    OP_CHECKSIGADD = 0xba

    # Elements tapscript extensions
    OP_SHA256INITIALIZE = 0xc4
    OP_SHA256UPDATE = 0xc5
    OP_SHA256FINALIZE = 0xc6
    OP_INSPECTINPUTOUTPOINT = 0xc7
    OP_INSPECTINPUTASSET = 0xc8
    OP_INSPECTINPUTVALUE = 0xc9
    OP_INSPECTINPUTSCRIPTPUBKEY = 0xca
    OP_INSPECTINPUTSEQUENCE = 0xcb
    OP_INSPECTINPUTISSUANCE = 0xcc
    OP_PUSHCURRENTINPUTINDEX = 0xcd
    OP_INSPECTOUTPUTASSET = 0xce
    OP_INSPECTOUTPUTVALUE = 0xcf
    OP_INSPECTOUTPUTNONCE = 0xd0
    OP_INSPECTOUTPUTSCRIPTPUBKEY = 0xd1
    OP_INSPECTVERSION = 0xd2
    OP_INSPECTLOCKTIME = 0xd3
    OP_INSPECTNUMINPUTS = 0xd4
    OP_INSPECTNUMOUTPUTS = 0xd5
    OP_TXWEIGHT = 0xd6

    OP_INVALIDOPCODE = 0xff


_ALIASES = {'OP_FALSE', 'OP_TRUE'}


def _build_opcode_names() -> Dict[int, str]:
    """Build mapping of opcodes to names."""
    names = {}
    for attr in dir(ScriptOpcode):
        if attr.startswith('OP_') and attr not in _ALIASES:
            names[getattr(ScriptOpcode, attr)] = attr
    return names


OPCODE_NAMES: Dict[int, str] = _build_opcode_names()


def opcode_name(opcode: int) -> str:
    """Get the mnemonic for an opcode, or OP_UNKNOWN_xx."""
    return OPCODE_NAMES.get(opcode, f"OP_UNKNOWN_{opcode:02x}")


def opcode_from_name(name: str) -> Optional[int]:
    """Look up an opcode by mnemonic (with or without the OP_ prefix)."""
    if not name.startswith('OP_'):
        name = 'OP_' + name
    value = getattr(ScriptOpcode, name, None)
    return value if isinstance(value, int) else None


def small_int_opcode(n: int) -> int:
    """Opcode pushing the small integer n (0..16)."""
    if not 0 <= n <= 16:
        raise ValueError(f"Small integer out of range: {n}")
    return ScriptOpcode.OP_0 if n == 0 else ScriptOpcode.OP_1 + n - 1


def decode_small_int(opcode: int) -> Optional[int]:
    """Inverse of small_int_opcode; None if opcode is not OP_0..OP_16."""
    if opcode == ScriptOpcode.OP_0:
        return 0
    if ScriptOpcode.OP_1 <= opcode <= ScriptOpcode.OP_16:
        return opcode - ScriptOpcode.OP_1 + 1
    return None
