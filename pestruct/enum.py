from enum import Enum, Flag, auto


class Compliant(Flag):
    '''It indicates which degree of compliantness the data must reflect the format'''
    NONE  = 0
    MAGIC = 1 << 0
    INHERIT = 1 << 1


class ChunkPhase(Enum):
    '''Enum to state the actual phase of a chunk'''
    INIT      = 0
    UNPACKING = auto()
    DONE      = auto()


class Kind(Enum):
    '''How a run of bytes must be interpreted.

    The integer kinds carry their struct format code, the other ones have
    a width that depends on the single field.'''
    BYTE           = 'B'
    WORD           = 'H'
    DWORD          = 'I'
    QWORD          = 'Q'
    STRING         = 's'
    RESERVED_BLOCK = 'x'

    @property
    def is_integer(self):
        return self in (Kind.BYTE, Kind.WORD, Kind.DWORD, Kind.QWORD)
