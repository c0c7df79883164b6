"""
A Field is "fundamental" datatype from the format point of view, something directly
unpackable from a run of bytes without need of knowing anything else.

Every field carries the static metadata (name, kind, description, offset) and, once
unpacked, its value: an integer, a string or an opaque block of bytes depending on
its kind.
"""
import logging
import struct

from .enum import Compliant, ChunkPhase, Kind
from .meta import FieldBase, Endianess
from .exceptions import BufferTooShort, UnpackException, InvalidSignature


class Field(FieldBase):
    """Base class to subclass from"""

    kind = None

    def __init__(self, *args, name=None, description=None, father=None, default=None, offset=None,
                 endianess=Endianess.LITTLE_ENDIAN, compliant=Compliant.INHERIT, is_magic=False):
        super().__init__()
        self._phase = ChunkPhase.INIT
        self.logger = logging.getLogger(__name__)
        self.name = name
        self.description = description
        self.father = father
        self.default = default
        self.offset = offset
        self.endianess = endianess
        self.compliant = compliant
        self.is_magic = is_magic

        self.init()

    def init(self):
        self._raw = None
        self._value = None

    def __str__(self):
        return str(self.value)

    @property
    def decoded(self):
        return self._phase == ChunkPhase.DONE

    def is_compliant(self, level):
        '''Returns the compliant'''
        instance = self
        while instance:
            if instance.compliant & level:
                return True
            if not instance.compliant & Compliant.INHERIT:
                break

            instance = instance.father

        return False

    value = property(
        fget=lambda self: self._get_value(),
    )

    def _get_value(self):
        return self._value

    def _get_size(self):
        raise NotImplementedError(f"method {self.__class__.__name__}._get_size() not implemented")

    size = property(
        fget=lambda self: self._get_size(),
    )

    @property
    def raw(self) -> bytes:
        return self._raw

    def _unpack(self, raw: bytes):
        raise NotImplementedError(f"method {self.__class__.__name__}._unpack() not implemented")

    def unpack(self, stream):
        '''Read exactly size bytes from the actual position of the stream.

        A short read means the buffer ends before this field does.'''
        offset = stream.tell()
        size = self.size
        raw = stream.read(size)

        if len(raw) != size:
            raise BufferTooShort(chain=[], offset=offset, size=size, available=len(raw))

        self._raw = raw
        self._value = self._unpack(raw)
        self._phase = ChunkPhase.DONE

    def check_magic(self):
        '''For fields marked as magic the value must be equal to the default.

        It returns True if the check passes, a mismatch is an exception only if
        the compliant level requires it.'''
        if not self.is_magic or self.value == self.default:
            return True

        self.logger.warning(f'the magic of field \'{self.name}\' is {self.value!r} instead of {self.default!r}')
        if self.is_compliant(Compliant.MAGIC):
            raise InvalidSignature(chain=[], expected=self.default, found=self.value)

        return False


class StructField(Field):
    """
    Simplest of the fields: mimic the behaviour of the struct module unpacking
    unsigned integers from bytes.
    """

    def __init__(self, kind, **kw):
        if not kind.is_integer:
            raise ValueError(f'{kind!r} is not an integer kind')

        self.kind = kind
        super().__init__(**kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, hex(self.value) if self.value is not None else None)

    def __str__(self):
        if self.value is None:
            return str(None)
        width = self.size * 2  # we want to be as large as possible
        formatter = '0x%%0%dx' % width
        return formatter % self.value

    def get_format(self):
        return '%s%s' % ('<' if self.endianess == Endianess.LITTLE_ENDIAN else '>', self.kind.value)

    def _get_size(self):
        return struct.calcsize(self.get_format())

    def _unpack(self, raw):
        try:
            return struct.unpack(self.get_format(), raw)[0]
        except struct.error as e:
            self.logger.error(e)
            raise UnpackException(chain=[]) from e


class ByteField(StructField):
    def __init__(self, **kw):
        super().__init__(Kind.BYTE, **kw)


class WordField(StructField):
    def __init__(self, **kw):
        super().__init__(Kind.WORD, **kw)


class DWordField(StructField):
    def __init__(self, **kw):
        super().__init__(Kind.DWORD, **kw)


class QWordField(StructField):
    def __init__(self, **kw):
        super().__init__(Kind.QWORD, **kw)


class StringField(Field):
    """Represent a fixed-length run of bytes decoded as text.

    The default encoding maps each byte to one character so that nothing
    can fail and the length of the value is the length of the field."""

    kind = Kind.STRING

    def __init__(self, n=None, encoding='latin-1', **kw):
        if n is None and 'default' not in kw:
            raise ValueError(f"StringField must have 'n' or 'default' indicated!")

        self.length = n or len(kw['default'])
        self.encoding = encoding

        super().__init__(**kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, repr(self.value))

    def __len__(self):
        return self.length

    def _get_size(self):
        return self.length

    def _unpack(self, raw):
        return raw.decode(self.encoding)


class ReservedField(Field):
    """Opaque block of bytes, never interpreted."""

    kind = Kind.RESERVED_BLOCK

    def __init__(self, n, **kw):
        if not isinstance(n, int) or n <= 0:
            raise ValueError(f"ReservedField needs a positive width, not {n!r}")

        self.length = n

        super().__init__(**kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.value.hex() if self.value is not None else None)

    def __str__(self):
        return self.value.hex() if self.value is not None else str(None)

    def __len__(self):
        return self.length

    def _get_size(self):
        return self.length

    def _unpack(self, raw):
        return bytes(raw)
