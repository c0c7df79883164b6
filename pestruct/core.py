"""
Core module for the abstraction of a binary header

"""
from typing import Tuple, List, Dict

from .fields import Field
from .enum import Compliant, ChunkPhase
from .meta import MetaChunk
from .streams import Stream
from .exceptions import PEStructException


class Chunk(Field, metaclass=MetaChunk):
    """
    Together with Field is the main class that defines a format: a Chunk is an
    ordered sequence of fields, the order of declaration is the order of the bytes.

    The fields declared in the class body are templates: decode() never touches
    them and returns a new instance holding its own copies with the values.

    A Chunk can contain sub-chunks.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.base = None

    @classmethod
    def get_layout(cls) -> Dict[str, Tuple[int, int]]:
        '''The offsets and sizes of the fields, known before any decoding.'''
        return {name: (field.offset, field.size) for name, field in cls._meta.templates.items()}

    @classmethod
    def decode(cls, buffer, base=0, compliant=Compliant.NONE):
        '''Build a new instance reading the fields in order from buffer
        starting at base.

        Either all the fields are decoded or an exception is raised.'''
        stream = buffer if isinstance(buffer, Stream) else Stream(buffer)
        stream.seek(base)

        chunk = cls(compliant=compliant)
        chunk.unpack(stream)

        return chunk

    def get_ordered_fields_name(self) -> List[str]:
        return self._meta.fields

    def get_fields(self) -> List[Tuple[str, Field]]:
        '''It returns a list of couples (name, instance) for each field.'''
        return [(_, getattr(self, _)) for _ in self.get_ordered_fields_name()]

    def __repr__(self):
        msg = []
        for field_name, field in self.get_fields():
            msg.append('%s=%s' % (field_name, repr(field)))
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(msg))

    def __str__(self):
        msg = ''
        for field_name, field in self.get_fields():
            msg += '%s: %s\n' % (field_name, str(field))
        return msg

    def _get_size(self):
        '''the size is derived from the fields'''
        return self._meta.size

    def _get_value(self):
        return self.as_dict()

    @property
    def raw(self):
        if not self.decoded:
            return None

        return b''.join(field.raw for _, field in self.get_fields())

    @property
    def layout(self) -> Dict[str, Tuple[int, int]]:
        return self.get_layout()

    def as_dict(self) -> Dict[str, object]:
        return {name: field.value for name, field in self.get_fields()}

    def table(self) -> List[Tuple[int, int, str, object, str]]:
        '''Rows (offset, size, name, value, description) to show the decoded chunk.'''
        return [
            (field.offset, field.size, name, field.value, field.description or '')
            for name, field in self.get_fields()
        ]

    def unpack(self, stream):
        '''This is one of the main APIs to take care of: its aim is to take a binary
        data and transform in the representation given by the class this method
        is implemented.

        The fields are read one after the other starting from the actual position
        of the stream, the cursor is never moved backward.
        '''
        self._phase = ChunkPhase.UNPACKING
        self.base = stream.tell()

        for field_name, field in self.get_fields():
            self.logger.debug('unpacking %s.%s at 0x%x' % (self.__class__.__name__, field_name, stream.tell()))

            try:
                field.unpack(stream)
            except PEStructException as e:
                e.chain.insert(0, field_name)
                raise

        self._phase = ChunkPhase.DONE

        # the sub-chunks are validated by their father
        if self.father is None:
            self.validate()

    def validate(self):
        '''Check the magic fields after the whole chunk is decoded.'''
        result = True
        for field_name, field in self.get_fields():
            try:
                result = field.check_magic() and result
            except PEStructException as e:
                e.chain.insert(0, field_name)
                raise

        return result

    def check_magic(self):
        return self.validate()
