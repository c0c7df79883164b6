import logging


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around a binary buffer to
    uniform its properties: a read-only cursor with seek(), tell()
    and read().

    The data read is always copied out of the buffer so that who
    receives it doesn't keep a view into it.'''
    def __init__(self, obj):
        '''Here we normalize the object in order to be accessed as a read-only memoryview'''
        self._type = type(obj)
        self.obj = obj
        self._offset = 0

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, None)

        if init_method is None:
            raise ValueError('\'%s\' is not a supported kind of buffer' % self._type.__name__)

        init_method()

    def __len__(self):
        return len(self.obj)

    def __repr__(self):
        return '<%s(%s, size=%d, offset=0x%x)>' % (
            self.__class__.__name__, self._type.__name__, len(self), self._offset)

    def init_bytes(self):
        self.obj = memoryview(self.obj)

    def init_bytearray(self):
        '''A bytearray can change under us so we take a snapshot'''
        self.obj = memoryview(bytes(self.obj))

    def init_memoryview(self):
        self.obj = self.obj.cast('B').toreadonly()

    def seek(self, offset):
        if not isinstance(offset, int):
            raise ValueError('\'%s\' is the wrong kind of offset to use' % offset.__class__.__name__)

        if offset < 0:
            raise ValueError('negative offset %d' % offset)

        self._offset = offset

        return self

    def tell(self):
        return self._offset

    def read(self, size):
        data = bytes(self.obj[self._offset:self._offset + size])
        logger.debug('read %d bytes at 0x%x (requested %d)', len(data), self._offset, size)
        self._offset += len(data)

        return data

    def remaining(self):
        return max(len(self.obj) - self._offset, 0)
