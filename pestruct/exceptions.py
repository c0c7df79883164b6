class PEStructException(Exception):
    '''Base class to extend in order to throw exception in pestruct.

    It takes a single argument that represents the chain of the layer that
    caused the exception.
    '''

    def __init__(self, chain):
        self.chain = chain
        super().__init__()

    @property
    def field(self):
        return '.'.join(self.chain)


class MalformedSchema(PEStructException):
    '''The declared offsets of a schema don't match the widths of its fields.'''

    def __init__(self, chain, reason=''):
        self.reason = reason
        super().__init__(chain)

    def __str__(self):
        return f"malformed schema at '{self.field}': {self.reason}"


class UnpackException(PEStructException):
    pass


class BufferTooShort(UnpackException):

    def __init__(self, chain, offset, size, available):
        self.offset = offset
        self.size = size
        self.available = available
        super().__init__(chain)

    def __str__(self):
        return (f"field '{self.field}' at offset 0x{self.offset:02x} needs {self.size} bytes"
                f" but only {self.available} are available")


class InvalidSignature(PEStructException):

    def __init__(self, chain, expected=None, found=None):
        self.expected = expected
        self.found = found
        super().__init__(chain)

    def __str__(self):
        return f"signature of '{self.field}' is {self.found!r} instead of {self.expected!r}"


class LoadFailed(PEStructException):
    '''The buffer couldn't be read from its source.'''

    def __init__(self, chain, path=None):
        self.path = path
        super().__init__(chain)

    def __str__(self):
        cause = f': {self.__cause__}' if self.__cause__ else ''
        return f"loading '{self.path}' failed{cause}"
