'''
The image is the owner of the buffer and of the headers decoded from it.

Building a PEImage doesn't touch the filesystem: the loading is started with
start() (or implicitly by load() and parse()) and happens in background, the
decoding is done by parse() once the buffer is available.

    image = PEImage('notepad.exe')
    image.on('dos_header_decoded', lambda: print(image.dos_header))
    await image.parse()

Every stage emits a notification without payload, who is interested reads
the state of the image.
'''
import asyncio
import logging
from collections import defaultdict
from enum import Enum, auto
from pathlib import Path

from ...enum import Compliant
from ...exceptions import PEStructException, LoadFailed
from . import DOSHeader


class ImageState(Enum):
    CREATED  = auto()
    LOADING  = auto()
    LOADED   = auto()
    DECODING = auto()
    DECODED  = auto()
    COMPLETE = auto()
    FAILED   = auto()


async def read_file(path):
    '''Default loader: read the whole file without blocking the loop.'''
    return await asyncio.to_thread(Path(path).read_bytes)


class PEImage(object):
    # (attribute, chunk class, offset into the buffer) decoded in this order
    headers = [
        ('dos_header', DOSHeader, 0),
    ]

    EVENT_LOADED = 'loaded'
    EVENT_COMPLETE = 'complete'

    def __init__(self, path, loader=read_file, compliant=Compliant.MAGIC):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")
        self.path = path
        self.compliant = compliant
        self.state = ImageState.CREATED
        self.current = None
        self.buffer = None
        self.error = None
        self.decoded = {}
        self.notifications = []
        self._loader = loader
        self._listeners = defaultdict(list)
        self._loaded = None
        self._load_task = None

    @classmethod
    def from_buffer(cls, data, path='<buffer>', **kwargs):
        '''Build an image with the buffer already in place, no loader is involved.

        The loaded notification is recorded but no listener is called for it.'''
        image = cls(path, **kwargs)
        image.buffer = bytes(data)
        image.state = ImageState.LOADED
        # nobody could have registered a listener yet
        image._emit(cls.EVENT_LOADED, dispatch=False)

        return image

    def __repr__(self):
        return '<%s(%s, %s)>' % (self.__class__.__name__, self.path, self.state.name)

    def __getattr__(self, name):
        if name in (attribute for attribute, _, _ in self.__class__.headers):
            return self.__dict__.get('decoded', {}).get(name)

        raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{name}'")

    @property
    def complete(self):
        return self.state == ImageState.COMPLETE

    def on(self, event, callback):
        '''Register a callable without arguments to be called when event happens.'''
        self._listeners[event].append(callback)

    def _emit(self, event, dispatch=True):
        if event in self.notifications:
            raise RuntimeError(f"event '{event}' was already emitted")

        self.logger.debug("emitting '%s' for %s", event, self.path)
        self.notifications.append(event)

        if not dispatch:
            return

        for callback in self._listeners[event]:
            try:
                callback()
            except Exception:
                self.logger.exception("listener for '%s' failed", event)

    def start(self):
        '''Schedule the loading of the buffer in the running loop.

        Calling it more than once has no effect.'''
        if self.state is not ImageState.CREATED:
            return self._load_task

        loop = asyncio.get_running_loop()
        self._loaded = loop.create_future()
        self.state = ImageState.LOADING
        self._load_task = loop.create_task(self._load())

        return self._load_task

    async def _load(self):
        self.logger.debug("loading '%s'", self.path)
        try:
            data = await self._loader(self.path)
            buffer = bytes(data)
        except asyncio.CancelledError:
            self._loaded.cancel()
            raise
        except Exception as e:
            self.logger.error("loading '%s' failed: %s", self.path, e)
            exc = LoadFailed(chain=[], path=self.path)
            exc.__cause__ = e
            self._fail(exc)
            self._loaded.set_exception(exc)
            # the waiters receive it through shield(), nobody else has to
            self._loaded.exception()
            return

        self.buffer = buffer
        self.state = ImageState.LOADED
        self.logger.debug("loaded %d bytes from '%s'", len(self.buffer), self.path)

        self._loaded.set_result(None)
        self._emit(self.EVENT_LOADED)

    def _fail(self, exc):
        self.state = ImageState.FAILED
        self.error = exc

    async def load(self):
        '''Wait for the buffer to be loaded, starting the loading if needed.

        Every waiter receives the same LoadFailed in case of error.'''
        self.start()

        if self._loaded is not None:
            await asyncio.shield(self._loaded)

        return self.buffer

    async def parse(self):
        '''Decode all the headers, waiting for the buffer if it's not loaded yet.

        Calling it again after completion returns the image as it is.'''
        if self.state is ImageState.COMPLETE:
            return self

        if self.error is not None:
            raise self.error

        buffer = await self.load()

        # someone else could have parsed while we were waiting
        if self.state is ImageState.COMPLETE:
            return self

        for attribute, chunk_cls, base in self.headers:
            self.state = ImageState.DECODING
            self.current = attribute
            self.logger.debug("decoding '%s' at offset 0x%x", attribute, base)

            try:
                chunk = chunk_cls.decode(buffer, base=base, compliant=self.compliant)
            except PEStructException as e:
                self.logger.error("decoding '%s' of '%s' failed: %s", attribute, self.path, e)
                self._fail(e)
                raise

            self.decoded[attribute] = chunk
            self.state = ImageState.DECODED
            self._emit(f'{attribute}_decoded')

        self.current = None
        self.state = ImageState.COMPLETE
        self._emit(self.EVENT_COMPLETE)

        return self

    def release(self):
        '''Drop the buffer, the decoded headers own copies of their data.'''
        if self.state is not ImageState.COMPLETE:
            raise RuntimeError(f'cannot release the buffer of an image in state {self.state.name}')

        self.buffer = None
        self._loaded = None


def open_image(path, **kwargs):
    '''Build the image and immediately start loading it.

    It must be called with a running loop.'''
    image = PEImage(path, **kwargs)
    image.start()

    return image
