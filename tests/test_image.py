import asyncio
import gc

import pytest

from conftest import build_image

from pestruct.enum import Compliant
from pestruct.exceptions import BufferTooShort, InvalidSignature, LoadFailed
from pestruct.executables.pe import ImageState, PEImage, open_image
from pestruct.executables.pe.code import dos_stub, disasm_stub, stub_bounds


def test_image_end_to_end(image_path):
    events = []

    async def run():
        image = PEImage(str(image_path))
        image.on('loaded', lambda: events.append('loaded'))
        image.on('dos_header_decoded', lambda: events.append('dos_header_decoded'))

        assert image.state == ImageState.CREATED
        assert image.dos_header is None

        return await image.parse()

    image = asyncio.run(run())

    assert image.complete
    assert image.dos_header.e_magic.value == 'MZ'
    assert image.dos_header.e_cblp.value == 144
    assert image.dos_header.e_lfanew.value == 128
    assert events == ['loaded', 'dos_header_decoded']
    assert image.notifications == ['loaded', 'dos_header_decoded', 'complete']


def test_image_construction_does_no_io():
    calls = []

    async def loader(path):
        calls.append(path)
        return build_image()

    image = PEImage('whatever.exe', loader=loader)

    assert calls == []
    assert image.state == ImageState.CREATED

    asyncio.run(image.parse())

    assert calls == ['whatever.exe']


def test_open_image_starts_loading(image_path):
    async def run():
        image = open_image(str(image_path))

        assert image.state == ImageState.LOADING

        buffer = await image.load()

        assert image.state == ImageState.LOADED
        assert buffer == image.buffer

        return image

    image = asyncio.run(run())

    assert image.buffer == image_path.read_bytes()
    assert image.notifications == ['loaded']


def test_image_parse_waits_for_load():
    release = None
    states = []

    async def loader(path):
        await release.wait()
        return build_image()

    async def run():
        nonlocal release
        release = asyncio.Event()

        image = open_image('slow.exe', loader=loader)
        task = asyncio.ensure_future(image.parse())

        await asyncio.sleep(0)
        states.append(image.state)
        assert not task.done()

        release.set()
        await task

        return image

    image = asyncio.run(run())

    assert states == [ImageState.LOADING]
    assert image.complete


def test_image_parse_twice(image_path):
    async def run():
        image = PEImage(str(image_path))
        first = await image.parse()
        header = image.dos_header
        second = await image.parse()

        assert first is second
        assert image.dos_header is header

        return image

    image = asyncio.run(run())

    assert image.notifications == ['loaded', 'dos_header_decoded', 'complete']


def test_image_concurrent_parse(image_path):
    async def run():
        image = PEImage(str(image_path))
        await asyncio.gather(image.parse(), image.parse(), image.load())

        return image

    image = asyncio.run(run())

    assert image.notifications == ['loaded', 'dos_header_decoded', 'complete']


def test_image_load_failed(tmp_path):
    path = str(tmp_path / 'missing.exe')

    async def run():
        image = PEImage(path)
        results = await asyncio.gather(image.parse(), image.load(), return_exceptions=True)

        return image, results

    image, results = asyncio.run(run())

    assert image.state == ImageState.FAILED
    assert len(results) == 2
    for result in results:
        assert isinstance(result, LoadFailed)
        assert result.path == path
        assert isinstance(result.__cause__, FileNotFoundError)

    assert image.notifications == []

    with pytest.raises(LoadFailed):
        asyncio.run(image.parse())


def test_image_from_buffer():
    image = PEImage.from_buffer(bytearray(build_image()))

    assert image.state == ImageState.LOADED
    assert image.notifications == ['loaded']

    asyncio.run(image.parse())

    assert image.dos_header.e_lfanew.value == 0x80


def test_image_buffer_too_short():
    image = PEImage.from_buffer(build_image()[:0x20])

    with pytest.raises(BufferTooShort) as excinfo:
        asyncio.run(image.parse())

    assert excinfo.value.chain == ['e_res']
    assert image.state == ImageState.FAILED
    assert image.dos_header is None
    assert 'dos_header_decoded' not in image.notifications


def test_image_invalid_signature():
    data = build_image(e_magic=b'ZM')

    with pytest.raises(InvalidSignature):
        asyncio.run(PEImage.from_buffer(data).parse())

    image = PEImage.from_buffer(data, compliant=Compliant.NONE)
    asyncio.run(image.parse())

    assert image.dos_header.e_magic.value == 'ZM'


def test_image_release(image_path):
    image = PEImage(str(image_path))

    with pytest.raises(RuntimeError):
        image.release()

    asyncio.run(image.parse())
    image.release()

    assert image.buffer is None
    assert image.dos_header.e_res2.value == b'\x00' * 20
    assert image.dos_header.e_lfanew.value == 0x80


def test_image_listener_failure_does_not_block(image_path):
    def broken():
        raise ValueError('kebab')

    image = PEImage(str(image_path))
    image.on('loaded', broken)

    asyncio.run(image.parse())

    assert image.complete


def test_dos_stub():
    image = PEImage.from_buffer(build_image())
    asyncio.run(image.parse())

    assert stub_bounds(image) == (0x40, 0x80)
    assert dos_stub(image).startswith(b'\x0e\x1f\xba\x0e\x00')

    mnemonics = [insn.mnemonic for insn in disasm_stub(image)][:7]

    assert mnemonics == ['push', 'pop', 'mov', 'mov', 'int', 'mov', 'int']


def test_dos_stub_needs_header():
    image = PEImage.from_buffer(build_image())

    with pytest.raises(ValueError):
        dos_stub(image)


def test_image_loader_returning_garbage():
    async def loader(path):
        return None

    async def run():
        image = PEImage('nothing.exe', loader=loader)
        results = await asyncio.wait_for(
            asyncio.gather(image.parse(), image.load(), return_exceptions=True),
            timeout=5,
        )

        return image, results

    image, results = asyncio.run(run())

    assert image.state == ImageState.FAILED
    assert image.buffer is None
    for result in results:
        assert isinstance(result, LoadFailed)
        assert isinstance(result.__cause__, TypeError)


def test_image_load_failed_without_waiters(tmp_path):
    contexts = []

    async def run():
        asyncio.get_running_loop().set_exception_handler(lambda loop, context: contexts.append(context))

        image = open_image(str(tmp_path / 'missing.exe'))
        await image._load_task

        assert image.state == ImageState.FAILED
        assert isinstance(image.error, LoadFailed)

        del image
        gc.collect()

    asyncio.run(run())

    assert contexts == []


def test_image_from_buffer_skips_loaded_listeners():
    events = []

    image = PEImage.from_buffer(build_image())
    image.on('loaded', lambda: events.append('loaded'))
    image.on('dos_header_decoded', lambda: events.append('dos_header_decoded'))

    asyncio.run(image.parse())

    assert events == ['dos_header_decoded']
    assert image.notifications == ['loaded', 'dos_header_decoded', 'complete']
