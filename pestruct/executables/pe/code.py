'''
This module helps to decode the real-mode program that follows the DOS header

Some examples here: <https://www.capstone-engine.org/lang_python.html>.
'''
from capstone import Cs, CS_ARCH_X86, CS_MODE_16


def disasm(code, arch=CS_ARCH_X86, mode=CS_MODE_16, start=0, detail: bool = False):
    md = Cs(arch, mode)
    md.detail = detail

    for _ in md.disasm(code, start):
        yield _


def stub_bounds(image):
    '''The stub goes from the end of the header (in paragraphs) up to the NT header,
    both are clamped to the size of the buffer.'''
    if image.dos_header is None:
        raise ValueError(f'the DOS header of {image!r} is not decoded yet')

    if image.buffer is None:
        raise ValueError(f'the buffer of {image!r} is not available')

    size = len(image.buffer)
    start = min(image.dos_header.header_size, size)
    end = min(max(image.dos_header.nt_header_offset, start), size)

    return start, end


def dos_stub(image) -> bytes:
    start, end = stub_bounds(image)

    return image.buffer[start:end]


def disasm_stub(image, detail: bool = False):
    '''Yields the instructions of the stub, the addresses are offsets from its start.'''
    return disasm(dos_stub(image), detail=detail)
