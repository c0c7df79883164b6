#!/usr/bin/env python3
import sys
import os
import asyncio
import logging

from pestruct.exceptions import PEStructException
from pestruct.executables.pe import PEImage
from pestruct.executables.pe.code import disasm_stub, stub_bounds

if 'DEBUG' in os.environ:
    logging.basicConfig()
    logger = logging.getLogger('pestruct')
    logger.setLevel(logging.DEBUG)


def usage(progname):
    print('usage: %s <PE file>' % progname)
    sys.exit(1)


def dump_header(hdr):
    print('DOS Header:')
    for offset, size, name, value, description in hdr.table():
        field = getattr(hdr, name)
        print(f'  0x{offset:02x} {name:<12}{str(field):<44}{description}')


def dump_stub(image):
    start, end = stub_bounds(image)
    print(f'''
DOS stub at offset 0x{start:x} ({end - start} bytes):''')
    for insn in disasm_stub(image):
        print(f'  0x{start + insn.address:04x}: {insn.mnemonic:<8}{insn.op_str}')


async def main(path):
    image = PEImage(path)
    image.on('dos_header_decoded', lambda: dump_header(image.dos_header))

    await image.parse()

    dump_stub(image)


if __name__ == '__main__':
    if len(sys.argv) < 2:
        usage(sys.argv[0])

    try:
        asyncio.run(main(sys.argv[1]))
    except PEStructException as e:
        print(f'error: {e}', file=sys.stderr)
        sys.exit(2)
