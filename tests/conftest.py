import struct

import pytest


DOS_HEADER_FORMAT = '<2s13H8s2H20sI'

DOS_STUB = (
    b'\x0e\x1f\xba\x0e\x00\xb4\x09\xcd\x21\xb8\x01\x4c\xcd\x21'
    b'This program cannot be run in DOS mode.\r\r\n$'
)


def build_dos_header(e_magic=b'MZ', e_cblp=0x90, e_cp=3, e_crlc=0, e_cparhdr=4, e_minalloc=0,
                     e_maxalloc=0xffff, e_ss=0, e_sp=0xb8, e_csum=0, e_ip=0, e_cs=0, e_lfarlc=0x40,
                     e_ovno=0, e_res=b'\x00' * 8, e_oemid=0, e_oeminfo=0, e_res2=b'\x00' * 20,
                     e_lfanew=0x80):
    return struct.pack(
        DOS_HEADER_FORMAT,
        e_magic, e_cblp, e_cp, e_crlc, e_cparhdr, e_minalloc, e_maxalloc, e_ss, e_sp,
        e_csum, e_ip, e_cs, e_lfarlc, e_ovno, e_res, e_oemid, e_oeminfo, e_res2, e_lfanew,
    )


def build_image(**kwargs):
    '''A DOS header followed by the classic stub, padded up to the NT header.'''
    header = build_dos_header(**kwargs)
    stub = DOS_STUB.ljust(0x40, b'\x00')

    return header + stub + b'PE\x00\x00'


@pytest.fixture
def dos_header_data():
    return build_dos_header()


@pytest.fixture
def image_data():
    return build_image()


@pytest.fixture
def image_path(tmp_path, image_data):
    path = tmp_path / 'image.exe'
    path.write_bytes(image_data)

    return path
