'''
# PE format

Portable Executable is the format of the executables and libraries in the Windows world.

Every image starts with the legacy DOS header (and a small real-mode program, the stub)
whose last field contains the offset of the NT header.

Reference to <https://learn.microsoft.com/en-us/windows/win32/debug/pe-format>.
'''
from ...core import Chunk
from ... import fields


class DOSHeader(Chunk):
    e_magic    = fields.StringField(2, default='MZ', is_magic=True, offset=0x00, description='Magic number')
    e_cblp     = fields.WordField(offset=0x02, description='Bytes on last page of file')
    e_cp       = fields.WordField(offset=0x04, description='Pages in file')
    e_crlc     = fields.WordField(offset=0x06, description='Relocations')
    e_cparhdr  = fields.WordField(offset=0x08, description='Size of header in paragraphs')
    e_minalloc = fields.WordField(offset=0x0a, description='Minimum extra paragraphs needed')
    e_maxalloc = fields.WordField(offset=0x0c, description='Maximum extra paragraphs needed')
    e_ss       = fields.WordField(offset=0x0e, description='Initial (relative) SS value')
    e_sp       = fields.WordField(offset=0x10, description='Initial SP value')
    e_csum     = fields.WordField(offset=0x12, description='Checksum')
    e_ip       = fields.WordField(offset=0x14, description='Initial IP value')
    e_cs       = fields.WordField(offset=0x16, description='Initial (relative) CS value')
    e_lfarlc   = fields.WordField(offset=0x18, description='File address of relocation table')
    e_ovno     = fields.WordField(offset=0x1a, description='Overlay number')
    e_res      = fields.ReservedField(8, offset=0x1c, description='Reserved words')
    e_oemid    = fields.WordField(offset=0x24, description='OEM identifier (for e_oeminfo)')
    e_oeminfo  = fields.WordField(offset=0x26, description='OEM information; e_oemid specific')
    e_res2     = fields.ReservedField(20, offset=0x28, description='Reserved words')
    e_lfanew   = fields.DWordField(offset=0x3c, description='File address of new exe header')

    PARAGRAPH = 0x10

    @property
    def header_size(self):
        '''Size in bytes of the header, i.e. where the stub program starts'''
        return self.e_cparhdr.value * self.PARAGRAPH

    @property
    def nt_header_offset(self):
        return self.e_lfanew.value


from .image import ImageState, PEImage, open_image  # noqa: E402
