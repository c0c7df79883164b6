"""
# Pestruct: declarative decoding of binary headers.

A header is described as an ordered list of fields, each one with a kind (an
unsigned integer of 1, 2, 4 or 8 bytes, a fixed-length string or an opaque
reserved block), a name, an optional description and the offset where it is
expected to be.

    class Example(Chunk):
        magic  = fields.StringField(2, default='EX', is_magic=True)
        length = fields.DWordField(offset=2)

The layout is checked when the class is created: a declared offset that doesn't
follow the preceding fields is a MalformedSchema.

The only operation defined is decode(): the fields are read in order from a
buffer, starting at a given base, and a new instance with the values is returned.
The class itself works as a template and it's never modified, so the same
description can be used for any number of buffers.

An instance representing a header can be in one of the following states

 1. INIT
 2. UNPACKING
 3. DONE

"""
