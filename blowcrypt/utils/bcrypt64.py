"""blowcrypt.utils.bcrypt64 - bcrypt's base64 variant

bcrypt uses its own base64 alphabet (``./A-Za-z0-9``), packs bits
big-endian like standard base64, and never emits ``=`` padding.
The decoder mirrors the reference implementation: it silently stops
at the first character outside the alphabet instead of raising an error,
callers are expected to check how many bytes they got back.
"""
#=================================================================================
#imports
#=================================================================================
#core
import logging; log = logging.getLogger(__name__)
#site
#pkg
#local
__all__ = [
    "CHARS",
    "encode_bytes",
    "decode_bytes",
    "repair_unused",
    "check_repair_unused",
]

#=================================================================================
#6 bit value <-> char mapping
#=================================================================================
CHARS = "./ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"

#base64 char sequence
encode_6bit = CHARS.__getitem__ # int -> char

#inverse map (char->value)
_CHARIDX = dict((c,i) for i,c in enumerate(CHARS))

#number of unused low bits in the final char, keyed by (len % 4)
_UNUSED_BITS = {0: 0, 2: 4, 3: 2}

#=================================================================================
#bytes <-> bcrypt64 string
#=================================================================================
def encode_bytes(data):
    "encode byte string to bcrypt64 string, omitting padding"
    out = []
    write = out.append
    end = len(data)
    idx = 0
    while idx < end:
        c1 = data[idx]
        idx += 1
        write(encode_6bit(c1 >> 2))
        c1 = (c1 & 0x03) << 4
        if idx >= end:
            write(encode_6bit(c1))
            break
        c2 = data[idx]
        idx += 1
        c1 |= c2 >> 4
        write(encode_6bit(c1))
        c1 = (c2 & 0x0f) << 2
        if idx >= end:
            write(encode_6bit(c1))
            break
        c2 = data[idx]
        idx += 1
        c1 |= c2 >> 6
        write(encode_6bit(c1))
        write(encode_6bit(c2 & 0x3f))
    return "".join(out)

def decode_bytes(source, size=None):
    """decode bcrypt64 string into raw bytes.

    :arg source:
        unicode or ascii bytes to decode.

    :param size:
        optional maximum number of bytes to produce.
        decoding stops as soon as this many bytes have been written.

    decoding also stops, without error, at the first character which
    isn't part of the alphabet (including the end of the string);
    any complete bytes decoded up to that point are returned.

    :returns:
        decoded bytes, as a mutable :class:`bytearray`
        so callers handling secret material can scrub it.
    """
    if isinstance(source, (bytes, bytearray)):
        source = source.decode("latin-1")
    lookup = _CHARIDX.get
    end = len(source)

    def value(idx):
        if idx >= end:
            return None
        return lookup(source[idx])

    out = bytearray()
    if size is None:
        #each char carries 6 bits, so this is the most we could ever produce
        size = (end * 6) >> 3
    idx = 0
    while len(out) < size:
        c1 = value(idx)
        c2 = value(idx+1)
        if c1 is None or c2 is None:
            break
        out.append((c1 << 2) | ((c2 & 0x30) >> 4))
        if len(out) >= size:
            break

        c3 = value(idx+2)
        if c3 is None:
            break
        out.append(((c2 & 0x0f) << 4) | ((c3 & 0x3c) >> 2))
        if len(out) >= size:
            break

        c4 = value(idx+3)
        if c4 is None:
            break
        out.append(((c3 & 0x03) << 6) | c4)
        idx += 4
    return out

#=================================================================================
#padding bit helpers
#=================================================================================
def check_repair_unused(source):
    """check if the unused low bits of the final character are set,
    and clear them if so.

    bcrypt encodes 16 byte salts as 22 chars (4 bits to spare),
    and 23 byte checksums as 31 chars (2 bits to spare).
    the decoder ignores those bits, so different strings can decode
    to the same bytes; only the all-zero form is canonical.

    :returns: ``(changed, repaired_source)``
    """
    tail = len(source) & 3
    if tail == 1:
        raise ValueError("input string length cannot be == 1 mod 4")
    bits = _UNUSED_BITS[tail]
    if not bits:
        return False, source
    last = source[-1]
    try:
        value = _CHARIDX[last]
    except KeyError:
        raise ValueError("invalid character in bcrypt64 string: %r" % (last,))
    fixed = encode_6bit(value & ~((1 << bits) - 1))
    if fixed == last:
        return False, source
    return True, source[:-1] + fixed

def repair_unused(source):
    "return copy of bcrypt64 string with the final char's padding bits cleared"
    return check_repair_unused(source)[1]

#=================================================================================
#eof
#=================================================================================
