"""blowcrypt utility functions"""
#=================================================================================
#imports
#=================================================================================
#core
from contextlib import contextmanager
import logging; log = logging.getLogger(__name__)
import os
import random
#site
#pkg
#local
__all__ = [
    #config
    "MAX_PASSWORD_SIZE",

    #bytes conversion
    "to_bytes",

    #string manipulation
    "consteq",

    #secret scrubbing
    "wipe_buffer",
    "wiping",

    #random
    "rng",
    "getrandbytes",
]

#=================================================================================
#config
#=================================================================================

#: maximum size of password accepted by the handlers; passwords larger than
#: this raise PasswordSizeError. bcrypt only looks at the first 72 bytes,
#: but each byte still has to be validated & encoded before we get that far.
MAX_PASSWORD_SIZE = int(os.environ.get("BLOWCRYPT_MAX_PASSWORD_SIZE") or 4096)

#==========================================================
#bytes conversion helpers
#==========================================================
def to_bytes(source, encoding="utf-8", errname="value"):
    """helper to encode unicode -> bytes

    if ``source`` is unicode, encodes it using the specified ``encoding``.
    bytes (and bytearrays) are returned unchanged.
    all other types result in a :exc:`TypeError`.

    :arg source: source bytes/unicode to process
    :arg encoding: target character encoding or ``None``.
    :param errname: optional name of variable/noun to reference when raising errors

    :raises TypeError: if unicode encountered but ``encoding=None`` specified;
                       or if source is not unicode or bytes.

    :returns: bytes object
    """
    if isinstance(source, (bytes, bytearray)):
        return source
    elif not encoding:
        raise TypeError("%s must be bytes, not %s" % (errname, type(source)))
    elif isinstance(source, str):
        return source.encode(encoding)
    else:
        raise TypeError("%s must be unicode or bytes, not %s" % (errname, type(source)))

#=================================================================================
#string helpers
#=================================================================================
def consteq(left, right):
    """check two strings/bytes for equality, taking constant time relative
    to the size of the righthand input.

    The purpose of this function is to aid in preventing timing attacks
    during digest comparisons.
    """
    # NOTE:
    # This function attempts to take an amount of time proportional
    # to ``THETA(len(right))``. The main loop is designed so that timing attacks
    # against this function should reveal nothing about how much (or which
    # parts) of the two inputs match.
    #
    # Assuming the attacker controls one of the two inputs, padding to
    # the largest input or trimming to the smallest input both allow
    # a timing attack to reveal the length of the other input.
    # By fixing the runtime to be proportional to the right input:
    # * If the right value is attacker controlled, the runtime is proportional
    #   to their input, giving nothing away about the left value's size.
    # * If the left value is attacker controlled, the runtime is constant
    #   relative to their input, giving nothing away about the right value's size.

    # validate types
    if isinstance(left, str):
        if not isinstance(right, str):
            raise TypeError("inputs must be both unicode or bytes")
        is_bytes = False
    elif isinstance(left, (bytes, bytearray)):
        if not isinstance(right, (bytes, bytearray)):
            raise TypeError("inputs must be both unicode or bytes")
        is_bytes = True
    else:
        raise TypeError("inputs must be both unicode or bytes")

    # do size comparison.
    # NOTE: the double-if construction below performs the same number of
    # operations (including branches) regardless of whether left & right
    # are the same size.
    same = (len(left) == len(right))
    if same:
        # if sizes are the same, setup loop to perform actual check of contents.
        tmp = left
        result = 0
    if not same:
        # if sizes aren't the same, set 'result' so equality will fail regardless
        # of contents. then, to ensure we do exactly 'len(right)' iterations
        # of the loop, just compare 'right' against itself.
        tmp = right
        result = 1

    # run constant-time string comparision
    if is_bytes:
        for l,r in zip(tmp, right):
            result |= l ^ r
    else:
        for l,r in zip(tmp, right):
            result |= ord(l) ^ ord(r)
    return result == 0

#=================================================================================
#secret scrubbing
#=================================================================================
def wipe_buffer(buf):
    """overwrite contents of a mutable buffer with zeros, in place.

    accepts :class:`bytearray` instances and lists of integers
    (e.g. the word arrays used by the blowfish code). ``None`` is ignored.
    """
    if buf is None:
        return
    if isinstance(buf, bytearray):
        buf[:] = bytes(len(buf))
    elif isinstance(buf, list):
        buf[:] = [0] * len(buf)
    else:
        raise TypeError("can't wipe immutable buffer: %s" % (type(buf),))

@contextmanager
def wiping(*buffers):
    """context manager which wipes all of the provided buffers on exit,
    whether the block completed normally or raised an error::

        salt = bytearray(raw_salt)
        with wiping(salt):
            ...
    """
    try:
        yield buffers
    finally:
        for buf in buffers:
            wipe_buffer(buf)

#=================================================================================
#randomness
#=================================================================================

#NOTE: salts don't need secrecy, just enough range of possible outputs
# that precomputing tables is too costly; but SystemRandom is available
# everywhere we run, so there's no reason not to use it.
rng = random.SystemRandom()

def getrandbytes(rng, count):
    """return byte-string containing *count* number of randomly generated bytes, using specified rng"""
    if count < 0:
        raise ValueError("count must be >= 0")
    if not count:
        return b""
    def helper():
        value = rng.getrandbits(count<<3)
        i = 0
        while i < count:
            yield value & 0xff
            value >>= 8
            i += 1
    return bytes(helper())

#=================================================================================
#eof
#=================================================================================
