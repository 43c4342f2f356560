"""blowcrypt.utils._blowfish - pure-python implementation of the bcrypt key derivation

This password hashing algorithm was designed by David Mazieres
and works as follows::

    1. state := InitState()
    2. state := ExpandKey(state, salt, password)
    3. REPEAT 2**cost:
            state := ExpandKey(state, 0, password)
            state := ExpandKey(state, 0, salt)
    4. ctext := "OrpheanBeholderScryDoubt"
    5. REPEAT 64:
            ctext := Encrypt_ECB(state, ctext)
    6. RETURN Concatenate(salt, ctext)

The public entry points are :func:`hashpw` (crypt-style: takes a config
string or existing hash, returns the full hash string), :func:`checkpw`,
and the lower level :func:`raw_bcrypt`.
"""
#=========================================================
#imports
#=========================================================
#core
from collections import namedtuple
import logging; log = logging.getLogger(__name__)
import struct
from warnings import warn
#pkg
from blowcrypt.exc import BlowcryptHashWarning, CostTooLowError, \
    InvalidChecksumError, InvalidCostError, InvalidSaltError, MalformedHashError, \
    MalformedSeparatorError, PasswordValueError, SaltTooShortError, \
    UnknownMinorVersionError, UnsupportedVersionError
from blowcrypt.utils import consteq, to_bytes, wipe_buffer, wiping
from blowcrypt.utils import bcrypt64
from blowcrypt.utils._blowfish.base import BlowfishEngine
#local
__all__ = [
    "BcryptConfig",
    "parse_config",
    "prepare_key",
    "eks_setup",
    "raw_bcrypt",
    "hashpw",
    "checkpw",
]

#=========================================================
#constants
#=========================================================
BCRYPT_VERSION = "2"

#: recognized minor versions. "a" adds the NUL terminator to the key
#: (so "ab" & "abab" don't collide); "b" & "y" are emitted by newer
#: implementations and behave identically for every password we accept.
MINOR_VERSIONS = ("a", "b", "y")

#: minimum number of key schedule rounds
BCRYPT_MINROUNDS = 16

MIN_LOG_ROUNDS = BCRYPT_MINROUNDS.bit_length() - 1
MAX_LOG_ROUNDS = 31

#: size of raw salt, and of its bcrypt64 encoding
BCRYPT_SALT_SIZE = 16
BCRYPT_SALT_CHARS = 22

#: number of 32-bit words in the ciphertext
BCRYPT_BLOCKS = 6

#: number of ciphertext bytes included in the hash string
#: (the 24th byte is computed but dropped, same as every other implementation)
BCRYPT_CHECKSUM_SIZE = 4 * BCRYPT_BLOCKS - 1
BCRYPT_CHECKSUM_CHARS = 31

BCRYPT_MAGIC = b"OrpheanBeholderScryDoubt"
BCRYPT_MAGIC_WORDS = struct.unpack(">%dI" % BCRYPT_BLOCKS, BCRYPT_MAGIC)

_DIGITS = frozenset("0123456789")

#=========================================================
#config string parsing
#=========================================================
class BcryptConfig(namedtuple("BcryptConfig",
                              "version minor cost salt encoded_salt checksum")):
    """parsed bcrypt config string / hash.

    .. attribute:: version   major version (always ``"2"``)
    .. attribute:: minor     minor version character, or ``""``
    .. attribute:: cost      log2 of the number of key schedule rounds
    .. attribute:: salt      16 byte raw salt (a :class:`bytearray`)
    .. attribute:: encoded_salt  the 22 salt characters, as found in the string
    .. attribute:: checksum  encoded checksum following the salt, or ``None``
    """
    __slots__ = ()

    @property
    def ident(self):
        "hash prefix, e.g. ``$2a$``"
        return "$%s%s$" % (self.version, self.minor)

def _check_cost(cost):
    "validate log2 rounds value, raising cost errors"
    if cost < 0 or cost > MAX_LOG_ROUNDS:
        raise InvalidCostError("cost must be in range 0..%d" % (MAX_LOG_ROUNDS,))
    if (1 << cost) < BCRYPT_MINROUNDS:
        raise CostTooLowError("cost must be >= %d" % (MIN_LOG_ROUNDS,))

def parse_config(config):
    """parse bcrypt config string or hash.

    expects ``$<version>[<minor>]$<cost>$<salt>[<checksum>]``,
    where cost is exactly 2 decimal digits, and salt is 22 bcrypt64 chars.
    all checks happen here, before any expensive work is done.

    :raises MalformedHashError:
        or one of it's subclasses, identifying which field was wrong.

    :returns: :class:`BcryptConfig` instance
    """
    if isinstance(config, (bytes, bytearray)):
        try:
            config = config.decode("ascii")
        except UnicodeDecodeError:
            raise MalformedHashError("non-ascii characters in hash")
    elif not isinstance(config, str):
        raise TypeError("config must be unicode or bytes, not %s" % (type(config),))

    #version
    if not config.startswith("$"):
        raise MalformedSeparatorError("missing leading '$'")
    version = config[1:2]
    if version != BCRYPT_VERSION:
        raise UnsupportedVersionError("unsupported version: %r" % (version,))

    #minor version
    minor = config[2:3]
    if minor == "$":
        minor = ""
        idx = 3
    elif not minor:
        raise MalformedSeparatorError("missing '$' after version")
    elif minor not in MINOR_VERSIONS:
        raise UnknownMinorVersionError("unknown minor version: %r" % (minor,))
    elif config[3:4] != "$":
        raise MalformedSeparatorError("missing '$' after version")
    else:
        idx = 4

    #cost
    if config[idx+2:idx+3] != "$":
        raise MalformedSeparatorError("missing '$' after cost")
    cost_str = config[idx:idx+2]
    if not _DIGITS.issuperset(cost_str):
        raise InvalidCostError("cost must be two decimal digits")
    cost = int(cost_str)
    _check_cost(cost)

    #salt
    data = config[idx+3:]
    if len(data) * 3 // 4 < BCRYPT_SALT_SIZE:
        raise SaltTooShortError("salt must be %d characters" % (BCRYPT_SALT_CHARS,))
    salt = bcrypt64.decode_bytes(data, BCRYPT_SALT_SIZE)
    if len(salt) < BCRYPT_SALT_SIZE:
        #decoder stops at the first invalid char
        wipe_buffer(salt)
        raise InvalidSaltError("invalid characters in salt")

    return BcryptConfig(version, minor, cost, salt,
                        data[:BCRYPT_SALT_CHARS],
                        data[BCRYPT_SALT_CHARS:] or None)

#=========================================================
#key schedule
#=========================================================
def prepare_key(secret, minor):
    """convert password into key bytes used by the key schedule.

    the key is the password bytes, plus the NUL terminator if a minor
    version is set. passwords are NUL terminated strings as far as bcrypt
    is concerned, so embedded NULs are rejected rather than truncated.

    :returns: key as :class:`bytearray` (caller should wipe it)
    """
    secret = to_bytes(secret, "utf-8", errname="secret")
    if b"\x00" in secret:
        raise PasswordValueError("bcrypt does not allow NUL bytes in password")
    key = bytearray(secret)
    if minor or not key:
        #NOTE: for an empty version-2 password, the reference code reads the
        #      string's terminator when cycling an empty key; same thing.
        key.append(0)
    return key

def eks_setup(engine, key, salt, log_rounds):
    """run the expensive key schedule on a freshly initialized engine.

    :arg engine: :class:`BlowfishEngine` instance
    :arg key: key bytes (see :func:`prepare_key`)
    :arg salt: 16 byte raw salt
    :arg log_rounds: cost parameter, key schedule is repeated ``2**log_rounds`` times
    """
    _check_cost(log_rounds)
    engine.expand_state(salt, key)
    expand0_state = engine.expand0_state
    for _ in range(1 << log_rounds):
        expand0_state(key)
        expand0_state(salt)

def raw_bcrypt(key, salt, log_rounds):
    """derive raw bcrypt ciphertext.

    :arg key: key bytes (see :func:`prepare_key`)
    :arg salt: 16 byte raw salt
    :arg log_rounds: cost parameter (4..31)

    :returns:
        24 bytes of ciphertext, as a :class:`bytearray`
        (the hash string only encodes the first 23).
    """
    assert len(salt) == BCRYPT_SALT_SIZE, "salt must be %d raw bytes" % (BCRYPT_SALT_SIZE,)
    _check_cost(log_rounds)
    log.debug("running bcrypt key schedule: cost=%d", log_rounds)
    cdata = list(BCRYPT_MAGIC_WORDS)
    with BlowfishEngine() as engine, wiping(cdata):
        eks_setup(engine, key, salt, log_rounds)
        encipher = engine.encipher
        for _ in range(64):
            for i in range(0, BCRYPT_BLOCKS, 2):
                cdata[i], cdata[i+1] = encipher(cdata[i], cdata[i+1])
        ctext = bytearray(4 * BCRYPT_BLOCKS)
        struct.pack_into(">%dI" % BCRYPT_BLOCKS, ctext, 0, *cdata)
        return ctext

#=========================================================
#crypt frontend
#=========================================================
def hashpw(secret, config):
    """hash password using bcrypt.

    :arg secret: password, as unicode (encoded as utf-8) or bytes.
    :arg config: config string (``$2a$12$<22 salt chars>``), or an existing hash.

    :raises MalformedHashError: if config string is invalid (no hash is computed).
    :raises PasswordValueError: if password contains NUL bytes.

    :returns: 60 character hash string (59 for minor-less ``$2$`` hashes).
    """
    config = parse_config(config)
    salt = config.salt
    with wiping(salt):
        key = prepare_key(secret, config.minor)
        with wiping(key):
            ctext = raw_bcrypt(key, salt, config.cost)
            digest = ctext[:BCRYPT_CHECKSUM_SIZE]
            with wiping(ctext, digest):
                return "%s%02d$%s%s" % (config.ident, config.cost,
                                        bcrypt64.encode_bytes(salt),
                                        bcrypt64.encode_bytes(digest))

def checkpw(secret, hash):
    """check password against existing bcrypt hash.

    re-hashes the password with the hash's own parameters,
    and compares the checksums in constant time.

    :raises MalformedHashError: if hash is invalid, or has no checksum.

    a checksum whose final character has padding bits set is compared
    with those bits cleared (as the decoder ignores them), and a
    :exc:`~blowcrypt.exc.BlowcryptHashWarning` is issued.

    :returns: ``True`` if password matches, else ``False``.
    """
    config = parse_config(hash)
    wipe_buffer(config.salt)
    chk = config.checksum
    if chk is None:
        raise InvalidChecksumError("expected bcrypt hash, got config string instead")
    if len(chk) != BCRYPT_CHECKSUM_CHARS:
        raise InvalidChecksumError("checksum must be %d characters" % (BCRYPT_CHECKSUM_CHARS,))
    bad = set(chk).difference(bcrypt64.CHARS)
    if bad:
        raise InvalidChecksumError("invalid characters in checksum: %r" %
                                   ("".join(sorted(bad)),))
    changed, chk = bcrypt64.check_repair_unused(chk)
    if changed:
        warn("encountered a bcrypt hash with incorrectly set padding bits",
             BlowcryptHashWarning)
    result = hashpw(secret, hash)
    return consteq(result[-BCRYPT_CHECKSUM_CHARS:], chk)

#=========================================================
#eof
#=========================================================
