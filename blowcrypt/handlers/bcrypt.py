"""blowcrypt.handlers.bcrypt - OpenBSD's BCrypt password hash

Implementation of OpenBSD's BCrypt algorithm, using the pure-python
key schedule in :mod:`blowcrypt.utils._blowfish`.
"""
#=========================================================
#imports
#=========================================================
#core
import logging; log = logging.getLogger(__name__)
from warnings import warn
#site
#pkg
from blowcrypt.exc import BlowcryptHashWarning
from blowcrypt.utils import getrandbytes, rng, wipe_buffer, wiping
from blowcrypt.utils import bcrypt64
from blowcrypt.utils._blowfish import BCRYPT_CHECKSUM_CHARS, \
    BCRYPT_SALT_CHARS, BCRYPT_SALT_SIZE, MAX_LOG_ROUNDS, MIN_LOG_ROUNDS, \
    hashpw, parse_config
import blowcrypt.utils.handlers as uh
#local
__all__ = [
    "bcrypt",
]

#=========================================================
#handler
#=========================================================
IDENT_2 = "$2$"
IDENT_2A = "$2a$"
IDENT_2B = "$2b$"
IDENT_2Y = "$2y$"

class bcrypt(uh.HasManyIdents, uh.HasRounds, uh.HasSalt, uh.GenericHandler):
    """This class implements the BCrypt password hash.

    It supports a fixed-length salt, and a variable number of rounds.

    The :meth:`encrypt()` and :meth:`genconfig` methods accept the following optional keywords:

    :param salt:
        Optional salt string.
        If not specified, one will be autogenerated (this is recommended).
        If specified, it must be 22 characters, drawn from the regexp range ``[./0-9A-Za-z]``.

    :param rounds:
        Optional number of rounds to use.
        Defaults to 12, must be between 4 and 31, inclusive.
        This value is logarithmic, the actual number of iterations used will be :samp:`2**{rounds}`.

    :param ident:
        selects specific version of BCrypt hash that will be used.
        Typically you want to leave this alone, and let it default to ``2a``,
        but it can be set to ``2`` to use the older version of BCrypt,
        or ``2b`` / ``2y`` for compatibility with newer implementations.

    Passwords may be unicode (encoded using utf-8) or bytes.
    Only the first 72 bytes are significant; passwords containing
    NUL bytes are rejected with :exc:`~blowcrypt.exc.PasswordValueError`.
    """

    #=========================================================
    #class attrs
    #=========================================================
    #--GenericHandler--
    name = "bcrypt"
    setting_kwds = ("salt", "rounds", "ident")
    checksum_size = BCRYPT_CHECKSUM_CHARS
    checksum_chars = bcrypt64.CHARS

    #--HasManyIdents--
    default_ident = IDENT_2A
    ident_values = (IDENT_2, IDENT_2A, IDENT_2B, IDENT_2Y)
    ident_aliases = {"2": IDENT_2, "2a": IDENT_2A, "2b": IDENT_2B, "2y": IDENT_2Y}

    #--HasSalt--
    salt_size = BCRYPT_SALT_CHARS
    salt_chars = bcrypt64.CHARS

    #--HasRounds--
    default_rounds = 12 # current blowcrypt default
    min_rounds = MIN_LOG_ROUNDS # 2**4 rounds, smallest cost bcrypt accepts
    max_rounds = MAX_LOG_ROUNDS # 32-bit integer limit (since real_rounds=1<<rounds)

    #=========================================================
    #formatting
    #=========================================================
    @classmethod
    def from_string(cls, hash):
        config = parse_config(hash)
        wipe_buffer(config.salt)
        return cls(
            ident=config.ident,
            rounds=config.cost,
            salt=config.encoded_salt,
            checksum=config.checksum,
        )

    def to_string(self, withchk=True):
        hash = "%s%02d$%s" % (self.ident, self.rounds, self.salt)
        if withchk and self.checksum:
            hash += self.checksum
        return hash

    @classmethod
    def normhash(cls, hash):
        "helper to normalize hash, correcting any bcrypt64 padding bits"
        if cls.identify(hash):
            return cls.from_string(hash).to_string()
        else:
            return hash

    #=========================================================
    #init helpers
    #=========================================================
    def _generate_salt(self):
        #encoding raw bytes always leaves the padding bits clear
        raw = bytearray(getrandbytes(rng, BCRYPT_SALT_SIZE))
        with wiping(raw):
            return bcrypt64.encode_bytes(raw)

    def _norm_salt(self, salt):
        salt = super(bcrypt, self)._norm_salt(salt)
        assert salt is not None, "HasSalt didn't generate new salt!"
        changed, salt = bcrypt64.check_repair_unused(salt)
        if changed:
            warn(
                "encountered a bcrypt salt with incorrectly set padding bits; "
                "you may want to use bcrypt.normhash() "
                "to fix this.",
                BlowcryptHashWarning)
        return salt

    def _norm_checksum(self, checksum):
        checksum = super(bcrypt, self)._norm_checksum(checksum)
        if not checksum:
            return None
        changed, checksum = bcrypt64.check_repair_unused(checksum)
        if changed:
            warn(
                "encountered a bcrypt hash with incorrectly set padding bits; "
                "you may want to use bcrypt.normhash() "
                "to fix this.",
                BlowcryptHashWarning)
        return checksum

    #=========================================================
    #primary interface
    #=========================================================
    def calc_checksum(self, secret):
        hash = hashpw(secret, self.to_string(withchk=False))
        assert len(hash) == len(self.ident) + 3 + BCRYPT_SALT_CHARS + BCRYPT_CHECKSUM_CHARS, \
            "driver returned unexpected hash: %r" % (hash[:-BCRYPT_CHECKSUM_CHARS],)
        return hash[-BCRYPT_CHECKSUM_CHARS:]

    #=========================================================
    #eoc
    #=========================================================

#=========================================================
#eof
#=========================================================
