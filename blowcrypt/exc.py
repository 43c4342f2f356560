"""blowcrypt.exc -- exceptions & warnings raised by blowcrypt"""
#==========================================================================
# hash format errors
#==========================================================================
class MalformedHashError(ValueError):
    """Error raised when a bcrypt hash or configuration string
    can't be parsed.

    All the parse failures raised by :func:`~blowcrypt.utils._blowfish.parse_config`
    derive from this class, so callers which don't care *why* the string is
    invalid can just trap :exc:`!MalformedHashError` (or :exc:`ValueError`).
    None of these errors are raised after cryptographic work has begun,
    and none of their messages contain any part of the password.

    .. attribute:: field

        which part of the hash string was at fault: one of
        ``"version"``, ``"separator"``, ``"cost"``, ``"salt"``, ``"checksum"``.

    .. attribute:: reason

        short human readable description of the problem (may be ``None``).
    """
    field = None

    def __init__(self, reason=None):
        self.reason = reason
        msg = "malformed bcrypt hash"
        if reason:
            msg = "%s (%s)" % (msg, reason)
        ValueError.__init__(self, msg)

class UnsupportedVersionError(MalformedHashError):
    "Error raised if hash's major version is anything other than ``2``"
    field = "version"

class UnknownMinorVersionError(MalformedHashError):
    "Error raised if hash's minor version character isn't recognized"
    field = "version"

class MalformedSeparatorError(MalformedHashError):
    "Error raised if a ``$`` separator is missing or out of place"
    field = "separator"

class InvalidCostError(MalformedHashError):
    "Error raised if cost field isn't a two digit integer within 0..31"
    field = "cost"

class CostTooLowError(InvalidCostError):
    "Error raised if cost field is valid, but below the minimum bcrypt allows"

class InvalidSaltError(MalformedHashError):
    "Error raised if salt field can't be decoded to 16 bytes"
    field = "salt"

class SaltTooShortError(InvalidSaltError):
    "Error raised if salt field is too short to hold 16 bytes"

class InvalidChecksumError(MalformedHashError):
    "Error raised if checksum portion of a hash has the wrong size or characters"
    field = "checksum"

#==========================================================================
# password errors
#==========================================================================
class PasswordValueError(ValueError):
    """Error raised if a password can't be hashed because of its contents.

    bcrypt treats the password as a NUL-terminated string, so passwords
    containing NUL bytes would silently be truncated; blowcrypt refuses
    them instead.
    """

class PasswordSizeError(PasswordValueError):
    """Error raised if the password provided exceeds the limit set by blowcrypt.

    Because of this, blowcrypt enforces a maximum of 4096 bytes.
    This error will be thrown if a password larger than
    this is provided to any of the hashes in blowcrypt.

    Applications wishing to use a different limit should set the
    ``BLOWCRYPT_MAX_PASSWORD_SIZE`` environmental variable before blowcrypt
    is loaded.
    """
    def __init__(self, max_size=None):
        self.max_size = max_size
        msg = "password exceeds maximum allowed size"
        if max_size is not None:
            msg = "%s (%d bytes)" % (msg, max_size)
        PasswordValueError.__init__(self, msg)

#==========================================================================
# warnings
#==========================================================================
class BlowcryptWarning(UserWarning):
    """base class for blowcrypt's user warnings"""

class BlowcryptHashWarning(BlowcryptWarning):
    """Warning issued when non-fatal issue is found with parameters
    or hash string passed to a blowcrypt hash class.

    This occurs primarily in one of two cases:

    * a rounds value or other setting was explicitly provided which
      exceeded the handler's limits (and has been clamped
      by a handler configured with ``relaxed=True``).

    * a hash malformed hash string was encountered, which while parsable,
      should be re-encoded (e.g. a salt with its padding bits set).
    """

#==========================================================================
# eof
#==========================================================================
