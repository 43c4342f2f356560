"""blowcrypt.utils.handlers - base classes for the bcrypt hash object

:class:`GenericHandler` implements the crypt-style (:meth:`genconfig`,
:meth:`genhash`) and application (:meth:`encrypt`, :meth:`verify`) methods
in terms of three hooks a handler provides: :meth:`from_string`,
:meth:`to_string` and :meth:`calc_checksum`.

Each of the settings stored in a bcrypt hash gets its own mixin:
:class:`HasManyIdents` (the ``$2x$`` prefix), :class:`HasRounds`
(the two digit cost) and :class:`HasSalt` (the 22 character salt).
"""
#=========================================================
#imports
#=========================================================
#core
import logging; log = logging.getLogger(__name__)
from warnings import warn
#site
#pkg
from blowcrypt.exc import BlowcryptHashWarning, InvalidChecksumError, \
                          PasswordSizeError
from blowcrypt.utils import MAX_PASSWORD_SIZE, consteq, to_bytes
#local
__all__ = [
    #helpers
    "validate_secret",

    #handler base & setting mixins
    "GenericHandler",
        "HasManyIdents",
        "HasSalt",
        "HasRounds",
]

#=========================================================
#helpers
#=========================================================
def validate_secret(secret):
    """encode password to bytes, rejecting wrong types & oversized values.

    :raises TypeError: if secret isn't unicode or bytes
    :raises PasswordSizeError: if secret is larger than :data:`MAX_PASSWORD_SIZE`
    """
    secret = to_bytes(secret, "utf-8", errname="secret")
    if len(secret) > MAX_PASSWORD_SIZE:
        raise PasswordSizeError(MAX_PASSWORD_SIZE)
    return secret

def _to_native(value, errname):
    if isinstance(value, bytes):
        return value.decode("ascii")
    if not isinstance(value, str):
        raise TypeError("%s must be unicode or bytes, not %s" %
                        (errname, type(value)))
    return value

#=========================================================
#base handler
#=========================================================
class GenericHandler(object):
    """base class for hash objects.

    An instance holds one parsed hash: its settings (added by the mixins)
    plus the :attr:`checksum`, which is ``None`` for a configuration string.

    :param checksum:
        encoded digest, normally only passed by :meth:`from_string`.

    :param use_defaults:
        if ``True``, settings which weren't provided are filled in
        (random salt, :attr:`default_rounds`, etc). if ``False``,
        a missing setting is a :exc:`TypeError`. only the methods which
        create new hashes set this.

    :param relaxed:
        if ``True``, settings which can be fixed up (an overlong salt,
        an out of range cost) are corrected with a
        :exc:`~blowcrypt.exc.BlowcryptHashWarning`; otherwise they raise
        :exc:`ValueError`.

    Handlers must set :attr:`name`, :attr:`setting_kwds`,
    :attr:`checksum_size` and :attr:`checksum_chars`,
    and implement :meth:`from_string`, :meth:`to_string`
    and :meth:`calc_checksum`.
    """

    #=====================================================
    #class attr
    #=====================================================
    name = None
    setting_kwds = ()

    checksum_size = None
    checksum_chars = None

    #: set by ``using(relaxed=True)``
    relaxed_settings = False

    #=====================================================
    #instance attrs
    #=====================================================
    checksum = None

    #=====================================================
    #init
    #=====================================================
    def __init__(self, checksum=None, use_defaults=False, relaxed=False,
                 **kwds):
        self.use_defaults = use_defaults
        self.relaxed = relaxed
        super(GenericHandler, self).__init__(**kwds)
        self.checksum = self._norm_checksum(checksum)

    def _norm_checksum(self, checksum):
        if checksum is None:
            return None
        checksum = _to_native(checksum, "checksum")
        if len(checksum) != self.checksum_size:
            raise InvalidChecksumError("%s checksum must be exactly %d characters" %
                                       (self.name, self.checksum_size))
        bad = set(checksum).difference(self.checksum_chars)
        if bad:
            raise InvalidChecksumError("invalid characters in %s checksum: %r" %
                                       (self.name, "".join(sorted(bad))))
        return checksum

    #=====================================================
    #configuration
    #=====================================================
    @classmethod
    def using(cls, relaxed=False, **kwds):
        """return a subclass with different default settings.

        the mixins each consume the keywords for their own setting,
        so anything left over by the time this is reached is unknown.
        """
        if kwds:
            raise TypeError("%s.using() got unexpected keywords: %s" %
                            (cls.name, ", ".join(sorted(kwds))))
        attrs = dict(__module__=cls.__module__,
                     relaxed_settings=relaxed or cls.relaxed_settings)
        log.debug("creating %s subclass (relaxed=%r)", cls.name,
                  attrs["relaxed_settings"])
        return type(cls.__name__, (cls,), attrs)

    #=====================================================
    #formatting hooks
    #=====================================================
    @classmethod
    def from_string(cls, hash): #pragma: no cover
        "parse hash or config string into an instance, raising ValueError if malformed"
        raise NotImplementedError("%s must implement from_string()" % (cls,))

    def to_string(self, withchk=True): #pragma: no cover
        "render instance back to hash string (or config string if ``withchk=False``)"
        raise NotImplementedError("%s must implement to_string()" % (type(self),))

    def calc_checksum(self, secret): #pragma: no cover
        "return encoded checksum for *secret* (bytes) using the instance's settings"
        raise NotImplementedError("%s must implement calc_checksum()" % (type(self),))

    #=========================================================
    #crypt-style interface
    #=========================================================
    @classmethod
    def genconfig(cls, **settings):
        return cls(use_defaults=True, relaxed=cls.relaxed_settings,
                   **settings).to_string()

    @classmethod
    def genhash(cls, secret, config):
        secret = validate_secret(secret)
        self = cls.from_string(config)
        self.checksum = self.calc_checksum(secret)
        return self.to_string()

    #=========================================================
    #application interface
    #=========================================================
    @classmethod
    def encrypt(cls, secret, **settings):
        secret = validate_secret(secret)
        self = cls(use_defaults=True, relaxed=cls.relaxed_settings, **settings)
        self.checksum = self.calc_checksum(secret)
        return self.to_string()

    @classmethod
    def verify(cls, secret, hash):
        secret = validate_secret(secret)
        self = cls.from_string(hash)
        if self.checksum is None:
            raise InvalidChecksumError("expected %s hash, got config string instead" %
                                       (cls.name,))
        return consteq(self.calc_checksum(secret), self.checksum)

    #=========================================================
    #eoc
    #=========================================================

#=====================================================
#setting mixins
#=====================================================
class HasManyIdents(GenericHandler):
    """adds the ``ident`` setting: one of :attr:`ident_values`,
    or a short name listed in :attr:`ident_aliases` (e.g. ``"2b"``).
    """
    default_ident = None
    ident_values = ()
    ident_aliases = {}

    ident = None

    def __init__(self, ident=None, **kwds):
        super(HasManyIdents, self).__init__(**kwds)
        if ident is None:
            if not self.use_defaults:
                raise TypeError("no ident specified")
            ident = self.default_ident
        self.ident = self._resolve_ident(ident)

    @classmethod
    def _resolve_ident(cls, ident):
        ident = _to_native(ident, "ident")
        ident = cls.ident_aliases.get(ident, ident)
        if ident not in cls.ident_values:
            raise ValueError("invalid %s ident: %r" % (cls.name, ident))
        return ident

    @classmethod
    def using(cls, default_ident=None, ident=None, **kwds):
        if ident is not None:
            if default_ident is not None:
                raise TypeError("'default_ident' and 'ident' are mutually exclusive")
            default_ident = ident
        subcls = super(HasManyIdents, cls).using(**kwds)
        if default_ident is not None:
            subcls.default_ident = cls._resolve_ident(default_ident)
        return subcls

    @classmethod
    def identify(cls, hash):
        "check if hash starts with one of the known prefixes"
        if isinstance(hash, bytes):
            try:
                hash = hash.decode("ascii")
            except UnicodeDecodeError:
                return False
        hash = _to_native(hash, "hash")
        return hash.startswith(tuple(cls.ident_values))

class HasSalt(GenericHandler):
    """adds the ``salt`` setting.

    salts must be exactly :attr:`salt_size` characters drawn from
    :attr:`salt_chars`. in relaxed mode, longer salts are cut down to size
    with a warning. a missing salt is created by :meth:`_generate_salt`,
    which the handler must implement.
    """
    salt_size = None
    salt_chars = None

    salt = None

    def __init__(self, salt=None, **kwds):
        super(HasSalt, self).__init__(**kwds)
        self.salt = self._norm_salt(salt)

    def _norm_salt(self, salt):
        if salt is None:
            if not self.use_defaults:
                raise TypeError("no salt specified")
            return self._generate_salt()
        salt = _to_native(salt, "salt")

        bad = set(salt).difference(self.salt_chars)
        if bad:
            raise ValueError("invalid characters in %s salt: %r" %
                             (self.name, "".join(sorted(bad))))

        size = self.salt_size
        if len(salt) < size:
            raise ValueError("salt too small (%s requires exactly %d chars)" %
                             (self.name, size))
        if len(salt) > size:
            msg = "salt too large (%s requires exactly %d chars)" % (self.name, size)
            if not self.relaxed:
                raise ValueError(msg)
            warn(msg, BlowcryptHashWarning)
            salt = salt[:size]
        return salt

    def _generate_salt(self): #pragma: no cover
        raise NotImplementedError("%s must implement _generate_salt()" % (type(self),))

class HasRounds(GenericHandler):
    """adds the ``rounds`` setting, an integer
    between :attr:`min_rounds` and :attr:`max_rounds` inclusive.

    :attr:`default_rounds` is used when no value is provided
    (and ``use_defaults=True``). in relaxed mode, out of range values
    are clamped to the nearest limit with a warning.
    """
    min_rounds = None
    max_rounds = None
    default_rounds = None

    rounds = None

    def __init__(self, rounds=None, **kwds):
        super(HasRounds, self).__init__(**kwds)
        if rounds is None:
            if not self.use_defaults:
                raise TypeError("no rounds specified")
            rounds = self.default_rounds
        self.rounds = self._clamp_rounds(rounds, self.relaxed)

    @classmethod
    def _clamp_rounds(cls, rounds, relaxed):
        if isinstance(rounds, bool) or not isinstance(rounds, int):
            raise TypeError("rounds must be an integer, not %s" % (type(rounds),))
        if rounds < cls.min_rounds:
            msg = "rounds too low (%s requires >= %d rounds)" % (cls.name, cls.min_rounds)
            limit = cls.min_rounds
        elif rounds > cls.max_rounds:
            msg = "rounds too high (%s requires <= %d rounds)" % (cls.name, cls.max_rounds)
            limit = cls.max_rounds
        else:
            return rounds
        if not relaxed:
            raise ValueError(msg)
        warn(msg, BlowcryptHashWarning)
        return limit

    @classmethod
    def using(cls, default_rounds=None, rounds=None, **kwds):
        if rounds is not None:
            if default_rounds is not None:
                raise TypeError("'default_rounds' and 'rounds' are mutually exclusive")
            default_rounds = rounds
        subcls = super(HasRounds, cls).using(**kwds)
        if default_rounds is not None:
            subcls.default_rounds = cls._clamp_rounds(default_rounds,
                                                      subcls.relaxed_settings)
        return subcls

#=========================================================
# eof
#=========================================================
