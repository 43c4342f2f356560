"""helpers for blowcrypt unittests"""
#=========================================================
#imports
#=========================================================
#core
import logging; log = logging.getLogger(__name__)
import os
import re
import time
import unittest
import warnings
#site
#pkg
from blowcrypt.exc import BlowcryptHashWarning, PasswordSizeError
from blowcrypt.utils import MAX_PASSWORD_SIZE, rng
from blowcrypt.utils import bcrypt64
#local
__all__ = [
    #util funcs
    'enable_option',
    'Params',

    #unit testing
    'TestCase',
    'HandlerCase',
]

#=========================================================
#option flags
#=========================================================

#: comma separated flags from $BLOWCRYPT_TESTS
_enabled = set(
    flag.strip()
    for flag in os.environ.get("BLOWCRYPT_TESTS", "").lower().split(",")
    if flag.strip()
    )

def enable_option(*names):
    """check if optional tests were requested via $BLOWCRYPT_TESTS.

    flags:
        slow            verify hashes with realistic (10+) cost values
        all             everything
    """
    return "all" in _enabled or not _enabled.isdisjoint(names)

#=========================================================
#misc utility funcs
#=========================================================
class Params(object):
    "expected result + call arguments, for assertFunctionResults()"

    def __init__(self, *args, **kwds):
        self.args = args
        self.kwds = kwds

    def render(self, offset=0):
        "render call arguments (skipping the first *offset* positionals)"
        parts = ["%r" % (arg,) for arg in self.args[offset:]]
        parts.extend("%s=%r" % (k, self.kwds[k]) for k in sorted(self.kwds))
        return ", ".join(parts)

def getrandstr(rng, charset, count):
    "generate random string of *count* chars drawn from *charset*"
    return "".join(rng.choice(charset) for _ in range(count))

#=========================================================
#warnings helper
#=========================================================
class reset_warnings(warnings.catch_warnings):
    """catch_warnings() which also replaces the filter list with
    a single *reset_filter* action (``"always"`` by default),
    so each test sees every warning it triggers.
    """
    def __init__(self, reset_filter="always", **kwds):
        super(reset_warnings, self).__init__(**kwds)
        self._reset_filter = reset_filter

    def __enter__(self):
        ret = super(reset_warnings, self).__enter__()
        warnings.resetwarnings()
        warnings.simplefilter(self._reset_filter)
        return ret

#=========================================================
#custom test base
#=========================================================
class TestCase(unittest.TestCase):
    """blowcrypt test case base

    * optional :attr:`descriptionPrefix` for test descriptions
    * warning filters are reset for every test
    * ``__msg__`` keyword for :meth:`assertRaises`
    * helpers for checking caught warnings
    """

    #: string prepended to all test descriptions
    descriptionPrefix = None

    longMessage = True

    def shortDescription(self):
        desc = super(TestCase, self).shortDescription()
        if self.descriptionPrefix:
            desc = "%s: %s" % (self.descriptionPrefix, desc or str(self))
        return desc

    def setUp(self):
        super(TestCase, self).setUp()
        ctx = reset_warnings()
        ctx.__enter__()
        self.addCleanup(ctx.__exit__)

    def _formatMessage(self, msg, std):
        # custom messages only get the standard text appended if they end with ":"
        if msg and msg.rstrip().endswith(":"):
            return "%s %s" % (msg.rstrip(), std)
        return msg or std

    def assertRaises(self, _exc_type, _callable=None, *args, **kwds):
        msg = kwds.pop("__msg__", None)
        if _callable is None:
            return super(TestCase, self).assertRaises(_exc_type, *args, **kwds)
        try:
            result = _callable(*args, **kwds)
        except _exc_type:
            return
        std = "function returned %r, expected it to raise %r" % (result, _exc_type)
        raise self.failureException(self._formatMessage(msg, std))

    #============================================================
    #warnings
    #============================================================
    def assertWarningList(self, wlist, desc=(), msg=None):
        """check list of caught warnings (from ``catch_warnings(record=True)``)
        against *desc*: one entry per expected warning, each either a regexp
        for the message or a warning class.
        """
        if not isinstance(desc, (list, tuple)):
            desc = [desc]
        if len(wlist) != len(desc):
            found = ", ".join("<%s %r>" % (w.category.__name__, str(w.message))
                              for w in wlist)
            std = "expected %d warnings, found %d: [%s]" % (len(desc), len(wlist), found)
            raise self.failureException(self._formatMessage(msg, std))
        for expected, caught in zip(desc, wlist):
            if isinstance(expected, str):
                self.assertRegex(str(caught.message), expected, msg)
            else:
                self.assertTrue(issubclass(caught.category, expected),
                                msg or "expected %s, got %s: %s" %
                                (expected.__name__, caught.category.__name__,
                                 caught.message))

    def consumeWarningList(self, wlist, *args, **kwds):
        "assertWarningList(), then empty the list"
        self.assertWarningList(wlist, *args, **kwds)
        del wlist[:]

    #============================================================
    #misc
    #============================================================
    def assertFunctionResults(self, func, cases):
        """run func against a list of :class:`Params`, whose first
        positional argument is the expected return value.
        """
        for case in cases:
            result = func(*case.args[1:], **case.kwds)
            self.assertEqual(result, case.args[0],
                             "error for case %r:" % (case.render(1),))

#=========================================================
#bcrypt handler test harness
#=========================================================

#: config string: ident, two digit cost, 22 char salt
_CONFIG_RE = re.compile(r"^(\$2[aby]?\$)(\d\d)\$([./A-Za-z0-9]{22})$")

#: config string followed by 31 char checksum
_HASH_RE = re.compile(r"^(\$2[aby]?\$)(\d\d)\$([./A-Za-z0-9]{22})([./A-Za-z0-9]{31})$")

class HandlerCase(TestCase):
    """checks a bcrypt handler class against the bcrypt hash layout
    (``$2[aby]$``, cost 4..31, 22 char salt, 31 char checksum)
    and the vectors listed by the subclass.

    import this module (rather than the class) into test modules,
    so the unittest loaders don't run it without a :attr:`handler`.
    """
    #=========================================================
    #filled in by subclass
    #=========================================================

    #: handler class under test
    handler = None

    #: (secret, hash) pairs
    known_correct_hashes = []

    #: (config, secret, hash) triples
    known_correct_configs = []

    #: (alt_hash, secret, hash) triples, where alt_hash should verify,
    #: and genhash() should normalize it to hash
    known_alternate_hashes = []

    #: strings identify() should reject
    known_unidentified_hashes = []

    #: strings identify() should accept, but which are invalid
    known_malformed_hashes = []

    #: (scheme, hash) pairs from other crypt schemes
    known_other_hashes = [
        ('des_crypt', '6f8c114b58f2c'),
        ('md5_crypt', '$1$dOHYPKoP$tnxS1T8Q6VVn3kpV8cN6o.'),
        ('sha256_crypt', '$5$rounds=5000$saltstring$5B8vYYiY.CVt1RlTTf8KbXBH3hsxY/GNooZaBBGWEc5'),
    ]

    #: passwords used by the hash workflow tests
    stock_passwords = [
        "test",
        "€¥$",
        b'\xe2\x82\xac\xc2\xa5$',
    ]

    #: only this many leading bytes of the password are used
    secret_size = 72

    @property
    def descriptionPrefix(self):
        return self.handler.name

    #=========================================================
    #handler calls
    #=========================================================
    def do_encrypt(self, secret, **kwds):
        return self.handler.encrypt(secret, **kwds)

    def do_verify(self, secret, hash):
        return self.handler.verify(secret, hash)

    def do_identify(self, hash):
        return self.handler.identify(hash)

    def do_genconfig(self, **kwds):
        return self.handler.genconfig(**kwds)

    def do_genhash(self, secret, config):
        return self.handler.genhash(secret, config)

    #=========================================================
    #support
    #=========================================================
    def iter_known_hashes(self):
        "iterate through all known (secret, hash) pairs"
        for pair in self.known_correct_hashes:
            yield pair
        for config, secret, hash in self.known_correct_configs:
            yield secret, hash
        for alt, secret, hash in self.known_alternate_hashes:
            yield secret, hash

    def get_sample_hash(self):
        return rng.choice(list(self.iter_known_hashes()))

    def check_verify(self, secret, hash, negate=False):
        result = self.do_verify(secret, hash)
        self.assertIn(result, (True, False),
                      "verify() returned non-boolean value: %r" % (result,))
        if result == negate:
            raise self.failureException("verify() returned %r: secret=%r hash=%r" %
                                        (result, secret, hash))

    def check_config(self, config, rounds=None):
        "check config string layout, returning the parsed fields"
        self.assertIsInstance(config, str)
        m = _CONFIG_RE.match(config)
        self.assertTrue(m, "malformed config string: %r" % (config,))
        ident, cost, salt = m.groups()
        self.assertIn(ident, self.handler.ident_values)
        if rounds is not None:
            self.assertEqual(int(cost), rounds)
        self.assertIn(salt[-1], ".Oeu", "salt padding bits set: %r" % (config,))
        return ident, int(cost), salt

    def check_hash(self, hash, rounds=None):
        "check hash string layout"
        self.assertIsInstance(hash, str)
        self.assertTrue(_HASH_RE.match(hash), "malformed hash: %r" % (hash,))
        self.check_config(hash[:-31], rounds)

    #=========================================================
    #layout & workflow
    #=========================================================
    def test_01_layout(self):
        "test handler attributes match bcrypt's layout"
        cls = self.handler
        self.assertEqual(cls.name, "bcrypt")
        self.assertEqual(cls.setting_kwds, ("salt", "rounds", "ident"))

        self.assertEqual(cls.salt_size, 22)
        self.assertEqual(cls.salt_chars, bcrypt64.CHARS)
        self.assertEqual(cls.checksum_size, 31)
        self.assertEqual(cls.checksum_chars, bcrypt64.CHARS)

        self.assertEqual((cls.min_rounds, cls.max_rounds), (4, 31))
        self.assertTrue(4 <= cls.default_rounds <= 31)

        self.assertEqual(sorted(cls.ident_values), ["$2$", "$2a$", "$2b$", "$2y$"])
        self.assertIn(cls.default_ident, cls.ident_values)
        for alias, ident in cls.ident_aliases.items():
            self.assertEqual("$%s$" % alias, ident)

    def test_02_config_workflow(self):
        "test genconfig() output is accepted by genhash() & identify(), not verify()"
        config = self.do_genconfig()
        self.check_config(config, self.handler.default_rounds)
        self.assertTrue(config.startswith(self.handler.default_ident))

        self.check_hash(self.do_genhash('stub', config))
        self.assertTrue(self.do_identify(config))
        self.assertRaises(ValueError, self.do_verify, 'stub', config,
            __msg__="verify() accepted config string %r:" % (config,))

    def test_03_hash_workflow(self):
        """test encrypt() output is accepted by verify(), genhash() & identify()

        run against each of the stock passwords.
        """
        wrong = 'stub'
        for secret in self.stock_passwords:
            hash = self.do_encrypt(secret)
            self.check_hash(hash, self.handler.default_rounds)

            self.check_verify(secret, hash)
            self.check_verify(wrong, hash, negate=True)

            self.assertEqual(self.do_genhash(secret, hash), hash)
            other = self.do_genhash(wrong, hash)
            self.check_hash(other)
            self.assertEqual(other[:29], hash[:29])
            self.assertNotEqual(other, hash)

            self.assertTrue(self.do_identify(hash))

    def test_04_hash_types(self):
        "test hashes & secrets may be bytes"
        hash = self.do_encrypt(b'stub')
        self.check_hash(hash)
        raw = hash.encode("ascii")
        self.check_verify('stub', raw)
        self.check_verify(b'stub', raw)
        self.assertEqual(self.do_genhash('stub', raw), hash)
        self.assertTrue(self.do_identify(raw))

    #==============================================================
    #salts
    #==============================================================
    def test_10_unique_salt(self):
        "test encrypt() & genconfig() generate a new salt each time"
        configs = set(self.do_genconfig() for _ in range(4))
        self.assertEqual(len(configs), 4)
        hashes = set(self.do_encrypt("stub")[:29] for _ in range(3))
        self.assertEqual(len(hashes), 3)

    def test_11_salt_size(self):
        "test salt must be exactly 22 chars, unless relaxed"
        salt = "." * 22
        config = self.do_genconfig(salt=salt)
        self.assertEqual(self.check_config(config)[2], salt)

        self.assertRaises(ValueError, self.do_genconfig, salt=salt[:-1])
        self.assertRaises(ValueError, self.do_genconfig, salt="")
        self.assertRaises(ValueError, self.do_genconfig, salt=salt + ".")

        with warnings.catch_warnings(record=True) as wlog:
            relaxed = self.handler.using(relaxed=True).genconfig(salt=salt + "..")
        self.consumeWarningList(wlog, ["salt too large"])
        self.assertEqual(relaxed, config)

    def test_12_salt_chars(self):
        "test salt accepts only the bcrypt64 alphabet"
        chars = bcrypt64.CHARS
        with warnings.catch_warnings():
            # some chunks end with padding bits set
            warnings.simplefilter("ignore", BlowcryptHashWarning)
            for start in range(0, len(chars), 22):
                salt = (chars[start:start+22] * 2)[:22]
                self.check_config(self.do_genconfig(salt=salt))

        for c in '\x00\xff$!-+':
            self.assertRaises(ValueError, self.do_genconfig, salt=c * 22,
                              __msg__="invalid salt char %r:" % (c,))

        self.assertRaises(TypeError, self.do_encrypt, 'stub', salt=object())
        self.assertRaises(TypeError, self.do_genconfig, salt=22)

    #==============================================================
    #rounds
    #==============================================================
    def test_20_rounds(self):
        "test cost must be an integer within 4..31, unless relaxed"
        self.check_config(self.do_genconfig(rounds=4), 4)
        self.check_hash(self.do_encrypt('stub', rounds=4), 4)
        self.check_config(self.do_genconfig(rounds=31), 31)

        for rounds in (-1, 0, 3, 32, 99):
            self.assertRaises(ValueError, self.do_genconfig, rounds=rounds)
        self.assertRaises(ValueError, self.do_encrypt, 'stub', rounds=3)

        for rounds in ("5", 5.0, True, None):
            self.assertRaises(TypeError, self.handler, rounds=rounds,
                              salt="." * 22, ident="$2a$")

        relaxed = self.handler.using(relaxed=True)
        with warnings.catch_warnings(record=True) as wlog:
            self.check_config(relaxed.genconfig(rounds=3), 4)
            self.consumeWarningList(wlog, ["rounds too low"])
            self.check_config(relaxed.genconfig(rounds=32), 31)
            self.consumeWarningList(wlog, ["rounds too high"])

    #==============================================================
    #idents
    #==============================================================
    def test_30_idents(self):
        "test constructor & using() validate ident"
        cls = self.handler
        obj = cls.from_string(self.get_sample_hash()[1])
        kwds = dict(salt=obj.salt, rounds=obj.rounds)

        for ident in cls.ident_values:
            self.assertEqual(cls(ident=ident, **kwds).ident, ident)
            self.assertEqual(cls(ident=ident.encode("ascii"), **kwds).ident, ident)
        for alias, ident in cls.ident_aliases.items():
            self.assertEqual(cls(ident=alias, **kwds).ident, ident)

        self.assertRaises(TypeError, cls, **kwds)
        self.assertEqual(cls(use_defaults=True, **kwds).ident, cls.default_ident)
        for bad in ("xXx", "$2x$", "2c", "$2A$", "$1$"):
            self.assertRaises(ValueError, cls, ident=bad, **kwds)

        for ident in cls.ident_values:
            self.assertEqual(cls.using(ident=ident).default_ident, ident)
        self.assertRaises(ValueError, cls.using, ident='xXx')

    #==============================================================
    #passwords
    #==============================================================
    def test_60_secret_size(self):
        "test only the first 72 bytes of the password are used"
        size = self.secret_size
        secret = ("too many secrets" * 5)[:size+1]
        hash = self.do_encrypt(secret)

        # last significant byte changes the hash
        self.assertFalse(self.do_verify(secret[:size-1] + "x" + secret[size:], hash))

        # anything past it doesn't
        self.assertTrue(self.do_verify(secret[:size] + "x", hash))
        self.assertTrue(self.do_verify(secret[:size], hash))

    def test_61_secret_case_sensitive(self):
        "test password case sensitivity"
        hash = self.do_encrypt('test')
        self.assertFalse(self.do_verify('TEST', hash))
        self.assertNotEqual(self.do_genhash('TEST', hash), hash)

    def test_62_secret_border(self):
        "test non-string passwords are rejected"
        hash = self.get_sample_hash()[1]
        for secret in (None, 1):
            self.assertRaises(TypeError, self.do_encrypt, secret)
            self.assertRaises(TypeError, self.do_genhash, secret, hash)
            self.assertRaises(TypeError, self.do_verify, secret, hash)

    def test_63_large_secret(self):
        "test MAX_PASSWORD_SIZE is enforced"
        secret = '.' * (1+MAX_PASSWORD_SIZE)
        hash = self.get_sample_hash()[1]
        self.assertRaises(PasswordSizeError, self.do_genhash, secret, hash)
        self.assertRaises(PasswordSizeError, self.do_encrypt, secret)
        self.assertRaises(PasswordSizeError, self.do_verify, secret, hash)

    #==============================================================
    #vectors
    #==============================================================
    def test_70_hashes(self):
        "test known hashes"
        for secret, hash in self.iter_known_hashes():
            self.assertTrue(self.do_identify(hash),
                            "identify() rejected known hash %r" % (hash,))
            self.check_verify(secret, hash)
            self.assertEqual(self.do_genhash(secret, hash), hash,
                             "genhash() didn't reproduce hash of %r:" % (secret,))

    def test_71_alternates(self):
        "test known alternate hashes verify, and are normalized by genhash()"
        for alt, secret, hash in self.known_alternate_hashes:
            self.assertTrue(self.do_identify(alt))
            with warnings.catch_warnings(record=True) as wlog:
                self.check_verify(secret, alt)
                result = self.do_genhash(secret, alt)
            self.assertEqual(result, hash,
                             "genhash() didn't normalize %r:" % (alt,))
            self.assertTrue(wlog, "no warning for alternate hash %r" % (alt,))

    def test_72_configs(self):
        "test known config strings"
        for config, secret, hash in self.known_correct_configs:
            self.assertTrue(self.do_identify(config))
            self.assertRaises(ValueError, self.do_verify, secret, config,
                __msg__="verify() accepted config string %r:" % (config,))
            self.assertEqual(self.do_genhash(secret, config), hash)

    def test_73_unidentified(self):
        "test known unidentifiable strings"
        for hash in self.known_unidentified_hashes:
            self.assertFalse(self.do_identify(hash),
                             "identify() accepted %r" % (hash,))
            self.assertRaises(ValueError, self.do_verify, 'stub', hash,
                __msg__="verify() accepted %r:" % (hash,))
            self.assertRaises(ValueError, self.do_genhash, 'stub', hash,
                __msg__="genhash() accepted %r:" % (hash,))

    def test_74_malformed(self):
        "test known identifiable-but-malformed strings"
        for hash in self.known_malformed_hashes:
            self.assertTrue(self.do_identify(hash),
                            "identify() rejected %r" % (hash,))
            self.assertRaises(ValueError, self.do_verify, 'stub', hash,
                __msg__="verify() accepted malformed hash %r:" % (hash,))
            self.assertRaises(ValueError, self.do_genhash, 'stub', hash,
                __msg__="genhash() accepted malformed hash %r:" % (hash,))

    def test_75_foreign(self):
        "test hashes from other crypt schemes are rejected"
        for name, hash in self.known_other_hashes:
            self.assertFalse(self.do_identify(hash),
                             "identify() accepted %s hash" % (name,))
            self.assertRaises(ValueError, self.do_verify, 'stub', hash,
                __msg__="verify() accepted %s hash:" % (name,))
            self.assertRaises(ValueError, self.do_genhash, 'stub', hash,
                __msg__="genhash() accepted %s hash:" % (name,))

    def test_76_hash_border(self):
        "test non-string & empty hashes are rejected"
        for hash in (None, 1):
            self.assertRaises(TypeError, self.do_identify, hash)
            self.assertRaises(TypeError, self.do_verify, 'stub', hash)
            self.assertRaises(TypeError, self.do_genhash, 'stub', hash)

        for hash in ('', b''):
            self.assertFalse(self.do_identify(hash))
            self.assertRaises(ValueError, self.do_verify, 'stub', hash)
            self.assertRaises(ValueError, self.do_genhash, 'stub', hash)

        # 8-bit input is rejected, not a decoding error
        self.assertFalse(self.do_identify('\xe2\x82\xac\xc2\xa5$'))
        self.assertFalse(self.do_identify(b'$2a\x91\x00'))

    #---------------------------------------------------------
    #fuzz testing
    #---------------------------------------------------------

    # random passwords are hashed with random cost & ident, then checked
    # against every ``fuzz_verifier_xxx`` the class provides, for
    # $BLOWCRYPT_TESTS_FUZZ_TIME seconds (default 1).

    fuzz_password_alphabet = 'qwertyASDF1234<>.@*#! áəБℓ'
    fuzz_password_encoding = "utf-8"

    def test_77_fuzz_input(self):
        "test random passwords and settings against all verifiers"
        max_time = float(os.environ.get("BLOWCRYPT_TESTS_FUZZ_TIME") or 1)
        verifiers = self.get_fuzz_verifiers()

        stop = time.perf_counter() + max_time
        count = 0
        while count == 0 or time.perf_counter() <= stop:
            secret = self.get_fuzz_password()
            other = "~" + secret[1:]
            if rng.randint(0, 1):
                secret = secret.encode(self.fuzz_password_encoding)
                other = other.encode(self.fuzz_password_encoding)
            kwds = self.get_fuzz_settings()
            hash = self.do_encrypt(secret, **kwds)

            for verify in verifiers:
                result = verify(secret, hash)
                if result == "skip":
                    continue
                if result is not True:
                    raise self.failureException("%s failed to verify: "
                        "secret=%r settings=%r hash=%r" %
                        (verify.__doc__, secret, kwds, hash))
                if rng.random() < .1 and verify(other, hash) is True:
                    raise self.failureException("%s verified wrong password: "
                        "wrong=%r secret=%r hash=%r" %
                        (verify.__doc__, other, secret, hash))
            count += 1

        log.debug("fuzz test: %r checked %d passwords against %d verifiers",
                  self.descriptionPrefix, count, len(verifiers))

    def get_fuzz_verifiers(self):
        """return list of ``func(secret, hash) -> True|False|"skip"``,
        one for each ``fuzz_verifier_xxx`` method which returns one.
        """
        verifiers = []
        for name in sorted(dir(self)):
            if name.startswith("fuzz_verifier_"):
                func = getattr(self, name)()
                if func is not None:
                    verifiers.append(func)
        return verifiers

    def fuzz_verifier_default(self):
        def check_default(secret, hash):
            "self"
            return self.do_verify(secret, hash)
        return check_default

    def get_fuzz_password(self):
        # bcrypt's key cycles, so short & empty passwords are worth hitting
        size = rng.choice([0, 1, 2, rng.randint(3, 99)])
        return getrandstr(rng, self.fuzz_password_alphabet, size)

    def get_fuzz_settings(self):
        handler = self.handler
        # each step doubles the cost, so stay near the minimum
        kwds = dict(rounds=rng.randint(handler.min_rounds, handler.min_rounds + 1))
        if rng.random() < .5:
            kwds['ident'] = rng.choice(handler.ident_values)
        return kwds

    #=========================================================
    #eoc
    #=========================================================

#=========================================================
#EOF
#=========================================================
