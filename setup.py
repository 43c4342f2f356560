"""blowcrypt setup script"""
#=========================================================
#init script env - ensure cwd = root of source dir
#=========================================================
import os
root_dir = os.path.abspath(os.path.join(__file__,".."))
os.chdir(root_dir)

#=========================================================
#imports
#=========================================================
import re

from setuptools import setup

#=========================================================
#version string
#=========================================================
with open(os.path.join(root_dir, "blowcrypt", "__init__.py")) as vh:
    VERSION = re.search(r'^__version__\s*=\s*"(.*?)"\s*$', vh.read(), re.M).group(1)

#=========================================================
#static text
#=========================================================
SUMMARY = "pure-python implementation of the bcrypt password hash"

DESCRIPTION = """\
blowcrypt is a pure-python implementation of OpenBSD's bcrypt
adaptive password hash: the Blowfish key expansion, the EksBlowfish
key schedule, and the ``$2a$`` modular crypt format used to store
the result. It provides a crypt-style ``hashpw()`` / ``checkpw()`` pair,
as well as a password hash class for applications to use directly.
"""

KEYWORDS = "password secret hash security crypt bcrypt blowfish eksblowfish"

#=========================================================
#config setup
#=========================================================
config = dict(
    #package info
    packages = [
        "blowcrypt",
            "blowcrypt.handlers",
            "blowcrypt.tests",
            "blowcrypt.utils",
            "blowcrypt.utils._blowfish",
        ],
    zip_safe=True,
    python_requires=">=3.6",

    #metadata
    name = "blowcrypt",
    version = VERSION,
    license = "BSD",

    description = SUMMARY,
    long_description = DESCRIPTION,
    keywords = KEYWORDS,
    classifiers = [
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Security :: Cryptography",
        "Topic :: Software Development :: Libraries",
    ],

    extras_require = {
        "test": ["pytest", "bcrypt"],
    },
)

#=========================================================
#build
#=========================================================
setup(**config)

#=========================================================
#EOF
#=========================================================
