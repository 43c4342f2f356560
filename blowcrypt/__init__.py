"""blowcrypt - pure-python implementation of the bcrypt password hash"""

__version__ = "1.0"

#=========================================================
#quickstart interface
#=========================================================
##from blowcrypt.handlers.bcrypt import bcrypt
##
## hash = bcrypt.encrypt("password")
## bcrypt.verify("password", hash)

#=========================================================
#eof
#=========================================================
