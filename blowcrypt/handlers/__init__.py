"""blowcrypt.handlers -- password hash handlers"""
